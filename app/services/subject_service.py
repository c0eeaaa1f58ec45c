from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import LessonNotFound, SubjectNotFound
from app.db.session_utils import commit_or_raise
from app.models.access_permission import AccessPermission
from app.models.chat_history import ChatHistory
from app.models.lesson import Lesson
from app.models.student_progress import StudentProgress
from app.models.subject import Subject
from app.models.user import User
from app.schemas.subjects import (
    LessonCreateRequest,
    LessonUpdateRequest,
    SubjectCreateRequest,
    SubjectUpdateRequest,
)
from app.services.quiz_service.authoring import delete_subject_quizzes
from app.utils.datetime_utils import dt_to_iso

logger = logging.getLogger(__name__)

REQUIRED_SUBJECT_FIELDS = {"name", "number_of_days"}


def serialize_subject(subject: Subject) -> Dict[str, Any]:
    # curriculum_url may be a large data URL; only its presence is exposed
    return {
        "id": str(subject.id),
        "name": subject.name,
        "description": subject.description,
        "number_of_days": subject.number_of_days,
        "has_curriculum": subject.has_curriculum,
        "created_at": dt_to_iso(subject.created_at),
    }


def serialize_lesson(lesson: Lesson) -> Dict[str, Any]:
    return {
        "id": str(lesson.id),
        "subject_id": str(lesson.subject_id),
        "title": lesson.title,
        "content": lesson.content,
        "day_number": lesson.day_number,
        "position": lesson.position,
    }


class SubjectService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_subject(self, subject_id: uuid.UUID) -> Subject:
        subject = await self.db.get(Subject, subject_id)
        if subject is None:
            raise SubjectNotFound("Subject not found")
        return subject

    async def list_subjects(self, subject_ids: Optional[List[uuid.UUID]] = None) -> List[Subject]:
        stmt = select(Subject).order_by(Subject.name)
        if subject_ids is not None:
            if not subject_ids:
                return []
            stmt = stmt.where(Subject.id.in_(subject_ids))
        return list((await self.db.execute(stmt)).scalars().all())

    async def create_subject(self, payload: SubjectCreateRequest, admin_user: User) -> Subject:
        subject = Subject(**payload.model_dump(), created_by=admin_user.id)
        self.db.add(subject)
        await commit_or_raise(self.db, operation="create_subject")
        await self.db.refresh(subject)
        logger.info("subject_created subject_id=%s", subject.id)
        return subject

    async def update_subject(self, subject_id: uuid.UUID, payload: SubjectUpdateRequest) -> Subject:
        subject = await self.get_subject(subject_id)
        for field, value in payload.model_dump(exclude_unset=True).items():
            if value is None and field in REQUIRED_SUBJECT_FIELDS:
                continue
            setattr(subject, field, value)
        await commit_or_raise(self.db, operation="update_subject")
        await self.db.refresh(subject)
        return subject

    async def delete_subject(self, subject_id: uuid.UUID) -> None:
        """Delete a subject with its lessons, progress, quizzes, permissions and chat history."""
        subject = await self.get_subject(subject_id)
        await delete_subject_quizzes(self.db, subject.id)
        await self.db.execute(
            delete(StudentProgress).where(StudentProgress.subject_id == subject.id)
        )
        await self.db.execute(delete(Lesson).where(Lesson.subject_id == subject.id))
        await self.db.execute(
            delete(AccessPermission).where(AccessPermission.subject_id == subject.id)
        )
        await self.db.execute(delete(ChatHistory).where(ChatHistory.subject_id == subject.id))
        await self.db.execute(delete(Subject).where(Subject.id == subject.id))
        await commit_or_raise(self.db, operation="delete_subject")
        logger.info("subject_deleted subject_id=%s", subject_id)

    # Lessons

    async def get_lesson(self, lesson_id: uuid.UUID) -> Lesson:
        lesson = await self.db.get(Lesson, lesson_id)
        if lesson is None:
            raise LessonNotFound("Lesson not found")
        return lesson

    async def list_lessons(self, subject_id: uuid.UUID) -> List[Lesson]:
        await self.get_subject(subject_id)
        result = await self.db.execute(
            select(Lesson)
            .where(Lesson.subject_id == subject_id)
            .order_by(Lesson.day_number, Lesson.position)
        )
        return list(result.scalars().all())

    async def create_lesson(self, payload: LessonCreateRequest, admin_user: User) -> Lesson:
        await self.get_subject(payload.subject_id)
        lesson = Lesson(**payload.model_dump(), created_by=admin_user.id)
        self.db.add(lesson)
        await commit_or_raise(self.db, operation="create_lesson")
        return lesson

    async def update_lesson(self, lesson_id: uuid.UUID, payload: LessonUpdateRequest) -> Lesson:
        lesson = await self.get_lesson(lesson_id)
        for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(lesson, field, value)
        await commit_or_raise(self.db, operation="update_lesson")
        return lesson

    async def delete_lesson(self, lesson_id: uuid.UUID) -> None:
        lesson = await self.get_lesson(lesson_id)
        await self.db.execute(
            delete(StudentProgress).where(StudentProgress.lesson_id == lesson.id)
        )
        await self.db.execute(delete(Lesson).where(Lesson.id == lesson.id))
        await commit_or_raise(self.db, operation="delete_lesson")
