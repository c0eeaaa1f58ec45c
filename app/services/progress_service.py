"""Lesson completion tracking and the student home dashboard figures."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session_utils import commit_or_raise
from app.models.access_permission import AccessPermission
from app.models.discount import Discount
from app.models.lesson import Lesson
from app.models.quiz import Quiz
from app.models.student_progress import StudentProgress
from app.models.subject import Subject
from app.services.access_gate import list_accessible_subject_ids, require_access
from app.services.quiz_service.results import get_quiz_statuses
from app.services.subject_service import SubjectService
from app.utils.datetime_utils import Clock, dt_to_iso, ensure_utc, get_current_utc_datetime

logger = logging.getLogger(__name__)


def serialize_progress(progress: StudentProgress) -> Dict[str, Any]:
    return {
        "lesson_id": str(progress.lesson_id),
        "subject_id": str(progress.subject_id),
        "is_completed": bool(progress.is_completed),
        "completed_at": dt_to_iso(progress.completed_at),
    }


async def set_lesson_progress(
    db: AsyncSession,
    student_id: uuid.UUID,
    lesson_id: uuid.UUID,
    is_completed: bool = True,
    clock: Clock = get_current_utc_datetime,
) -> StudentProgress:
    """Mark a lesson completed (or not) for a student; one row per pair."""
    lesson = await SubjectService(db).get_lesson(lesson_id)
    await require_access(student_id, lesson.subject_id, db, clock=clock)

    result = await db.execute(
        select(StudentProgress).where(
            StudentProgress.student_id == student_id,
            StudentProgress.lesson_id == lesson.id,
        )
    )
    progress = result.scalars().first()
    if progress is None:
        progress = StudentProgress(
            student_id=student_id,
            subject_id=lesson.subject_id,
            lesson_id=lesson.id,
        )
        db.add(progress)
    progress.is_completed = is_completed
    progress.completed_at = clock() if is_completed else None

    await commit_or_raise(db, operation="set_lesson_progress")
    logger.info(
        "lesson_progress student_id=%s lesson_id=%s completed=%s",
        student_id, lesson.id, is_completed,
    )
    return progress


async def list_subject_progress(
    db: AsyncSession, student_id: uuid.UUID, subject_id: uuid.UUID
) -> List[StudentProgress]:
    result = await db.execute(
        select(StudentProgress).where(
            StudentProgress.student_id == student_id,
            StudentProgress.subject_id == subject_id,
        )
    )
    return list(result.scalars().all())


async def _study_days(
    db: AsyncSession,
    student_id: uuid.UUID,
    subject_ids: List[uuid.UUID],
    clock: Clock,
) -> Dict[uuid.UUID, int]:
    """Current study day per subject, counted from the grant's start.

    Grants without a start date count from when they were created. Days past
    the subject's length are dropped.
    """
    rows = (
        await db.execute(
            select(
                AccessPermission.subject_id,
                AccessPermission.start_date,
                AccessPermission.created_at,
                Subject.number_of_days,
            )
            .join(Subject, Subject.id == AccessPermission.subject_id)
            .where(
                AccessPermission.student_id == student_id,
                AccessPermission.subject_id.in_(subject_ids),
            )
        )
    ).all()

    today = ensure_utc(clock()).date()
    days: Dict[uuid.UUID, int] = {}
    for subject_id, start_date, created_at, number_of_days in rows:
        anchor = ensure_utc(start_date or created_at)
        day = (today - anchor.date()).days + 1 if anchor else 1
        if 1 <= day <= number_of_days:
            days[subject_id] = day
    return days


async def get_student_stats(
    db: AsyncSession,
    student_id: uuid.UUID,
    clock: Clock = get_current_utc_datetime,
) -> Dict[str, Any]:
    """Home dashboard figures over the subjects the student can access now."""
    subject_ids = await list_accessible_subject_ids(student_id, db, clock=clock)
    if not subject_ids:
        lessons: List[Lesson] = []
        quiz_ids: List[uuid.UUID] = []
    else:
        lessons = list(
            (await db.execute(select(Lesson).where(Lesson.subject_id.in_(subject_ids))))
            .scalars()
            .all()
        )
        quiz_ids = list(
            (await db.execute(select(Quiz.id).where(Quiz.subject_id.in_(subject_ids))))
            .scalars()
            .all()
        )

    study_days = await _study_days(db, student_id, subject_ids, clock) if subject_ids else {}
    lessons_today = sum(
        1 for lesson in lessons if study_days.get(lesson.subject_id) == lesson.day_number
    )

    statuses = await get_quiz_statuses(db, student_id, quiz_ids)
    pending_quizzes = sum(1 for status in statuses.values() if not status["has_attempted"])

    lesson_ids = [lesson.id for lesson in lessons]
    completed_lessons = 0
    if lesson_ids:
        completed_lessons = await db.scalar(
            select(func.count())
            .select_from(StudentProgress)
            .where(
                StudentProgress.student_id == student_id,
                StudentProgress.lesson_id.in_(lesson_ids),
                StudentProgress.is_completed.is_(True),
            )
        )

    active_discounts = await db.scalar(
        select(func.count()).select_from(Discount).where(Discount.is_active.is_(True))
    )

    return {
        "subjects": len(subject_ids),
        "lessons_today": lessons_today,
        "pending_quizzes": pending_quizzes,
        "completed_lessons": completed_lessons or 0,
        "total_lessons": len(lessons),
        "active_discounts": active_discounts or 0,
    }
