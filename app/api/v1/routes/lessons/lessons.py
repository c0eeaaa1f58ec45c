"""Lesson endpoints. Students only read lessons of subjects they can access."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.routes.auth.auth import get_current_user
from app.core.response import ResponseModel, success_response
from app.core.security import is_admin, require_roles
from app.db.deps import get_db
from app.models.user import Role, User
from app.schemas.subjects import LessonCreateRequest, LessonProgressRequest, LessonUpdateRequest
from app.services.access_gate import require_access
from app.services.progress_service import (
    list_subject_progress,
    serialize_progress,
    set_lesson_progress,
)
from app.services.subject_service import SubjectService, serialize_lesson

admin_guard = require_roles(Role.admin)
student_guard = require_roles(Role.student)

router = APIRouter(prefix="/lessons", tags=["lessons"])


@router.get("", response_model=ResponseModel)
async def list_lessons(
    subject_id: uuid.UUID = Query(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not is_admin(current_user):
        await require_access(current_user.id, subject_id, db)
    lessons = await SubjectService(db).list_lessons(subject_id)
    return success_response(msg="Lessons retrieved", data=[serialize_lesson(l) for l in lessons])


# Registered before /{lesson_id}
@router.get(
    "/progress",
    response_model=ResponseModel,
    dependencies=[Depends(student_guard)],
)
async def my_progress(
    subject_id: uuid.UUID = Query(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    progress = await list_subject_progress(db, current_user.id, subject_id)
    return success_response(
        msg="Progress retrieved", data=[serialize_progress(p) for p in progress]
    )


@router.get("/{lesson_id}", response_model=ResponseModel)
async def get_lesson(
    lesson_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    lesson = await SubjectService(db).get_lesson(lesson_id)
    if not is_admin(current_user):
        await require_access(current_user.id, lesson.subject_id, db)
    return success_response(msg="Lesson retrieved", data=serialize_lesson(lesson))


@router.post(
    "",
    status_code=201,
    response_model=ResponseModel,
    dependencies=[Depends(admin_guard)],
)
async def create_lesson(
    payload: LessonCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    lesson = await SubjectService(db).create_lesson(payload, current_user)
    return success_response(msg="Lesson created", data=serialize_lesson(lesson), status_code=201)


@router.patch(
    "/{lesson_id}",
    response_model=ResponseModel,
    dependencies=[Depends(admin_guard)],
)
async def update_lesson(
    lesson_id: uuid.UUID,
    payload: LessonUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    lesson = await SubjectService(db).update_lesson(lesson_id, payload)
    return success_response(msg="Lesson updated", data=serialize_lesson(lesson))


@router.delete(
    "/{lesson_id}",
    response_model=ResponseModel,
    dependencies=[Depends(admin_guard)],
)
async def delete_lesson(
    lesson_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    await SubjectService(db).delete_lesson(lesson_id)
    return success_response(msg="Lesson deleted", data={"id": str(lesson_id)})


@router.put(
    "/{lesson_id}/progress",
    response_model=ResponseModel,
    dependencies=[Depends(student_guard)],
)
async def mark_progress(
    lesson_id: uuid.UUID,
    payload: LessonProgressRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    progress = await set_lesson_progress(
        db, current_user.id, lesson_id, is_completed=payload.is_completed
    )
    return success_response(msg="Progress saved", data=serialize_progress(progress))
