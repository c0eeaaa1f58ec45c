"""Subject endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.routes.auth.auth import get_current_user
from app.core.response import ResponseModel, success_response
from app.core.security import is_admin, require_roles
from app.db.deps import get_db
from app.models.user import Role, User
from app.schemas.subjects import SubjectCreateRequest, SubjectUpdateRequest
from app.services.access_gate import check_access, list_accessible_subject_ids
from app.services.subject_service import SubjectService, serialize_subject

admin_guard = require_roles(Role.admin)

router = APIRouter(prefix="/subjects", tags=["subjects"])


@router.get("", response_model=ResponseModel)
async def list_subjects(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    subjects = await SubjectService(db).list_subjects()
    return success_response(
        msg="Subjects retrieved", data=[serialize_subject(s) for s in subjects]
    )


@router.get("/mine", response_model=ResponseModel)
async def list_my_subjects(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Subjects the caller can study right now; admins see every subject."""
    service = SubjectService(db)
    if is_admin(current_user):
        subjects = await service.list_subjects()
    else:
        subject_ids = await list_accessible_subject_ids(current_user.id, db)
        subjects = await service.list_subjects(subject_ids)
    return success_response(
        msg="Subjects retrieved", data=[serialize_subject(s) for s in subjects]
    )


@router.post(
    "",
    status_code=201,
    response_model=ResponseModel,
    dependencies=[Depends(admin_guard)],
)
async def create_subject(
    payload: SubjectCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    subject = await SubjectService(db).create_subject(payload, current_user)
    return success_response(
        msg="Subject created", data=serialize_subject(subject), status_code=201
    )


@router.get("/{subject_id}", response_model=ResponseModel)
async def get_subject(
    subject_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    subject = await SubjectService(db).get_subject(subject_id)
    return success_response(msg="Subject retrieved", data=serialize_subject(subject))


@router.get("/{subject_id}/access", response_model=ResponseModel)
async def get_subject_access(
    subject_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The access gate's decision for the caller on this subject."""
    subject = await SubjectService(db).get_subject(subject_id)
    decision = await check_access(current_user.id, subject.id, db)
    return success_response(
        msg="Access checked",
        data={
            "subject_id": str(subject.id),
            "allowed": decision.allowed,
            "reason": decision.reason.value if decision.reason else None,
            "message": decision.message,
            "has_curriculum": subject.has_curriculum,
        },
    )


@router.patch(
    "/{subject_id}",
    response_model=ResponseModel,
    dependencies=[Depends(admin_guard)],
)
async def update_subject(
    subject_id: uuid.UUID,
    payload: SubjectUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    subject = await SubjectService(db).update_subject(subject_id, payload)
    return success_response(msg="Subject updated", data=serialize_subject(subject))


@router.delete(
    "/{subject_id}",
    response_model=ResponseModel,
    dependencies=[Depends(admin_guard)],
)
async def delete_subject(
    subject_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    await SubjectService(db).delete_subject(subject_id)
    return success_response(msg="Subject deleted", data={"id": str(subject_id)})
