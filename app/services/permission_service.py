"""Admin management of per-subject access grants.

The access gate only reads these rows; this module is the only writer.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import SubjectNotFound, UserNotFound, ValidationFailure
from app.db.session_utils import commit_or_raise
from app.models.access_permission import AccessPermission
from app.models.subject import Subject
from app.models.user import Role, User
from app.schemas.subjects import GrantAccessRequest, RevokeAccessRequest
from app.utils.datetime_utils import dt_to_iso

logger = logging.getLogger(__name__)


def serialize_permission(permission: AccessPermission) -> Dict[str, Any]:
    return {
        "id": str(permission.id),
        "student_id": str(permission.student_id),
        "student_name": permission.student.name if permission.student else None,
        "subject_id": str(permission.subject_id),
        "subject_name": permission.subject.name if permission.subject else None,
        "has_access": bool(permission.has_access),
        "start_date": dt_to_iso(permission.start_date),
        "end_date": dt_to_iso(permission.end_date),
    }


async def _load_permission(
    db: AsyncSession, student_id: uuid.UUID, subject_id: uuid.UUID
) -> Optional[AccessPermission]:
    result = await db.execute(
        select(AccessPermission)
        .where(
            AccessPermission.student_id == student_id,
            AccessPermission.subject_id == subject_id,
        )
        .options(selectinload(AccessPermission.student), selectinload(AccessPermission.subject))
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()


async def grant_access(
    db: AsyncSession, payload: GrantAccessRequest, admin_user: User
) -> AccessPermission:
    """Create or update the grant for (student, subject); one row per pair."""
    student = await db.get(User, payload.student_id)
    if student is None:
        raise UserNotFound("Student not found")
    if student.role != Role.student:
        raise ValidationFailure(
            "Access can only be granted to student accounts",
            data={"student_id": str(payload.student_id)},
        )
    if await db.get(Subject, payload.subject_id) is None:
        raise SubjectNotFound("Subject not found")

    permission = await _load_permission(db, payload.student_id, payload.subject_id)
    if permission is None:
        permission = AccessPermission(
            student_id=payload.student_id,
            subject_id=payload.subject_id,
            created_by=admin_user.id,
        )
        db.add(permission)
    permission.has_access = True
    permission.start_date = payload.start_date
    permission.end_date = payload.end_date

    await commit_or_raise(db, operation="grant_access")
    logger.info(
        "access_granted student_id=%s subject_id=%s start=%s end=%s",
        payload.student_id, payload.subject_id, payload.start_date, payload.end_date,
    )
    return await _load_permission(db, payload.student_id, payload.subject_id)


async def revoke_access(db: AsyncSession, payload: RevokeAccessRequest) -> bool:
    """Delete the grant. Returns False when there was nothing to revoke."""
    result = await db.execute(
        delete(AccessPermission).where(
            AccessPermission.student_id == payload.student_id,
            AccessPermission.subject_id == payload.subject_id,
        )
    )
    await commit_or_raise(db, operation="revoke_access")
    removed = bool(result.rowcount)
    if removed:
        logger.info(
            "access_revoked student_id=%s subject_id=%s",
            payload.student_id, payload.subject_id,
        )
    return removed


async def list_permissions(
    db: AsyncSession,
    subject_id: Optional[uuid.UUID] = None,
    student_id: Optional[uuid.UUID] = None,
) -> List[AccessPermission]:
    stmt = select(AccessPermission).options(
        selectinload(AccessPermission.student), selectinload(AccessPermission.subject)
    )
    if subject_id is not None:
        stmt = stmt.where(AccessPermission.subject_id == subject_id)
    if student_id is not None:
        stmt = stmt.where(AccessPermission.student_id == student_id)
    result = await db.execute(stmt.order_by(AccessPermission.created_at.desc()))
    return list(result.scalars().all())
