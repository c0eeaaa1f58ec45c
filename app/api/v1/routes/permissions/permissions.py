"""Admin endpoints for per-subject access grants."""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.routes.auth.auth import get_current_user
from app.core.response import ResponseModel, success_response
from app.core.security import require_roles
from app.db.deps import get_db
from app.models.user import Role, User
from app.schemas.subjects import GrantAccessRequest, RevokeAccessRequest
from app.services.permission_service import (
    grant_access,
    list_permissions,
    revoke_access,
    serialize_permission,
)

admin_guard = require_roles(Role.admin)

router = APIRouter(
    prefix="/permissions",
    tags=["permissions"],
    dependencies=[Depends(admin_guard)],
)


@router.get("", response_model=ResponseModel)
async def get_permissions(
    subject_id: Optional[uuid.UUID] = Query(None),
    student_id: Optional[uuid.UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    permissions = await list_permissions(db, subject_id=subject_id, student_id=student_id)
    return success_response(
        msg="Permissions retrieved",
        data=[serialize_permission(p) for p in permissions],
    )


@router.post("", response_model=ResponseModel)
async def grant_permission(
    payload: GrantAccessRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    permission = await grant_access(db, payload, current_user)
    return success_response(msg="Access granted", data=serialize_permission(permission))


# DELETE with a body, matching the grant payload
@router.delete("", response_model=ResponseModel)
async def revoke_permission(
    payload: RevokeAccessRequest,
    db: AsyncSession = Depends(get_db),
):
    removed = await revoke_access(db, payload)
    return success_response(
        msg="Access revoked" if removed else "No access to revoke",
        data={"revoked": removed},
    )
