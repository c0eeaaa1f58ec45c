# app/api/v1/routes/user/user.py

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.routes.auth.auth import get_current_user, get_user_by_email, serialize_user
from app.core.logging_config import get_logger
from app.core.response import error_response, success_response, ResponseModel
from app.core.security import get_password_hash, require_roles
from app.db.deps import get_db
from app.models.user import Role, User
from app.schemas.auth.auth_schema import UserCreate
from app.services.progress_service import get_student_stats
from app.services.user_service import delete_user

logger = get_logger("users")

admin_guard = require_roles(Role.admin)
student_guard = require_roles(Role.student)

router = APIRouter(prefix="/users", tags=["users"])


# Create account (students are registered by the administration)
@router.post(
    "",
    status_code=201,
    response_model=ResponseModel,
    dependencies=[Depends(admin_guard)],
)
async def create_user(user_in: UserCreate, db: AsyncSession = Depends(get_db)):
    # 1. Check email isn't already registered
    if await get_user_by_email(db, user_in.email):
        return error_response(
            msg="Email already registered",
            data={"error_type": "EMAIL_TAKEN"},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    # 2. Create the user
    user = User(
        name=user_in.name,
        email=user_in.email,
        password_hash=get_password_hash(user_in.password),
        role=user_in.role,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info(f"Created {user.role.value} account {user.id}")

    return success_response(
        msg="User created",
        data=serialize_user(user),
        status_code=201,
    )


# List accounts, students by default
@router.get("", response_model=ResponseModel, dependencies=[Depends(admin_guard)])
async def list_users(
    role: Role = Query(Role.student),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(User).where(User.role == role).order_by(User.name)
    )
    users = [serialize_user(u) for u in result.scalars().all()]
    return success_response(msg="Users retrieved", data=users)


# Student home dashboard
@router.get(
    "/me/stats",
    response_model=ResponseModel,
    dependencies=[Depends(student_guard)],
)
async def my_stats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    stats = await get_student_stats(db, current_user.id)
    return success_response(msg="Stats retrieved", data=stats)


# Delete account with its answers, grants, progress and chat history
@router.delete(
    "/{user_id}",
    response_model=ResponseModel,
    dependencies=[Depends(admin_guard)],
)
async def remove_user(
    user_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await delete_user(db, user_id, current_user)
    return success_response(msg="User deleted", data={"id": str(user_id)})
