# app/api/v1/routes/auth/auth.py

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging_config import get_logger
from app.core.response import error_response, success_response, ResponseModel
from app.core.security import create_access_token, verify_password, verify_token
from app.db.deps import get_db
from app.models.user import User
from app.schemas.auth.auth_schema import LoginRequest
from app.utils.datetime_utils import dt_to_iso, get_current_utc_datetime

logger = get_logger("auth")

router = APIRouter(prefix="/auth", tags=["auth"])
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


# helper to get user by email
async def get_user_by_email(db: AsyncSession, email: str):
    q = await db.execute(select(User).where(User.email == email))
    return q.scalars().first()


def serialize_user(user: User) -> dict:
    return {
        "id": str(user.id),
        "name": user.name,
        "email": user.email,
        "role": user.role.value,
        "is_active": bool(user.is_active),
        "last_signed_in": dt_to_iso(user.last_signed_in),
    }


# User Login
@router.post("/login", response_model=ResponseModel)
async def login(
    creds: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    # 1. Lookup user by email
    user = await get_user_by_email(db, creds.email)

    # 2. Unknown email or invalid password
    if not user or not verify_password(creds.password, user.password_hash):
        return error_response(
            msg="Incorrect email or password.",
            data={"error_type": "INVALID_CREDENTIALS"},
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    # 3. Deactivated account
    if not user.is_active:
        return error_response(
            msg="Your account has been deactivated. Please contact the administration.",
            data={"error_type": "ACCOUNT_INACTIVE"},
            status_code=status.HTTP_403_FORBIDDEN,
        )

    # 4. All good, issue token
    user.last_signed_in = get_current_utc_datetime()
    await db.commit()
    logger.info(f"User {user.id} signed in")

    return success_response(
        msg="Login successful!",
        data={
            "access_token": create_access_token(subject=str(user.id)),
            "token_type": "bearer",
            "user": serialize_user(user),
        },
    )


# Get Current user
async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
):
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        user_id = verify_token(token)
        if user_id is None:
            raise credentials_exception
        user_uuid = uuid.UUID(user_id)
    except (JWTError, ValueError):
        raise credentials_exception

    user = await db.get(User, user_uuid)
    if user is None or not user.is_active:
        raise credentials_exception
    return user


@router.get("/me", response_model=ResponseModel)
async def me(current_user: User = Depends(get_current_user)):
    return success_response(msg="Current user", data=serialize_user(current_user))
