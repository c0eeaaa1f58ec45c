# app/schemas/auth/auth_schema.py
from pydantic import BaseModel, EmailStr, Field, field_validator

from app.models.user import Role


def _normalize_email_value(email: str | None) -> str:
    """Normalize user-provided email strings for consistent lookups."""
    if email is None:
        raise ValueError("Email cannot be empty.")
    normalized = email.strip().lower()
    if not normalized:
        raise ValueError("Email cannot be empty.")
    return normalized


class UserCreate(BaseModel):
    name: str = Field(
        ...,
        min_length=1,
        max_length=120,
        description="Full name shown to admins and on result lists",
        json_schema_extra={"example": "Sara Ahmad"},
    )
    email: EmailStr = Field(
        ...,
        description="User's email address",
        json_schema_extra={"example": "student@example.com"},
    )
    password: str = Field(
        ...,
        min_length=8,
        max_length=72,
        description="Initial password (8 to 72 characters, letters and numbers)",
    )
    role: Role = Role.student

    @field_validator("email", mode="before")
    def normalize_email(cls, email: str) -> str:
        return _normalize_email_value(email)

    @field_validator("password")
    def validate_password(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Password cannot be empty.")
        if not any(char.isdigit() for char in value):
            raise ValueError("Password must include at least one number.")
        if not any(char.isalpha() for char in value):
            raise ValueError("Password must include at least one letter.")
        return value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email", mode="before")
    def normalize_email(cls, email: str) -> str:
        return _normalize_email_value(email)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
