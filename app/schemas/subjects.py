from __future__ import annotations

from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID

from pydantic import BaseModel, Field, StringConstraints, model_validator

NameStr = Annotated[str, StringConstraints(min_length=1, max_length=255, strip_whitespace=True)]


class SubjectCreateRequest(BaseModel):
    name: NameStr
    description: Optional[str] = None
    number_of_days: int = Field(default=30, ge=1, le=366)
    curriculum: Optional[str] = None
    curriculum_url: Optional[str] = None


class SubjectUpdateRequest(BaseModel):
    name: Optional[NameStr] = None
    description: Optional[str] = None
    number_of_days: Optional[int] = Field(default=None, ge=1, le=366)
    curriculum: Optional[str] = None
    curriculum_url: Optional[str] = None


class LessonCreateRequest(BaseModel):
    subject_id: UUID
    title: NameStr
    content: Annotated[str, StringConstraints(min_length=1)]
    day_number: int = Field(..., ge=1, le=30)
    position: int = Field(default=1, ge=1)


class LessonUpdateRequest(BaseModel):
    title: Optional[NameStr] = None
    content: Optional[Annotated[str, StringConstraints(min_length=1)]] = None
    day_number: Optional[int] = Field(default=None, ge=1, le=30)
    position: Optional[int] = Field(default=None, ge=1)


class GrantAccessRequest(BaseModel):
    student_id: UUID
    subject_id: UUID
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @model_validator(mode="after")
    def validate_window(self) -> "GrantAccessRequest":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be earlier than start_date")
        return self


class RevokeAccessRequest(BaseModel):
    student_id: UUID
    subject_id: UUID


class LessonProgressRequest(BaseModel):
    is_completed: bool = True
