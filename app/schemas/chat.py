from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class AskTutorRequest(BaseModel):
    subject_id: UUID
    question: str = Field(
        ...,
        description="The question to be answered from the subject curriculum",
        json_schema_extra={"example": "What is photosynthesis?"},
    )

    @field_validator("question")
    def question_not_empty(cls, v):
        if v is None or v.strip() == "":
            raise ValueError("Question cannot be empty")
        return v.strip()
