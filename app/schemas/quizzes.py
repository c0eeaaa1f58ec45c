from __future__ import annotations

from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, model_validator

from app.utils.enums import QuestionKind, QuizKind

TitleStr = Annotated[str, StringConstraints(min_length=1, max_length=255, strip_whitespace=True)]
AnswerText = Annotated[str, StringConstraints(min_length=1, strip_whitespace=True)]

# Automatic and manual scores share one scale so percentages stay comparable
MAX_QUESTION_SCORE = 1


# Authoring
class OptionIn(BaseModel):
    text: str
    is_correct: bool = False


class QuestionIn(BaseModel):
    text: str
    kind: QuestionKind
    options: List[OptionIn] = Field(default_factory=list)
    reference_answer_text: Optional[str] = None
    reference_answer_attachment: Optional[str] = None


class QuizCreateRequest(BaseModel):
    subject_id: UUID
    title: TitleStr
    description: Optional[str] = None
    kind: QuizKind
    day_number: Optional[int] = Field(default=None, ge=1)
    scheduled_at: Optional[datetime] = None
    questions: List[QuestionIn] = Field(default_factory=list)


class ModelAnswerRequest(BaseModel):
    text: Optional[str] = None
    attachment_url: Optional[str] = None

    @model_validator(mode="after")
    def ensure_content(self) -> "ModelAnswerRequest":
        if not (self.text or self.attachment_url):
            raise ValueError("Provide a model answer text or attachment")
        return self


# Submission: one variant per question kind
class MultipleChoiceAnswer(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: Literal["multiple_choice"]
    question_id: UUID
    selected_option_id: Optional[UUID] = None


class ShortAnswer(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: Literal["short_answer"]
    question_id: UUID
    text: AnswerText


class EssayAnswer(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: Literal["essay"]
    question_id: UUID
    text: Optional[str] = None
    attachment_url: Optional[str] = None

    @model_validator(mode="after")
    def ensure_content(self) -> "EssayAnswer":
        if not ((self.text or "").strip() or self.attachment_url):
            raise ValueError("An essay answer needs text or an attachment")
        return self


RawAnswer = Annotated[
    Union[MultipleChoiceAnswer, ShortAnswer, EssayAnswer],
    Field(discriminator="kind"),
]


class SubmitQuizRequest(BaseModel):
    answers: List[RawAnswer] = Field(default_factory=list)
    # Hint only: the server may still decide this is not a first attempt
    is_first_attempt: bool = True


# Grading & results
class GradeAnswerRequest(BaseModel):
    score: int = Field(..., ge=0, le=MAX_QUESTION_SCORE)
    feedback: Optional[str] = None


class QuizStatusRequest(BaseModel):
    quiz_ids: List[UUID] = Field(default_factory=list, max_length=200)
