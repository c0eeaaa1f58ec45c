import uuid
from sqlalchemy import (
    Column, String, Integer, Text, Boolean, DateTime, Enum, ForeignKey, func
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import relationship
from app.db.deps import Base
from app.utils.enums import QuizKind, QuestionKind


class Quiz(Base):
    __tablename__ = "quizzes"

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    subject_id = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("subjects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    kind = Column(Enum(QuizKind), nullable=False)
    # Only meaningful for daily quizzes
    day_number = Column(Integer, nullable=True)
    scheduled_at = Column(DateTime(timezone=True), nullable=True)
    results_published = Column(Boolean, nullable=False, default=False)
    model_answer_text = Column(Text, nullable=True)
    model_answer_attachment = Column(Text, nullable=True)
    created_by = Column(PG_UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    subject = relationship("Subject", back_populates="quizzes")
    questions = relationship(
        "QuizQuestion",
        back_populates="quiz",
        order_by="QuizQuestion.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def is_daily(self) -> bool:
        return self.kind == QuizKind.daily


class QuizQuestion(Base):
    __tablename__ = "quiz_questions"

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    quiz_id = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("quizzes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    text = Column(Text, nullable=False)
    kind = Column(Enum(QuestionKind), nullable=False)
    position = Column(Integer, nullable=False)
    # Grading guidance only; never shown to students
    reference_answer_text = Column(Text, nullable=True)
    reference_answer_attachment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    quiz = relationship("Quiz", back_populates="questions")
    options = relationship(
        "QuizOption",
        back_populates="question",
        order_by="QuizOption.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class QuizOption(Base):
    __tablename__ = "quiz_options"

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    question_id = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("quiz_questions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    text = Column(Text, nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)
    position = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    question = relationship("QuizQuestion", back_populates="options")
