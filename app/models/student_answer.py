import uuid
from sqlalchemy import (
    Column, Integer, Text, DateTime, ForeignKey, UniqueConstraint, func
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import relationship
from app.db.deps import Base


class StudentAnswer(Base):
    """One answer per (student, quiz, question); resubmissions upsert this row."""

    __tablename__ = "student_answers"
    __table_args__ = (
        UniqueConstraint(
            "student_id", "quiz_id", "question_id",
            name="uq_student_answers_student_quiz_question",
        ),
    )

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    quiz_id = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("quizzes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_id = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("quiz_questions.id", ondelete="CASCADE"),
        nullable=False,
    )
    selected_option_id = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("quiz_options.id", ondelete="SET NULL"),
        nullable=True,
    )
    text_answer = Column(Text, nullable=True)
    attachment_url = Column(Text, nullable=True)
    # NULL score means pending manual grading (or not recorded)
    score = Column(Integer, nullable=True)
    feedback = Column(Text, nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=False)
    graded_at = Column(DateTime(timezone=True), nullable=True)
    graded_by = Column(
        PG_UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    question = relationship("QuizQuestion")
    student = relationship("User", foreign_keys=[student_id])

    @property
    def is_graded(self) -> bool:
        return self.graded_at is not None
