import uuid
from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey, func
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import relationship
from app.db.deps import Base


class Subject(Base):
    __tablename__ = "subjects"

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    number_of_days = Column(Integer, nullable=False, default=30)
    curriculum = Column(Text, nullable=True)
    # Plain URL or a base64 data URL ("data:application/pdf;base64,...")
    curriculum_url = Column(Text, nullable=True)
    created_by = Column(PG_UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    lessons = relationship("Lesson", back_populates="subject", passive_deletes=True)
    quizzes = relationship("Quiz", back_populates="subject", passive_deletes=True)

    @property
    def has_curriculum(self) -> bool:
        return bool((self.curriculum or "").strip() or (self.curriculum_url or "").strip())
