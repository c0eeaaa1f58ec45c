import uuid
from sqlalchemy import (
    Column, String, Integer, Text, Boolean, DateTime, Enum, ForeignKey, func
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from app.db.deps import Base
from app.utils.enums import DiscountType


class Discount(Base):
    __tablename__ = "discounts"

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    discount_type = Column(Enum(DiscountType), nullable=False)
    discount_value = Column(Integer, nullable=False)
    company = Column(String(255), nullable=False)
    contact_number = Column(String(20), nullable=True)
    image_url = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(PG_UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
