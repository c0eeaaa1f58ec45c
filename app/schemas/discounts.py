from typing import Annotated, Optional

from pydantic import BaseModel, Field, StringConstraints, model_validator

from app.utils.enums import DiscountType

TitleStr = Annotated[str, StringConstraints(min_length=1, max_length=255, strip_whitespace=True)]


class DiscountCreateRequest(BaseModel):
    title: TitleStr
    description: Optional[str] = None
    discount_type: DiscountType
    discount_value: int = Field(..., gt=0)
    company: TitleStr
    contact_number: Optional[Annotated[str, StringConstraints(max_length=20)]] = None
    image_url: Optional[str] = None

    @model_validator(mode="after")
    def validate_value(self) -> "DiscountCreateRequest":
        if self.discount_type == DiscountType.percentage and self.discount_value > 100:
            raise ValueError("A percentage discount cannot exceed 100")
        return self


class DiscountToggleRequest(BaseModel):
    is_active: bool
