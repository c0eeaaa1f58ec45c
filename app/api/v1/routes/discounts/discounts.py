"""Partner discounts shown to students."""

from __future__ import annotations

import uuid
from typing import Any, Dict

from fastapi import APIRouter, Depends, Query
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.routes.auth.auth import get_current_user
from app.core.exceptions import DiscountNotFound
from app.core.logging_config import get_logger
from app.core.response import ResponseModel, success_response
from app.core.security import is_admin, require_roles
from app.db.deps import get_db
from app.db.session_utils import commit_or_raise
from app.models.discount import Discount
from app.models.user import Role, User
from app.schemas.discounts import DiscountCreateRequest, DiscountToggleRequest

logger = get_logger("discounts")

admin_guard = require_roles(Role.admin)

router = APIRouter(prefix="/discounts", tags=["discounts"])


def serialize_discount(discount: Discount) -> Dict[str, Any]:
    return {
        "id": str(discount.id),
        "title": discount.title,
        "description": discount.description,
        "discount_type": discount.discount_type.value,
        "discount_value": discount.discount_value,
        "company": discount.company,
        "contact_number": discount.contact_number,
        "image_url": discount.image_url,
        "is_active": bool(discount.is_active),
    }


async def _get_discount(db: AsyncSession, discount_id: uuid.UUID) -> Discount:
    discount = await db.get(Discount, discount_id)
    if discount is None:
        raise DiscountNotFound("Discount not found")
    return discount


@router.get("", response_model=ResponseModel)
async def list_discounts(
    include_inactive: bool = Query(False, description="Admins only"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    stmt = select(Discount).order_by(Discount.created_at.desc())
    if not (include_inactive and is_admin(current_user)):
        stmt = stmt.where(Discount.is_active.is_(True))
    discounts = (await db.execute(stmt)).scalars().all()
    return success_response(
        msg="Discounts retrieved", data=[serialize_discount(d) for d in discounts]
    )


@router.post(
    "",
    status_code=201,
    response_model=ResponseModel,
    dependencies=[Depends(admin_guard)],
)
async def create_discount(
    payload: DiscountCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    discount = Discount(**payload.model_dump(), is_active=True, created_by=current_user.id)
    db.add(discount)
    await commit_or_raise(db, operation="create_discount")
    logger.info(f"Discount {discount.id} created by {current_user.id}")
    return success_response(
        msg="Discount created", data=serialize_discount(discount), status_code=201
    )


@router.patch(
    "/{discount_id}",
    response_model=ResponseModel,
    dependencies=[Depends(admin_guard)],
)
async def toggle_discount(
    discount_id: uuid.UUID,
    payload: DiscountToggleRequest,
    db: AsyncSession = Depends(get_db),
):
    discount = await _get_discount(db, discount_id)
    discount.is_active = payload.is_active
    await commit_or_raise(db, operation="toggle_discount")
    return success_response(msg="Discount updated", data=serialize_discount(discount))


@router.delete(
    "/{discount_id}",
    response_model=ResponseModel,
    dependencies=[Depends(admin_guard)],
)
async def delete_discount(
    discount_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    discount = await _get_discount(db, discount_id)
    await db.execute(delete(Discount).where(Discount.id == discount.id))
    await commit_or_raise(db, operation="delete_discount")
    return success_response(msg="Discount deleted", data={"id": str(discount_id)})
