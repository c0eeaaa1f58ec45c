"""Per-subject access gate.

Decides whether a student may use curriculum-scoped features (tutoring chat,
lessons, quizzes) for a subject. The gate only reads; permissions are written
by admins through the permissions routes. Every failure path denies.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AccessDeniedError
from app.models.access_permission import AccessPermission
from app.utils.datetime_utils import Clock, ensure_utc, get_current_utc_datetime
from app.utils.enums import AccessDenialReason

logger = logging.getLogger(__name__)

DENIAL_MESSAGES = {
    AccessDenialReason.no_permission: "You are not subscribed to this subject. Please contact the administration.",
    AccessDenialReason.expired: "Your access to this subject has expired. Please renew your subscription.",
    AccessDenialReason.system_error: "We could not verify your access right now. Please try again later.",
    AccessDenialReason.no_curriculum: "No curriculum has been uploaded for this subject yet. Please ask the administration to upload it.",
}


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: Optional[AccessDenialReason] = None

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: AccessDenialReason) -> "AccessDecision":
        return cls(allowed=False, reason=reason)

    @property
    def message(self) -> Optional[str]:
        return DENIAL_MESSAGES.get(self.reason) if self.reason else None


def _within_window(permission: AccessPermission, now) -> bool:
    start = ensure_utc(permission.start_date)
    end = ensure_utc(permission.end_date)
    if start is not None and now < start:
        return False
    if end is not None and now > end:
        return False
    return True


async def check_access(
    student_id: uuid.UUID,
    subject_id: uuid.UUID,
    db: AsyncSession,
    clock: Clock = get_current_utc_datetime,
) -> AccessDecision:
    """
    Return whether the student may use the subject's curriculum features.

    Args:
        student_id: Authenticated student
        subject_id: Subject being accessed
        db: Database session
        clock: Source of the current time

    Returns:
        AccessDecision; denied with ``no_permission`` when there is no row or
        ``has_access`` is false, ``expired`` outside [start_date, end_date],
        and ``system_error`` when the lookup itself fails.
    """
    try:
        result = await db.execute(
            select(AccessPermission)
            .where(
                AccessPermission.student_id == student_id,
                AccessPermission.subject_id == subject_id,
            )
            .limit(1)
        )
        permission = result.scalars().first()
    except SQLAlchemyError as exc:
        logger.error(
            "access_check_failed student_id=%s subject_id=%s error=%s",
            student_id, subject_id, exc,
        )
        return AccessDecision.deny(AccessDenialReason.system_error)

    if permission is None or not permission.has_access:
        return AccessDecision.deny(AccessDenialReason.no_permission)

    if not _within_window(permission, ensure_utc(clock())):
        return AccessDecision.deny(AccessDenialReason.expired)

    return AccessDecision.allow()


async def require_access(
    student_id: uuid.UUID,
    subject_id: uuid.UUID,
    db: AsyncSession,
    clock: Clock = get_current_utc_datetime,
) -> None:
    """Raise AccessDeniedError unless ``check_access`` allows the pair."""
    decision = await check_access(student_id, subject_id, db, clock=clock)
    if not decision.allowed:
        logger.info(
            "access_denied student_id=%s subject_id=%s reason=%s",
            student_id, subject_id, decision.reason.value,
        )
        raise AccessDeniedError(decision.message, reason=decision.reason.value)


async def list_accessible_subject_ids(
    student_id: uuid.UUID,
    db: AsyncSession,
    clock: Clock = get_current_utc_datetime,
) -> List[uuid.UUID]:
    """Subjects the student can use right now (granted and inside the window)."""
    result = await db.execute(
        select(AccessPermission).where(
            AccessPermission.student_id == student_id,
            AccessPermission.has_access.is_(True),
        )
    )
    now = ensure_utc(clock())
    return [p.subject_id for p in result.scalars().all() if _within_window(p, now)]
