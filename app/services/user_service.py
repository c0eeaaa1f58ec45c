"""Account removal by the administration."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import UserNotFound, ValidationFailure
from app.db.session_utils import commit_or_raise
from app.models.access_permission import AccessPermission
from app.models.chat_history import ChatHistory
from app.models.discount import Discount
from app.models.lesson import Lesson
from app.models.quiz import Quiz
from app.models.student_answer import StudentAnswer
from app.models.student_progress import StudentProgress
from app.models.subject import Subject
from app.models.user import User

logger = logging.getLogger(__name__)

# Content rows that keep a non-null reference to their author
AUTHORED_MODELS = (Subject, Lesson, Quiz, Discount, AccessPermission)


async def _authored_count(db: AsyncSession, user_id: uuid.UUID) -> int:
    total = 0
    for model in AUTHORED_MODELS:
        total += await db.scalar(
            select(func.count()).select_from(model).where(model.created_by == user_id)
        ) or 0
    return total


async def delete_user(db: AsyncSession, user_id: uuid.UUID, acting_user: User) -> None:
    """Delete an account with its answers, grants, progress and chat history.

    Grades the user gave stay on the answers without a grader. Accounts that
    still author content cannot be removed.
    """
    if user_id == acting_user.id:
        raise ValidationFailure("You cannot delete your own account")

    user = await db.get(User, user_id)
    if user is None:
        raise UserNotFound("User not found")

    authored = await _authored_count(db, user.id)
    if authored:
        raise ValidationFailure(
            "This account still owns content; delete or reassign it first",
            data={"authored_rows": authored},
        )

    await db.execute(delete(StudentAnswer).where(StudentAnswer.student_id == user.id))
    await db.execute(
        update(StudentAnswer).where(StudentAnswer.graded_by == user.id).values(graded_by=None)
    )
    await db.execute(delete(AccessPermission).where(AccessPermission.student_id == user.id))
    await db.execute(delete(StudentProgress).where(StudentProgress.student_id == user.id))
    await db.execute(delete(ChatHistory).where(ChatHistory.student_id == user.id))
    await db.execute(delete(User).where(User.id == user.id))
    await commit_or_raise(db, operation="delete_user")
    logger.info("user_deleted user_id=%s by=%s", user.id, acting_user.id)
