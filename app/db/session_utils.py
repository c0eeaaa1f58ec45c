"""Commit helpers that turn storage faults into retryable domain errors."""

import logging
from typing import Type

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import TransientStorageError

logger = logging.getLogger(__name__)


async def commit_or_raise(
    db: AsyncSession,
    *,
    operation: str,
    error_cls: Type[TransientStorageError] = TransientStorageError,
) -> None:
    """Commit the session; on failure roll back and raise ``error_cls``."""
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("storage_commit_failed operation=%s error=%s", operation, exc)
        raise error_cls(
            f"Could not save changes ({operation}). Please try again."
        ) from exc
