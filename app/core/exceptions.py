"""Domain error taxonomy surfaced to API callers.

Every error carries an ``error_code`` and an HTTP status so the exception
handler in ``app.main`` can render it with ``error_response`` without the
services knowing anything about HTTP.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import status


class AppError(Exception):
    """Base exception for errors the presentation layer can inspect."""

    error_code = "APP_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, data: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.data = data


class NotFoundError(AppError):
    """Raised when a referenced entity does not exist."""

    error_code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class QuizNotFound(NotFoundError):
    error_code = "QUIZ_NOT_FOUND"


class QuestionNotFound(NotFoundError):
    error_code = "QUESTION_NOT_FOUND"


class AnswerNotFound(NotFoundError):
    error_code = "ANSWER_NOT_FOUND"


class SubjectNotFound(NotFoundError):
    error_code = "SUBJECT_NOT_FOUND"


class LessonNotFound(NotFoundError):
    error_code = "LESSON_NOT_FOUND"


class DiscountNotFound(NotFoundError):
    error_code = "DISCOUNT_NOT_FOUND"


class UserNotFound(NotFoundError):
    error_code = "USER_NOT_FOUND"


class AccessDeniedError(AppError):
    """Raised when a curriculum-scoped feature is refused.

    ``reason`` is one of the ``AccessDenialReason`` values.
    """

    error_code = "ACCESS_DENIED"
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str, reason: str):
        super().__init__(message, data={"reason": reason})
        self.reason = reason


class TransientStorageError(AppError):
    """Raised when the relational store fails; callers may retry."""

    error_code = "STORAGE_UNAVAILABLE"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class SubmissionFailed(TransientStorageError):
    error_code = "SUBMISSION_FAILED"


class ValidationFailure(AppError):
    """Raised for malformed input before anything is persisted."""

    error_code = "VALIDATION_FAILED"
    status_code = status.HTTP_400_BAD_REQUEST
