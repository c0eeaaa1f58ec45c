"""Quiz authoring, submission, grading and result views."""

from .grading import GradingService
from .submission import QuizSubmissionService, SubmissionResult

__all__ = [
    "GradingService",
    "QuizSubmissionService",
    "SubmissionResult",
]
