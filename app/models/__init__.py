# app/models/__init__.py

from .user import User
from .subject import Subject
from .lesson import Lesson
from .quiz import Quiz, QuizQuestion, QuizOption
from .student_answer import StudentAnswer
from .access_permission import AccessPermission
from .chat_history import ChatHistory
from .discount import Discount
from .student_progress import StudentProgress

__all__ = [
    "User",
    "Subject",
    "Lesson",
    "Quiz",
    "QuizQuestion",
    "QuizOption",
    "StudentAnswer",
    "AccessPermission",
    "ChatHistory",
    "Discount",
    "StudentProgress",
]
