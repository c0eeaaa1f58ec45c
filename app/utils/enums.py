import enum


class QuizKind(str, enum.Enum):
    daily = "daily"
    monthly = "monthly"
    semester = "semester"


class QuestionKind(str, enum.Enum):
    multiple_choice = "multiple_choice"
    short_answer = "short_answer"
    essay = "essay"


class AccessDenialReason(str, enum.Enum):
    no_permission = "no_permission"
    expired = "expired"
    system_error = "system_error"
    # Raised by the tutoring chat, not by the gate itself
    no_curriculum = "no_curriculum"


class DiscountType(str, enum.Enum):
    percentage = "percentage"
    fixed = "fixed"
