"""Scoring rules shared by submission, grading and result views."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from app.models.quiz import QuizOption
from app.models.student_answer import StudentAnswer
from app.utils.datetime_utils import ensure_utc


def score_choice(option: QuizOption) -> int:
    """Binary score for a selected option."""
    return 1 if option.is_correct else 0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class AttemptSummary:
    answered_count: int
    graded_count: int
    score_total: int
    percentage: int
    is_graded: bool
    submitted_at: Optional[datetime]


def summarize_attempt(rows: Iterable[StudentAnswer]) -> AttemptSummary:
    """Aggregate one student's answer rows for a quiz.

    The percentage only counts rows that carry a score, so partially graded
    attempts are scored over the graded subset. With nothing scored the
    percentage is 0. ``is_graded`` requires every row to have ``graded_at``.
    """
    answered = graded = total = 0
    all_graded = True
    latest: Optional[datetime] = None
    for row in rows:
        answered += 1
        if row.score is not None:
            graded += 1
            total += row.score
        if row.graded_at is None:
            all_graded = False
        submitted_at = ensure_utc(row.submitted_at)
        if submitted_at and (latest is None or submitted_at > latest):
            latest = submitted_at

    percentage = round_half_up(100 * total / graded) if graded else 0
    return AttemptSummary(
        answered_count=answered,
        graded_count=graded,
        score_total=total,
        percentage=percentage,
        is_graded=answered > 0 and all_graded,
        submitted_at=latest,
    )
