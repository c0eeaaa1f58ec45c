from __future__ import annotations

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from app.services.quiz_service.scoring import round_half_up, score_choice, summarize_attempt
from tests.factories import FIXED_NOW


def _row(score=None, graded=True, submitted_at=FIXED_NOW):
    return SimpleNamespace(
        score=score,
        graded_at=submitted_at if graded else None,
        submitted_at=submitted_at,
    )


def test_score_choice_is_binary():
    assert score_choice(SimpleNamespace(is_correct=True)) == 1
    assert score_choice(SimpleNamespace(is_correct=False)) == 0


@pytest.mark.parametrize("value, expected", [(66.5, 67), (66.49, 66), (0.5, 1), (100.0, 100)])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_empty_attempt_is_zero_and_not_graded():
    summary = summarize_attempt([])

    assert summary.percentage == 0
    assert summary.is_graded is False
    assert summary.submitted_at is None


def test_ungraded_rows_are_excluded_from_percentage():
    summary = summarize_attempt([_row(1), _row(0), _row(1), _row(None, graded=False)])

    assert summary.graded_count == 3
    assert summary.answered_count == 4
    assert summary.percentage == 67
    assert summary.is_graded is False


def test_latest_submission_time_is_reported_in_utc():
    naive_later = (FIXED_NOW + timedelta(minutes=3)).replace(tzinfo=None)

    summary = summarize_attempt([_row(1), _row(1, submitted_at=naive_later)])

    assert summary.submitted_at == FIXED_NOW + timedelta(minutes=3)
    assert summary.submitted_at.tzinfo is not None
    assert isinstance(summary.submitted_at, datetime)
