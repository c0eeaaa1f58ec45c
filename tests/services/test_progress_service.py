from __future__ import annotations

from datetime import timedelta

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from app.core.exceptions import AccessDeniedError
from app.models.student_progress import StudentProgress
from app.models.user import Role
from app.schemas.quizzes import MultipleChoiceAnswer
from app.services.progress_service import (
    get_student_stats,
    list_subject_progress,
    set_lesson_progress,
)
from app.services.quiz_service import QuizSubmissionService
from app.services.subject_service import SubjectService
from app.utils.enums import QuizKind
from tests.factories import (
    FIXED_NOW,
    fixed_clock,
    grant,
    make_lesson,
    make_quiz,
    make_subject,
    make_user,
    option_by_text,
)

pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture()
async def seeded(db_session):
    admin = await make_user(db_session, Role.admin)
    student = await make_user(db_session, Role.student)
    subject = await make_subject(db_session, admin)
    await grant(db_session, student, subject, admin, start_date=FIXED_NOW - timedelta(days=2))
    return admin, student, subject


async def _progress_count(db_session):
    return await db_session.scalar(select(func.count()).select_from(StudentProgress))


async def test_marking_a_lesson_is_an_upsert(db_session, seeded):
    admin, student, subject = seeded
    lesson = await make_lesson(db_session, subject, admin)

    done = await set_lesson_progress(db_session, student.id, lesson.id, clock=fixed_clock)
    assert done.is_completed is True
    assert done.completed_at == FIXED_NOW

    undone = await set_lesson_progress(
        db_session, student.id, lesson.id, is_completed=False, clock=fixed_clock
    )
    assert undone.completed_at is None
    assert await _progress_count(db_session) == 1

    rows = await list_subject_progress(db_session, student.id, subject.id)
    assert [row.is_completed for row in rows] == [False]


async def test_progress_requires_access_to_the_subject(db_session, seeded):
    admin, _, _ = seeded
    outsider = await make_user(db_session, Role.student)
    locked = await make_subject(db_session, admin, name="Physics")
    lesson = await make_lesson(db_session, locked, admin)

    with pytest.raises(AccessDeniedError):
        await set_lesson_progress(db_session, outsider.id, lesson.id, clock=fixed_clock)

    assert await _progress_count(db_session) == 0


async def test_deleting_a_lesson_removes_its_progress(db_session, seeded):
    admin, student, subject = seeded
    lesson = await make_lesson(db_session, subject, admin)
    await set_lesson_progress(db_session, student.id, lesson.id, clock=fixed_clock)

    await SubjectService(db_session).delete_lesson(lesson.id)

    assert await _progress_count(db_session) == 0


async def test_stats_cover_only_accessible_subjects(db_session, seeded):
    admin, student, subject = seeded
    # Grant started two days before FIXED_NOW, so today is study day 3
    first_day = await make_lesson(db_session, subject, admin, day_number=1)
    await make_lesson(db_session, subject, admin, day_number=3, title="Today A")
    await make_lesson(db_session, subject, admin, day_number=3, title="Today B")
    locked = await make_subject(db_session, admin, name="Physics")
    await make_lesson(db_session, locked, admin, day_number=3)
    await make_quiz(db_session, locked, admin, kind=QuizKind.monthly)

    attempted = await make_quiz(db_session, subject, admin, kind=QuizKind.daily, day_number=1)
    await make_quiz(db_session, subject, admin, kind=QuizKind.daily, day_number=2)
    await make_quiz(db_session, subject, admin, kind=QuizKind.monthly)
    question = attempted.questions[0]
    await QuizSubmissionService(db_session, clock=fixed_clock).submit(
        student.id,
        attempted.id,
        [
            MultipleChoiceAnswer(
                kind="multiple_choice",
                question_id=question.id,
                selected_option_id=option_by_text(question, "A").id,
            )
        ],
    )
    await set_lesson_progress(db_session, student.id, first_day.id, clock=fixed_clock)

    stats = await get_student_stats(db_session, student.id, clock=fixed_clock)

    assert stats["subjects"] == 1
    assert stats["lessons_today"] == 2
    assert stats["pending_quizzes"] == 2
    assert stats["completed_lessons"] == 1
    assert stats["total_lessons"] == 3


async def test_stats_without_any_access_are_zero(db_session):
    student = await make_user(db_session, Role.student)

    stats = await get_student_stats(db_session, student.id, clock=fixed_clock)

    assert stats == {
        "subjects": 0,
        "lessons_today": 0,
        "pending_quizzes": 0,
        "completed_lessons": 0,
        "total_lessons": 0,
        "active_discounts": 0,
    }
