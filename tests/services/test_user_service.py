from __future__ import annotations

import uuid

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from app.core.exceptions import UserNotFound, ValidationFailure
from app.models.access_permission import AccessPermission
from app.models.chat_history import ChatHistory
from app.models.student_answer import StudentAnswer
from app.models.student_progress import StudentProgress
from app.models.user import Role, User
from app.schemas.quizzes import EssayAnswer
from app.services.progress_service import set_lesson_progress
from app.services.quiz_service import GradingService, QuizSubmissionService
from app.services.user_service import delete_user
from app.utils.enums import QuizKind
from tests.factories import (
    FIXED_NOW,
    essay_question,
    fixed_clock,
    grant,
    make_lesson,
    make_quiz,
    make_subject,
    make_user,
)

pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture()
async def seeded(db_session):
    admin = await make_user(db_session, Role.admin)
    student = await make_user(db_session, Role.student)
    subject = await make_subject(db_session, admin)
    await grant(db_session, student, subject, admin)
    return admin, student, subject


async def _count(db_session, model, column, value):
    return await db_session.scalar(
        select(func.count()).select_from(model).where(column == value)
    )


async def _submit_essay(db_session, student, quiz):
    await QuizSubmissionService(db_session, clock=fixed_clock).submit(
        student.id,
        quiz.id,
        [EssayAnswer(kind="essay", question_id=quiz.questions[0].id, text="Water moves")],
    )
    result = await db_session.execute(
        select(StudentAnswer).where(StudentAnswer.student_id == student.id)
    )
    return result.scalars().one()


async def test_deleting_a_student_removes_their_records(db_session, seeded):
    admin, student, subject = seeded
    student_id = student.id
    quiz = await make_quiz(
        db_session, subject, admin, kind=QuizKind.semester, questions=[essay_question()]
    )
    lesson = await make_lesson(db_session, subject, admin)
    await _submit_essay(db_session, student, quiz)
    await set_lesson_progress(db_session, student_id, lesson.id, clock=fixed_clock)
    db_session.add(
        ChatHistory(
            student_id=student_id,
            subject_id=subject.id,
            question="Q",
            answer="A",
            created_at=FIXED_NOW,
        )
    )
    await db_session.commit()

    await delete_user(db_session, student_id, admin)

    assert await db_session.get(User, student_id) is None
    assert await _count(db_session, StudentAnswer, StudentAnswer.student_id, student_id) == 0
    assert await _count(db_session, AccessPermission, AccessPermission.student_id, student_id) == 0
    assert await _count(db_session, StudentProgress, StudentProgress.student_id, student_id) == 0
    assert await _count(db_session, ChatHistory, ChatHistory.student_id, student_id) == 0


async def test_deleting_a_grader_keeps_the_grades(db_session, seeded):
    admin, student, subject = seeded
    grader = await make_user(db_session, Role.admin)
    grader_id = grader.id
    quiz = await make_quiz(
        db_session, subject, admin, kind=QuizKind.semester, questions=[essay_question()]
    )
    answer = await _submit_essay(db_session, student, quiz)
    await GradingService(db_session, clock=fixed_clock).grade_answer(answer.id, 1, grader_id=grader_id)

    await delete_user(db_session, grader_id, admin)

    row = (
        await db_session.execute(
            select(StudentAnswer)
            .where(StudentAnswer.id == answer.id)
            .execution_options(populate_existing=True)
        )
    ).scalars().one()
    assert row.score == 1
    assert row.graded_by is None


async def test_account_that_owns_content_is_kept(db_session, seeded):
    admin, _, _ = seeded
    other_admin = await make_user(db_session, Role.admin)

    with pytest.raises(ValidationFailure) as exc_info:
        await delete_user(db_session, admin.id, other_admin)

    assert exc_info.value.data["authored_rows"] >= 2
    assert await db_session.get(User, admin.id) is not None


async def test_cannot_delete_self_or_unknown_account(db_session, seeded):
    admin, _, _ = seeded

    with pytest.raises(ValidationFailure):
        await delete_user(db_session, admin.id, admin)
    with pytest.raises(UserNotFound):
        await delete_user(db_session, uuid.uuid4(), admin)
