from __future__ import annotations

import uuid
from datetime import timedelta

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from app.core.exceptions import QuestionNotFound, QuizNotFound, SubmissionFailed, ValidationFailure
from app.models.student_answer import StudentAnswer
from app.models.user import Role
from app.schemas.quizzes import EssayAnswer, MultipleChoiceAnswer, ShortAnswer
from app.services.quiz_service import QuizSubmissionService
from app.utils.enums import QuizKind
from tests.factories import (
    FIXED_NOW,
    choice_question,
    essay_question,
    fixed_clock,
    make_quiz,
    make_subject,
    make_user,
    option_by_text,
    short_question,
)

pytestmark = pytest.mark.asyncio


async def _answers(db_session, student_id, quiz_id):
    result = await db_session.execute(
        select(StudentAnswer)
        .where(StudentAnswer.student_id == student_id, StudentAnswer.quiz_id == quiz_id)
        .execution_options(populate_existing=True)
    )
    return result.scalars().all()


@pytest_asyncio.fixture()
async def seeded(db_session):
    admin = await make_user(db_session, Role.admin)
    student = await make_user(db_session, Role.student, name="Sara")
    subject = await make_subject(db_session, admin)
    return admin, student, subject


def _choice(question, option=None):
    return MultipleChoiceAnswer(
        kind="multiple_choice",
        question_id=question.id,
        selected_option_id=option.id if option is not None else None,
    )


async def test_correct_choice_is_scored_and_graded(db_session, seeded):
    admin, student, subject = seeded
    quiz = await make_quiz(db_session, subject, admin, kind=QuizKind.daily)
    question = quiz.questions[0]

    result = await QuizSubmissionService(db_session, clock=fixed_clock).submit(
        student.id, quiz.id, [_choice(question, option_by_text(question, "A"))], is_first_attempt=True
    )

    assert result.correct_count == 1
    assert result.total_questions == 1
    assert result.rows_written == 1
    assert result.score_recorded is True

    rows = await _answers(db_session, student.id, quiz.id)
    assert len(rows) == 1
    assert rows[0].score == 1
    assert rows[0].graded_at is not None


async def test_wrong_choice_scores_zero(db_session, seeded):
    admin, student, subject = seeded
    quiz = await make_quiz(db_session, subject, admin, kind=QuizKind.monthly)
    question = quiz.questions[0]

    result = await QuizSubmissionService(db_session, clock=fixed_clock).submit(
        student.id, quiz.id, [_choice(question, option_by_text(question, "B"))]
    )

    rows = await _answers(db_session, student.id, quiz.id)
    assert result.correct_count == 0
    assert rows[0].score == 0
    assert rows[0].graded_at is not None


async def test_free_text_and_unselected_choice_stay_pending(db_session, seeded):
    admin, student, subject = seeded
    quiz = await make_quiz(
        db_session,
        subject,
        admin,
        kind=QuizKind.semester,
        questions=[choice_question(), essay_question(), short_question()],
    )
    mc, essay, short = quiz.questions

    await QuizSubmissionService(db_session, clock=fixed_clock).submit(
        student.id,
        quiz.id,
        [
            _choice(mc),
            EssayAnswer(kind="essay", question_id=essay.id, text="Water moves"),
            ShortAnswer(kind="short_answer", question_id=short.id, text="Mitochondria"),
        ],
    )

    rows = await _answers(db_session, student.id, quiz.id)
    assert len(rows) == 3
    assert all(row.score is None and row.graded_at is None for row in rows)
    by_question = {row.question_id: row for row in rows}
    assert by_question[short.id].text_answer == "Mitochondria"
    assert by_question[essay.id].text_answer == "Water moves"


async def test_partial_answer_set_is_accepted(db_session, seeded):
    admin, student, subject = seeded
    quiz = await make_quiz(
        db_session, subject, admin, kind=QuizKind.monthly,
        questions=[choice_question("Q1"), choice_question("Q2")],
    )
    first = quiz.questions[0]

    result = await QuizSubmissionService(db_session, clock=fixed_clock).submit(
        student.id, quiz.id, [_choice(first, option_by_text(first, "A"))]
    )

    assert result.rows_written == 1
    assert result.total_questions == 2
    assert len(await _answers(db_session, student.id, quiz.id)) == 1


async def test_resubmission_upserts_instead_of_duplicating(db_session, seeded):
    admin, student, subject = seeded
    quiz = await make_quiz(db_session, subject, admin, kind=QuizKind.monthly)
    question = quiz.questions[0]
    service = QuizSubmissionService(db_session, clock=fixed_clock)

    await service.submit(student.id, quiz.id, [_choice(question, option_by_text(question, "B"))])
    await service.submit(student.id, quiz.id, [_choice(question, option_by_text(question, "A"))])

    rows = await _answers(db_session, student.id, quiz.id)
    assert len(rows) == 1
    assert rows[0].score == 1


async def test_daily_repeat_attempt_does_not_overwrite_first_score(db_session, seeded):
    admin, student, subject = seeded
    quiz = await make_quiz(
        db_session, subject, admin, kind=QuizKind.daily,
        questions=[choice_question("Q1"), choice_question("Q2")],
    )
    q1, q2 = quiz.questions
    service = QuizSubmissionService(db_session, clock=fixed_clock)

    await service.submit(
        student.id, quiz.id, [_choice(q1, option_by_text(q1, "B"))], is_first_attempt=True
    )
    # Client wrongly claims a first attempt again; the graded row wins
    retry = await service.submit(
        student.id,
        quiz.id,
        [_choice(q1, option_by_text(q1, "A")), _choice(q2, option_by_text(q2, "A"))],
        is_first_attempt=True,
    )

    assert retry.is_first_attempt is False
    assert retry.score_recorded is False
    assert retry.correct_count == 2
    assert retry.rows_written == 1

    rows = {row.question_id: row for row in await _answers(db_session, student.id, quiz.id)}
    assert rows[q1.id].score == 0
    assert rows[q1.id].selected_option_id == option_by_text(q1, "B").id
    assert rows[q2.id].score is None
    assert rows[q2.id].graded_at is None


async def test_daily_attempt_flagged_not_first_records_no_score(db_session, seeded):
    admin, student, subject = seeded
    quiz = await make_quiz(db_session, subject, admin, kind=QuizKind.daily)
    question = quiz.questions[0]

    result = await QuizSubmissionService(db_session, clock=fixed_clock).submit(
        student.id, quiz.id, [_choice(question, option_by_text(question, "A"))], is_first_attempt=False
    )

    rows = await _answers(db_session, student.id, quiz.id)
    assert result.correct_count == 1
    assert result.score_recorded is False
    assert rows[0].score is None


async def test_non_daily_ignores_first_attempt_flag(db_session, seeded):
    admin, student, subject = seeded
    quiz = await make_quiz(db_session, subject, admin, kind=QuizKind.semester)
    question = quiz.questions[0]

    result = await QuizSubmissionService(db_session, clock=fixed_clock).submit(
        student.id, quiz.id, [_choice(question, option_by_text(question, "A"))], is_first_attempt=False
    )

    rows = await _answers(db_session, student.id, quiz.id)
    assert result.score_recorded is True
    assert rows[0].score == 1


async def test_resubmitting_essay_clears_manual_grade(db_session, seeded):
    admin, student, subject = seeded
    quiz = await make_quiz(
        db_session, subject, admin, kind=QuizKind.semester, questions=[essay_question()]
    )
    question = quiz.questions[0]
    service = QuizSubmissionService(db_session, clock=fixed_clock)
    await service.submit(student.id, quiz.id, [EssayAnswer(kind="essay", question_id=question.id, text="v1")])

    row = (await _answers(db_session, student.id, quiz.id))[0]
    row.score = 1
    row.feedback = "Good"
    row.graded_at = FIXED_NOW
    row.graded_by = admin.id
    await db_session.commit()

    later = QuizSubmissionService(db_session, clock=lambda: FIXED_NOW + timedelta(hours=1))
    await later.submit(student.id, quiz.id, [EssayAnswer(kind="essay", question_id=question.id, text="v2")])

    row = (await _answers(db_session, student.id, quiz.id))[0]
    assert row.text_answer == "v2"
    assert row.score is None
    assert row.feedback is None
    assert row.graded_at is None


async def test_unknown_quiz_raises(db_session, seeded):
    _, student, _ = seeded

    with pytest.raises(QuizNotFound):
        await QuizSubmissionService(db_session).submit(student.id, uuid.uuid4(), [])


async def test_quiz_without_questions_raises(db_session, seeded):
    admin, student, subject = seeded
    quiz = await make_quiz(db_session, subject, admin, kind=QuizKind.monthly, questions=[])

    with pytest.raises(QuizNotFound):
        await QuizSubmissionService(db_session).submit(student.id, quiz.id, [])


async def test_invalid_answers_are_rejected_before_any_write(db_session, seeded):
    admin, student, subject = seeded
    quiz = await make_quiz(
        db_session, subject, admin, kind=QuizKind.monthly,
        questions=[choice_question("Q1"), choice_question("Q2")],
    )
    other = await make_quiz(db_session, subject, admin, kind=QuizKind.monthly, title="Other")
    q1, q2 = quiz.questions
    foreign_question = other.questions[0]
    service = QuizSubmissionService(db_session, clock=fixed_clock)
    good = _choice(q1, option_by_text(q1, "A"))

    with pytest.raises(QuestionNotFound):
        await service.submit(student.id, quiz.id, [good, _choice(foreign_question, foreign_question.options[0])])

    with pytest.raises(ValidationFailure):
        await service.submit(student.id, quiz.id, [good, _choice(q2, option_by_text(q1, "A"))])

    with pytest.raises(ValidationFailure):
        await service.submit(student.id, quiz.id, [good, good])

    with pytest.raises(ValidationFailure):
        await service.submit(
            student.id, quiz.id, [good, ShortAnswer(kind="short_answer", question_id=q2.id, text="x")]
        )

    assert await _answers(db_session, student.id, quiz.id) == []


async def test_storage_failure_rolls_back_and_raises(db_session, seeded, monkeypatch):
    admin, student, subject = seeded
    quiz = await make_quiz(db_session, subject, admin, kind=QuizKind.monthly)
    question = quiz.questions[0]
    # rollback expires loaded instances; keep plain ids for the final check
    student_id, quiz_id = student.id, quiz.id

    async def failing_commit():
        raise OperationalError("INSERT", {}, Exception("disk full"))

    monkeypatch.setattr(db_session, "commit", failing_commit)

    with pytest.raises(SubmissionFailed):
        await QuizSubmissionService(db_session, clock=fixed_clock).submit(
            student.id, quiz.id, [_choice(question, option_by_text(question, "A"))]
        )

    monkeypatch.undo()
    assert await _answers(db_session, student_id, quiz_id) == []
