from __future__ import annotations

import uuid
from datetime import timedelta

import pytest
import pytest_asyncio
from sqlalchemy import select

from app.core.exceptions import AnswerNotFound, QuizNotFound, ValidationFailure
from app.models.student_answer import StudentAnswer
from app.models.user import Role
from app.schemas.quizzes import EssayAnswer, MultipleChoiceAnswer
from app.services.quiz_service import GradingService, QuizSubmissionService
from app.services.quiz_service.grading import UNKNOWN_STUDENT_NAME
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
)

pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture()
async def seeded(db_session):
    admin = await make_user(db_session, Role.admin)
    student = await make_user(db_session, Role.student, name="Sara")
    subject = await make_subject(db_session, admin)
    return admin, student, subject


async def _submit_choice(db_session, student, quiz, label, clock=fixed_clock):
    question = quiz.questions[0]
    await QuizSubmissionService(db_session, clock=clock).submit(
        student.id,
        quiz.id,
        [
            MultipleChoiceAnswer(
                kind="multiple_choice",
                question_id=question.id,
                selected_option_id=option_by_text(question, label).id,
            )
        ],
    )


async def _submit_essay(db_session, student, quiz, text="Water moves"):
    await QuizSubmissionService(db_session, clock=fixed_clock).submit(
        student.id,
        quiz.id,
        [EssayAnswer(kind="essay", question_id=quiz.questions[0].id, text=text)],
    )
    result = await db_session.execute(
        select(StudentAnswer).where(
            StudentAnswer.student_id == student.id, StudentAnswer.quiz_id == quiz.id
        )
    )
    return result.scalars().first()


async def test_daily_choice_submission_shows_full_marks(db_session, seeded):
    admin, student, subject = seeded
    quiz = await make_quiz(db_session, subject, admin, kind=QuizKind.daily, day_number=4)

    await _submit_choice(db_session, student, quiz, "A")
    submissions = await GradingService(db_session).get_submissions(quiz.id)

    assert len(submissions) == 1
    assert submissions[0]["student_id"] == str(student.id)
    assert submissions[0]["student_name"] == "Sara"
    assert submissions[0]["percentage"] == 100
    assert submissions[0]["is_graded"] is True


async def test_essay_percentage_is_zero_until_graded(db_session, seeded):
    admin, student, subject = seeded
    quiz = await make_quiz(
        db_session, subject, admin, kind=QuizKind.semester, questions=[essay_question()]
    )
    answer = await _submit_essay(db_session, student, quiz)
    service = GradingService(db_session, clock=lambda: FIXED_NOW + timedelta(hours=2))

    before = await service.get_submissions(quiz.id)
    assert before[0]["percentage"] == 0
    assert before[0]["is_graded"] is False
    assert before[0]["graded_count"] == 0

    graded = await service.grade_answer(answer.id, 1, grader_id=admin.id, feedback="Well argued")
    assert graded.graded_by == admin.id
    assert graded.feedback == "Well argued"

    after = await service.get_submissions(quiz.id)
    assert after[0]["percentage"] == 100
    assert after[0]["is_graded"] is True


async def test_partially_graded_attempt_scores_graded_subset(db_session, seeded):
    admin, student, subject = seeded
    quiz = await make_quiz(
        db_session,
        subject,
        admin,
        kind=QuizKind.monthly,
        questions=[choice_question(), essay_question()],
    )
    mc, essay = quiz.questions
    await QuizSubmissionService(db_session, clock=fixed_clock).submit(
        student.id,
        quiz.id,
        [
            MultipleChoiceAnswer(
                kind="multiple_choice",
                question_id=mc.id,
                selected_option_id=option_by_text(mc, "A").id,
            ),
            EssayAnswer(kind="essay", question_id=essay.id, text="Unsure"),
        ],
    )

    submissions = await GradingService(db_session).get_submissions(quiz.id)

    assert submissions[0]["percentage"] == 100
    assert submissions[0]["graded_count"] == 1
    assert submissions[0]["answered_count"] == 2
    assert submissions[0]["is_graded"] is False


async def test_regrading_is_last_write_wins(db_session, seeded):
    admin, student, subject = seeded
    other_admin = await make_user(db_session, Role.admin)
    quiz = await make_quiz(
        db_session, subject, admin, kind=QuizKind.semester, questions=[essay_question()]
    )
    answer = await _submit_essay(db_session, student, quiz)
    service = GradingService(db_session, clock=lambda: FIXED_NOW + timedelta(hours=1))

    await service.grade_answer(answer.id, 1, grader_id=admin.id, feedback="Good")
    await service.grade_answer(answer.id, 0, grader_id=other_admin.id)
    await service.grade_answer(answer.id, 0, grader_id=other_admin.id)

    rows = (
        await db_session.execute(
            select(StudentAnswer)
            .where(StudentAnswer.quiz_id == quiz.id)
            .execution_options(populate_existing=True)
        )
    ).scalars().all()
    assert len(rows) == 1
    assert rows[0].score == 0
    assert rows[0].feedback is None
    assert rows[0].graded_by == other_admin.id


async def test_graded_at_never_precedes_submission(db_session, seeded):
    admin, student, subject = seeded
    quiz = await make_quiz(
        db_session, subject, admin, kind=QuizKind.semester, questions=[essay_question()]
    )
    answer = await _submit_essay(db_session, student, quiz)
    skewed = GradingService(db_session, clock=lambda: FIXED_NOW - timedelta(minutes=5))

    graded = await skewed.grade_answer(answer.id, 1, grader_id=admin.id)

    assert graded.graded_at.replace(tzinfo=None) >= FIXED_NOW.replace(tzinfo=None)


async def test_grade_answer_validates_score_and_answer(db_session, seeded):
    admin, student, subject = seeded
    quiz = await make_quiz(
        db_session, subject, admin, kind=QuizKind.semester, questions=[essay_question()]
    )
    answer = await _submit_essay(db_session, student, quiz)
    service = GradingService(db_session)

    with pytest.raises(ValidationFailure):
        await service.grade_answer(answer.id, 2, grader_id=admin.id)
    with pytest.raises(ValidationFailure):
        await service.grade_answer(answer.id, -1, grader_id=admin.id)
    with pytest.raises(AnswerNotFound):
        await service.grade_answer(uuid.uuid4(), 1, grader_id=admin.id)


async def test_publish_is_idempotent_and_monotonic(db_session, seeded):
    admin, _, subject = seeded
    quiz = await make_quiz(db_session, subject, admin, kind=QuizKind.monthly)
    service = GradingService(db_session)

    first = await service.publish_results(quiz.id)
    second = await service.publish_results(quiz.id)

    assert first.results_published is True
    assert second.results_published is True


async def test_publishing_daily_quiz_is_rejected(db_session, seeded):
    admin, _, subject = seeded
    quiz = await make_quiz(db_session, subject, admin, kind=QuizKind.daily)

    with pytest.raises(ValidationFailure):
        await GradingService(db_session).publish_results(quiz.id)


async def test_publish_unknown_quiz_raises(db_session):
    with pytest.raises(QuizNotFound):
        await GradingService(db_session).publish_results(uuid.uuid4())


async def test_submissions_sorted_by_percentage_then_submission_time(db_session, seeded):
    admin, first_student, subject = seeded
    quiz = await make_quiz(db_session, subject, admin, kind=QuizKind.monthly)
    late_student = await make_user(db_session, Role.student, name="Adam")
    weak_student = await make_user(db_session, Role.student, name="Zoe")

    await _submit_choice(db_session, late_student, quiz, "A", clock=lambda: FIXED_NOW + timedelta(minutes=10))
    await _submit_choice(db_session, weak_student, quiz, "B")
    await _submit_choice(db_session, first_student, quiz, "A")

    submissions = await GradingService(db_session).get_submissions(quiz.id)

    assert [s["student_name"] for s in submissions] == ["Sara", "Adam", "Zoe"]
    assert [s["percentage"] for s in submissions] == [100, 100, 0]


async def test_submissions_tolerate_missing_student_profile(db_session, seeded):
    admin, student, subject = seeded
    quiz = await make_quiz(db_session, subject, admin, kind=QuizKind.monthly)
    await _submit_choice(db_session, student, quiz, "A")

    # Answer left behind by an account that no longer resolves
    orphan = StudentAnswer(
        student_id=uuid.uuid4(),
        quiz_id=quiz.id,
        question_id=quiz.questions[0].id,
        score=0,
        submitted_at=FIXED_NOW,
        graded_at=FIXED_NOW,
    )
    db_session.add(orphan)
    await db_session.commit()

    submissions = await GradingService(db_session).get_submissions(quiz.id)

    assert {s["student_name"] for s in submissions} == {"Sara", UNKNOWN_STUDENT_NAME}


async def test_submission_detail_lists_all_options_for_choice_questions(db_session, seeded):
    admin, student, subject = seeded
    quiz = await make_quiz(
        db_session,
        subject,
        admin,
        kind=QuizKind.monthly,
        questions=[choice_question(), essay_question()],
    )
    mc, essay = quiz.questions
    await QuizSubmissionService(db_session, clock=fixed_clock).submit(
        student.id,
        quiz.id,
        [
            MultipleChoiceAnswer(
                kind="multiple_choice",
                question_id=mc.id,
                selected_option_id=option_by_text(mc, "B").id,
            ),
            EssayAnswer(kind="essay", question_id=essay.id, text="Because"),
        ],
    )

    detail = await GradingService(db_session).get_submission_detail(student.id, quiz.id)

    assert [item["question_kind"] for item in detail] == ["multiple_choice", "essay"]
    choice_item, essay_item = detail
    assert choice_item["selected_option_id"] == str(option_by_text(mc, "B").id)
    assert [(o["text"], o["is_correct"]) for o in choice_item["options"]] == [("A", True), ("B", False)]
    assert choice_item["score"] == 0
    assert essay_item["options"] == []
    assert essay_item["reference_answer_text"] == "Water moves across a membrane"
    assert essay_item["is_graded"] is False
