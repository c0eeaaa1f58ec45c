"""Quiz authoring: validation, creation, model answers and cascading deletes."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import QuizNotFound, SubjectNotFound, ValidationFailure
from app.db.session_utils import commit_or_raise
from app.models.quiz import Quiz, QuizOption, QuizQuestion
from app.models.student_answer import StudentAnswer
from app.models.subject import Subject
from app.models.user import User
from app.schemas.quizzes import ModelAnswerRequest, QuestionIn, QuizCreateRequest
from app.utils.datetime_utils import dt_to_iso
from app.utils.enums import QuestionKind, QuizKind

logger = logging.getLogger(__name__)

MIN_CHOICE_OPTIONS = 2


def validate_question(question: QuestionIn, index: Optional[int] = None) -> None:
    """Reject malformed questions before anything is written."""
    label = f"Question {index}" if index is not None else "Question"
    data = {"question_index": index} if index is not None else None

    if not (question.text or "").strip():
        raise ValidationFailure(f"{label}: question text is required", data=data)

    if question.kind == QuestionKind.multiple_choice:
        if len(question.options) < MIN_CHOICE_OPTIONS:
            raise ValidationFailure(
                f"{label}: a multiple choice question needs at least {MIN_CHOICE_OPTIONS} options",
                data=data,
            )
        if any(not (opt.text or "").strip() for opt in question.options):
            raise ValidationFailure(f"{label}: option text is required", data=data)
        if not any(opt.is_correct for opt in question.options):
            raise ValidationFailure(
                f"{label}: mark at least one option as correct", data=data
            )
    elif question.options:
        raise ValidationFailure(
            f"{label}: only multiple choice questions can have options", data=data
        )


def validate_quiz_definition(payload: QuizCreateRequest) -> None:
    if payload.kind == QuizKind.daily and payload.day_number is None:
        raise ValidationFailure("A daily quiz needs a day_number")
    for index, question in enumerate(payload.questions, start=1):
        validate_question(question, index)


def _build_question(question: QuestionIn, position: int) -> QuizQuestion:
    return QuizQuestion(
        text=question.text.strip(),
        kind=question.kind,
        position=position,
        reference_answer_text=question.reference_answer_text,
        reference_answer_attachment=question.reference_answer_attachment,
        options=[
            QuizOption(text=opt.text.strip(), is_correct=opt.is_correct, position=i)
            for i, opt in enumerate(question.options, start=1)
        ],
    )


async def load_quiz(
    db: AsyncSession, quiz_id: uuid.UUID, with_questions: bool = True
) -> Quiz:
    """Load a quiz (optionally with ordered questions and options) or raise QuizNotFound."""
    stmt = select(Quiz).where(Quiz.id == quiz_id)
    if with_questions:
        stmt = stmt.options(
            selectinload(Quiz.questions).selectinload(QuizQuestion.options)
        )
    quiz = (await db.execute(stmt)).scalars().first()
    if quiz is None:
        raise QuizNotFound("Quiz not found")
    return quiz


async def create_quiz(
    db: AsyncSession, payload: QuizCreateRequest, admin_user: User
) -> Quiz:
    validate_quiz_definition(payload)

    subject = await db.get(Subject, payload.subject_id)
    if subject is None:
        raise SubjectNotFound("Subject not found")

    quiz = Quiz(
        subject_id=subject.id,
        title=payload.title,
        description=payload.description,
        kind=payload.kind,
        # Non-daily quizzes never gate on a day
        day_number=payload.day_number if payload.kind == QuizKind.daily else None,
        scheduled_at=payload.scheduled_at,
        results_published=False,
        created_by=admin_user.id,
        questions=[
            _build_question(question, position)
            for position, question in enumerate(payload.questions, start=1)
        ],
    )
    db.add(quiz)
    await commit_or_raise(db, operation="create_quiz")
    logger.info(
        "quiz_created quiz_id=%s subject_id=%s kind=%s questions=%d",
        quiz.id, subject.id, quiz.kind.value, len(payload.questions),
    )
    # Only the server-side default is missing; questions are already in place
    await db.refresh(quiz, attribute_names=["created_at"])
    return quiz


async def add_question(
    db: AsyncSession, quiz_id: uuid.UUID, payload: QuestionIn
) -> QuizQuestion:
    validate_question(payload)
    quiz = await load_quiz(db, quiz_id)

    last_position = max((q.position for q in quiz.questions), default=0)
    question = _build_question(payload, last_position + 1)
    quiz.questions.append(question)
    await commit_or_raise(db, operation="add_question")
    return question


async def set_model_answer(
    db: AsyncSession, quiz_id: uuid.UUID, payload: ModelAnswerRequest
) -> Quiz:
    quiz = await load_quiz(db, quiz_id, with_questions=False)
    quiz.model_answer_text = payload.text
    quiz.model_answer_attachment = payload.attachment_url
    await commit_or_raise(db, operation="set_model_answer")
    return quiz


async def _delete_quiz_rows(db: AsyncSession, quiz_ids: List[uuid.UUID]) -> None:
    if not quiz_ids:
        return
    question_ids = select(QuizQuestion.id).where(QuizQuestion.quiz_id.in_(quiz_ids))
    await db.execute(delete(StudentAnswer).where(StudentAnswer.quiz_id.in_(quiz_ids)))
    await db.execute(delete(QuizOption).where(QuizOption.question_id.in_(question_ids)))
    await db.execute(delete(QuizQuestion).where(QuizQuestion.quiz_id.in_(quiz_ids)))
    await db.execute(delete(Quiz).where(Quiz.id.in_(quiz_ids)))


async def delete_quiz(db: AsyncSession, quiz_id: uuid.UUID) -> None:
    """Delete a quiz with its questions, options and every student answer."""
    quiz = await load_quiz(db, quiz_id, with_questions=False)
    await _delete_quiz_rows(db, [quiz.id])
    await commit_or_raise(db, operation="delete_quiz")
    logger.info("quiz_deleted quiz_id=%s", quiz_id)


async def delete_subject_quizzes(db: AsyncSession, subject_id: uuid.UUID) -> None:
    """Queue deletion of every quiz of a subject; the caller commits."""
    quiz_ids = (
        await db.execute(select(Quiz.id).where(Quiz.subject_id == subject_id))
    ).scalars().all()
    await _delete_quiz_rows(db, list(quiz_ids))


def serialize_quiz_summary(quiz: Quiz) -> Dict[str, Any]:
    return {
        "id": str(quiz.id),
        "subject_id": str(quiz.subject_id),
        "title": quiz.title,
        "description": quiz.description,
        "kind": quiz.kind.value,
        "day_number": quiz.day_number,
        "scheduled_at": dt_to_iso(quiz.scheduled_at),
        "results_published": bool(quiz.results_published),
        "created_at": dt_to_iso(quiz.created_at),
    }


def serialize_quiz(quiz: Quiz, include_answers: bool) -> Dict[str, Any]:
    """Full quiz with ordered questions.

    Students get ``include_answers=False``: no correctness flags, reference
    answers or model answer.
    """
    data = serialize_quiz_summary(quiz)
    questions = []
    for question in quiz.questions:
        item: Dict[str, Any] = {
            "id": str(question.id),
            "text": question.text,
            "kind": question.kind.value,
            "position": question.position,
            "options": [
                {"id": str(opt.id), "text": opt.text, "position": opt.position}
                | ({"is_correct": bool(opt.is_correct)} if include_answers else {})
                for opt in question.options
            ],
        }
        if include_answers:
            item["reference_answer_text"] = question.reference_answer_text
            item["reference_answer_attachment"] = question.reference_answer_attachment
        questions.append(item)
    data["questions"] = questions
    if include_answers:
        data["model_answer_text"] = quiz.model_answer_text
        data["model_answer_attachment"] = quiz.model_answer_attachment
    return data


async def list_quizzes(
    db: AsyncSession,
    subject_id: Optional[uuid.UUID] = None,
    kind: Optional[QuizKind] = None,
    exams_only: bool = False,
    subject_ids: Optional[List[uuid.UUID]] = None,
) -> List[Quiz]:
    """Quizzes without their questions, ordered by day then schedule."""
    stmt = select(Quiz)
    if subject_id is not None:
        stmt = stmt.where(Quiz.subject_id == subject_id)
    if subject_ids is not None:
        stmt = stmt.where(Quiz.subject_id.in_(subject_ids))
    if kind is not None:
        stmt = stmt.where(Quiz.kind == kind)
    if exams_only:
        stmt = stmt.where(Quiz.kind != QuizKind.daily)
    stmt = stmt.order_by(Quiz.day_number, Quiz.scheduled_at, Quiz.created_at)
    return list((await db.execute(stmt)).scalars().all())


async def get_daily_quiz(
    db: AsyncSession, subject_id: uuid.UUID, day_number: int
) -> Quiz:
    result = await db.execute(
        select(Quiz)
        .where(
            Quiz.subject_id == subject_id,
            Quiz.kind == QuizKind.daily,
            Quiz.day_number == day_number,
        )
        .order_by(Quiz.created_at.desc())
        .limit(1)
        .options(selectinload(Quiz.questions).selectinload(QuizQuestion.options))
    )
    quiz = result.scalars().first()
    if quiz is None:
        raise QuizNotFound("No daily quiz for this day")
    return quiz
