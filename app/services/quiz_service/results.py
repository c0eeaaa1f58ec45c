"""Student-facing result views.

Daily quizzes show scores as soon as they are submitted. Monthly and
semester quizzes keep scores, feedback and the aggregate percentage hidden
until an admin publishes the results.
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from typing import Any, Dict, List, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.quiz import Quiz, QuizQuestion
from app.models.student_answer import StudentAnswer
from app.services.quiz_service.authoring import load_quiz
from app.services.quiz_service.scoring import summarize_attempt
from app.utils.datetime_utils import dt_to_iso


def results_visible(quiz: Quiz) -> bool:
    return quiz.is_daily or bool(quiz.results_published)


async def get_quiz_statuses(
    db: AsyncSession, student_id: uuid.UUID, quiz_ids: Sequence[uuid.UUID]
) -> Dict[str, Dict[str, Any]]:
    """Attempt status per quiz for one student; unknown quiz ids are skipped."""
    if not quiz_ids:
        return {}

    quizzes = (
        await db.execute(select(Quiz).where(Quiz.id.in_(list(quiz_ids))))
    ).scalars().all()
    answers = (
        await db.execute(
            select(StudentAnswer).where(
                StudentAnswer.student_id == student_id,
                StudentAnswer.quiz_id.in_([q.id for q in quizzes]),
            )
        )
    ).scalars().all()

    rows_by_quiz: Dict[uuid.UUID, List[StudentAnswer]] = defaultdict(list)
    for answer in answers:
        rows_by_quiz[answer.quiz_id].append(answer)

    statuses: Dict[str, Dict[str, Any]] = {}
    for quiz in quizzes:
        rows = rows_by_quiz.get(quiz.id, [])
        visible = results_visible(quiz)
        summary = summarize_attempt(rows)
        attempted = bool(rows)
        statuses[str(quiz.id)] = {
            "has_attempted": attempted,
            "submitted_at": dt_to_iso(summary.submitted_at),
            "results_published": bool(quiz.results_published),
            "is_graded": summary.is_graded if visible else False,
            "percentage": summary.percentage if attempted and visible else None,
        }
    return statuses


async def get_my_answers(
    db: AsyncSession, student_id: uuid.UUID, quiz_id: uuid.UUID
) -> Dict[str, Any]:
    """The student's own answers for a quiz, with scores only once visible."""
    quiz = await load_quiz(db, quiz_id, with_questions=False)
    visible = results_visible(quiz)

    answers = (
        await db.execute(
            select(StudentAnswer)
            .join(QuizQuestion, QuizQuestion.id == StudentAnswer.question_id)
            .where(
                StudentAnswer.student_id == student_id,
                StudentAnswer.quiz_id == quiz.id,
            )
            .order_by(QuizQuestion.position)
            .options(selectinload(StudentAnswer.question))
        )
    ).scalars().all()

    items = []
    for answer in answers:
        item: Dict[str, Any] = {
            "answer_id": str(answer.id),
            "question_id": str(answer.question_id),
            "question_text": answer.question.text,
            "question_kind": answer.question.kind.value,
            "selected_option_id": str(answer.selected_option_id) if answer.selected_option_id else None,
            "text_answer": answer.text_answer,
            "attachment_url": answer.attachment_url,
            "submitted_at": dt_to_iso(answer.submitted_at),
        }
        if visible:
            item["score"] = answer.score
            item["feedback"] = answer.feedback
            item["is_graded"] = answer.is_graded
        items.append(item)

    summary = summarize_attempt(answers)
    data: Dict[str, Any] = {
        "quiz_id": str(quiz.id),
        "results_visible": visible,
        "percentage": summary.percentage if visible and answers else None,
        "answers": items,
    }
    if visible and not quiz.is_daily:
        data["model_answer_text"] = quiz.model_answer_text
        data["model_answer_attachment"] = quiz.model_answer_attachment
    return data
