"""Manual grading, result publication and admin result views."""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import AnswerNotFound, ValidationFailure
from app.db.session_utils import commit_or_raise
from app.models.quiz import Quiz, QuizQuestion
from app.models.student_answer import StudentAnswer
from app.models.user import User
from app.schemas.quizzes import MAX_QUESTION_SCORE
from app.services.quiz_service.authoring import load_quiz
from app.services.quiz_service.scoring import summarize_attempt
from app.utils.datetime_utils import Clock, dt_to_iso, ensure_utc, get_current_utc_datetime
from app.utils.enums import QuestionKind

logger = logging.getLogger(__name__)

UNKNOWN_STUDENT_NAME = "Unknown student"


class GradingService:
    def __init__(self, db: AsyncSession, clock: Clock = get_current_utc_datetime):
        self.db = db
        self.clock = clock

    async def grade_answer(
        self,
        answer_id: uuid.UUID,
        score: int,
        grader_id: uuid.UUID,
        feedback: Optional[str] = None,
    ) -> StudentAnswer:
        """Set score and feedback on one answer; last write wins."""
        if not 0 <= score <= MAX_QUESTION_SCORE:
            raise ValidationFailure(
                f"Score must be between 0 and {MAX_QUESTION_SCORE}",
                data={"score": score},
            )

        result = await self.db.execute(
            select(StudentAnswer)
            .where(StudentAnswer.id == answer_id)
            .options(selectinload(StudentAnswer.question))
        )
        answer = result.scalars().first()
        if answer is None:
            raise AnswerNotFound("Answer not found")

        if answer.question.kind == QuestionKind.multiple_choice:
            logger.debug("manual_grade_on_choice_answer answer_id=%s", answer_id)

        now = ensure_utc(self.clock())
        submitted_at = ensure_utc(answer.submitted_at)
        answer.score = score
        answer.feedback = feedback
        answer.graded_at = max(now, submitted_at) if submitted_at else now
        answer.graded_by = grader_id
        await commit_or_raise(self.db, operation="grade_answer")

        logger.info(
            "answer_graded answer_id=%s quiz_id=%s student_id=%s score=%d grader_id=%s",
            answer.id, answer.quiz_id, answer.student_id, score, grader_id,
        )
        return answer

    async def publish_results(self, quiz_id: uuid.UUID) -> Quiz:
        """Make a non-daily quiz's results visible to students. Idempotent."""
        quiz = await load_quiz(self.db, quiz_id, with_questions=False)
        if quiz.is_daily:
            raise ValidationFailure(
                "Daily quiz results are shown on submission and cannot be published"
            )
        if quiz.results_published:
            return quiz

        quiz.results_published = True
        await commit_or_raise(self.db, operation="publish_results")
        logger.info("results_published quiz_id=%s", quiz.id)
        return quiz

    async def get_submissions(self, quiz_id: uuid.UUID) -> List[Dict[str, Any]]:
        """One row per student who answered the quiz, best percentage first."""
        await load_quiz(self.db, quiz_id, with_questions=False)

        result = await self.db.execute(
            select(StudentAnswer, User.name)
            .outerjoin(User, User.id == StudentAnswer.student_id)
            .where(StudentAnswer.quiz_id == quiz_id)
        )
        rows_by_student: Dict[uuid.UUID, List[StudentAnswer]] = defaultdict(list)
        names: Dict[uuid.UUID, str] = {}
        for answer, name in result.all():
            rows_by_student[answer.student_id].append(answer)
            names[answer.student_id] = name or UNKNOWN_STUDENT_NAME

        submissions = []
        for student_id, rows in rows_by_student.items():
            summary = summarize_attempt(rows)
            submissions.append(
                {
                    "student_id": student_id,
                    "student_name": names[student_id],
                    "percentage": summary.percentage,
                    "is_graded": summary.is_graded,
                    "graded_count": summary.graded_count,
                    "answered_count": summary.answered_count,
                    "submitted_at": summary.submitted_at,
                }
            )

        submissions.sort(
            key=lambda s: (-s["percentage"], s["submitted_at"], s["student_name"])
        )
        for item in submissions:
            item["student_id"] = str(item["student_id"])
            item["submitted_at"] = dt_to_iso(item["submitted_at"])
        return submissions

    async def get_submission_detail(
        self, student_id: uuid.UUID, quiz_id: uuid.UUID
    ) -> List[Dict[str, Any]]:
        """Every answer of one student with its question and, for choice questions, all options."""
        await load_quiz(self.db, quiz_id, with_questions=False)

        result = await self.db.execute(
            select(StudentAnswer)
            .join(QuizQuestion, QuizQuestion.id == StudentAnswer.question_id)
            .where(
                StudentAnswer.student_id == student_id,
                StudentAnswer.quiz_id == quiz_id,
            )
            .order_by(QuizQuestion.position)
            .options(selectinload(StudentAnswer.question).selectinload(QuizQuestion.options))
        )
        return [serialize_answer_detail(answer) for answer in result.scalars().all()]


def serialize_answer_detail(answer: StudentAnswer) -> Dict[str, Any]:
    question = answer.question
    is_choice = question.kind == QuestionKind.multiple_choice
    return {
        "answer_id": str(answer.id),
        "question_id": str(question.id),
        "question_text": question.text,
        "question_kind": question.kind.value,
        "position": question.position,
        "selected_option_id": str(answer.selected_option_id) if answer.selected_option_id else None,
        "text_answer": answer.text_answer,
        "attachment_url": answer.attachment_url,
        "score": answer.score,
        "feedback": answer.feedback,
        "is_graded": answer.is_graded,
        "submitted_at": dt_to_iso(answer.submitted_at),
        "graded_at": dt_to_iso(answer.graded_at),
        "graded_by": str(answer.graded_by) if answer.graded_by else None,
        "reference_answer_text": question.reference_answer_text,
        "reference_answer_attachment": question.reference_answer_attachment,
        "options": [
            {
                "id": str(opt.id),
                "text": opt.text,
                "is_correct": bool(opt.is_correct),
                "position": opt.position,
            }
            for opt in question.options
        ] if is_choice else [],
    }
