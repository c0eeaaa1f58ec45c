"""Quiz submission and automatic scoring.

Answer rows are keyed on (student, quiz, question): a resubmission updates
the existing row instead of adding another one, and the whole attempt is
written in one transaction so a failure leaves nothing half-recorded.

Choice questions are scored on submission (1 for a correct option, 0
otherwise) and marked graded; free-text and essay answers stay pending
until an admin grades them.

Daily quizzes only record scores for the first attempt. The caller's
``is_first_attempt`` flag is a hint: an attempt also stops being first once
the student already has a graded row for the quiz. Later attempts never
touch existing rows, so the first attempt stays the one that counts.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import QuestionNotFound, QuizNotFound, SubmissionFailed, ValidationFailure
from app.db.session_utils import commit_or_raise
from app.models.quiz import Quiz, QuizOption, QuizQuestion
from app.models.student_answer import StudentAnswer
from app.schemas.quizzes import EssayAnswer, MultipleChoiceAnswer, RawAnswer, ShortAnswer
from app.services.quiz_service.authoring import load_quiz
from app.services.quiz_service.scoring import score_choice
from app.utils.datetime_utils import Clock, get_current_utc_datetime
from app.utils.enums import QuestionKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmissionResult:
    quiz_id: uuid.UUID
    rows_written: int
    correct_count: int
    total_questions: int
    score_recorded: bool
    is_first_attempt: bool

    def as_dict(self) -> dict:
        data = asdict(self)
        data["quiz_id"] = str(self.quiz_id)
        return data


@dataclass(frozen=True)
class _EvaluatedAnswer:
    question: QuizQuestion
    answer: RawAnswer
    option: Optional[QuizOption]

    @property
    def auto_score(self) -> Optional[int]:
        if self.question.kind != QuestionKind.multiple_choice or self.option is None:
            return None
        return score_choice(self.option)


class QuizSubmissionService:
    def __init__(self, db: AsyncSession, clock: Clock = get_current_utc_datetime):
        self.db = db
        self.clock = clock

    async def submit(
        self,
        student_id: uuid.UUID,
        quiz_id: uuid.UUID,
        answers: Sequence[RawAnswer],
        is_first_attempt: bool = True,
    ) -> SubmissionResult:
        """Record a student's answers for a quiz.

        Args:
            student_id: Authenticated student
            quiz_id: Target quiz; must exist and have at least one question
            answers: Any subset of the quiz's questions
            is_first_attempt: Caller's hint; it can only turn scoring off

        Returns:
            SubmissionResult with the server-side correct count

        Raises:
            QuizNotFound: Unknown quiz, or a quiz without questions
            QuestionNotFound: An answer names a question outside the quiz
            ValidationFailure: Duplicate question, wrong answer kind or foreign option
            SubmissionFailed: The store rejected the write; nothing was saved
        """
        try:
            quiz = await load_quiz(self.db, quiz_id)
        except QuizNotFound:
            logger.info("submission_rejected quiz_id=%s reason=not_found", quiz_id)
            raise
        if not quiz.questions:
            raise QuizNotFound("Quiz has no questions")

        evaluated = self._evaluate(quiz, answers)
        existing = await self._existing_answers(student_id, quiz.id)

        first_attempt = is_first_attempt and not any(
            row.graded_at is not None for row in existing.values()
        )
        record_scores = not quiz.is_daily or first_attempt
        now = self.clock()

        rows_written = 0
        for item in evaluated:
            row = existing.get(item.question.id)
            if row is not None and quiz.is_daily and not first_attempt:
                continue
            if row is None:
                row = StudentAnswer(
                    student_id=student_id,
                    quiz_id=quiz.id,
                    question_id=item.question.id,
                )
                self.db.add(row)
            self._apply(row, item, now, record_scores)
            rows_written += 1

        await commit_or_raise(self.db, operation="submit_quiz", error_cls=SubmissionFailed)

        correct_count = sum(1 for item in evaluated if item.auto_score == 1)
        logger.info(
            "quiz_submitted student_id=%s quiz_id=%s kind=%s rows=%d correct=%d "
            "first_attempt=%s score_recorded=%s",
            student_id, quiz.id, quiz.kind.value, rows_written, correct_count,
            first_attempt, record_scores,
        )
        return SubmissionResult(
            quiz_id=quiz.id,
            rows_written=rows_written,
            correct_count=correct_count,
            total_questions=len(quiz.questions),
            score_recorded=record_scores,
            is_first_attempt=first_attempt,
        )

    def _evaluate(self, quiz: Quiz, answers: Sequence[RawAnswer]) -> List[_EvaluatedAnswer]:
        questions = {q.id: q for q in quiz.questions}
        seen = set()
        evaluated = []
        for answer in answers:
            question = questions.get(answer.question_id)
            if question is None:
                raise QuestionNotFound(
                    "Question does not belong to this quiz",
                    data={"question_id": str(answer.question_id)},
                )
            if question.id in seen:
                raise ValidationFailure(
                    "Each question can only be answered once per submission",
                    data={"question_id": str(question.id)},
                )
            seen.add(question.id)

            if answer.kind != question.kind.value:
                raise ValidationFailure(
                    f"Answer kind '{answer.kind}' does not match question kind '{question.kind.value}'",
                    data={"question_id": str(question.id)},
                )

            option = None
            if isinstance(answer, MultipleChoiceAnswer) and answer.selected_option_id is not None:
                option = next(
                    (opt for opt in question.options if opt.id == answer.selected_option_id),
                    None,
                )
                if option is None:
                    raise ValidationFailure(
                        "Selected option does not belong to the question",
                        data={
                            "question_id": str(question.id),
                            "selected_option_id": str(answer.selected_option_id),
                        },
                    )
            evaluated.append(_EvaluatedAnswer(question=question, answer=answer, option=option))
        return evaluated

    async def _existing_answers(
        self, student_id: uuid.UUID, quiz_id: uuid.UUID
    ) -> Dict[uuid.UUID, StudentAnswer]:
        result = await self.db.execute(
            select(StudentAnswer).where(
                StudentAnswer.student_id == student_id,
                StudentAnswer.quiz_id == quiz_id,
            )
        )
        return {row.question_id: row for row in result.scalars().all()}

    @staticmethod
    def _apply(
        row: StudentAnswer,
        item: _EvaluatedAnswer,
        now: datetime,
        record_scores: bool,
    ) -> None:
        answer = item.answer
        row.selected_option_id = None
        row.text_answer = None
        row.attachment_url = None
        if isinstance(answer, MultipleChoiceAnswer):
            row.selected_option_id = answer.selected_option_id
        elif isinstance(answer, ShortAnswer):
            row.text_answer = answer.text
        elif isinstance(answer, EssayAnswer):
            row.text_answer = answer.text
            row.attachment_url = answer.attachment_url

        # New content invalidates any earlier grading of this row
        row.submitted_at = now
        row.feedback = None
        row.graded_by = None
        score = item.auto_score if record_scores else None
        row.score = score
        row.graded_at = now if score is not None else None
