"""Admin grading, publication and submission views."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.routes.auth.auth import get_current_user
from app.core.response import ResponseModel, success_response
from app.core.security import require_roles
from app.db.deps import get_db
from app.models.user import Role, User
from app.schemas.quizzes import GradeAnswerRequest
from app.services.quiz_service import GradingService
from app.utils.datetime_utils import dt_to_iso

admin_guard = require_roles(Role.admin)

router = APIRouter(
    tags=["grading"],
    dependencies=[Depends(admin_guard)],
)


@router.patch("/answers/{answer_id}/grade", response_model=ResponseModel)
async def grade_answer(
    answer_id: uuid.UUID,
    payload: GradeAnswerRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    answer = await GradingService(db).grade_answer(
        answer_id=answer_id,
        score=payload.score,
        grader_id=current_user.id,
        feedback=payload.feedback,
    )
    return success_response(
        msg="Answer graded",
        data={
            "answer_id": str(answer.id),
            "score": answer.score,
            "feedback": answer.feedback,
            "graded_at": dt_to_iso(answer.graded_at),
            "graded_by": str(answer.graded_by),
        },
    )


@router.post("/quizzes/{quiz_id}/publish", response_model=ResponseModel)
async def publish_results(
    quiz_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    quiz = await GradingService(db).publish_results(quiz_id)
    return success_response(
        msg="Results published",
        data={"quiz_id": str(quiz.id), "results_published": bool(quiz.results_published)},
    )


@router.get("/quizzes/{quiz_id}/submissions", response_model=ResponseModel)
async def list_submissions(
    quiz_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    submissions = await GradingService(db).get_submissions(quiz_id)
    return success_response(msg="Submissions retrieved", data=submissions)


@router.get("/quizzes/{quiz_id}/submissions/{student_id}", response_model=ResponseModel)
async def submission_detail(
    quiz_id: uuid.UUID,
    student_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    answers = await GradingService(db).get_submission_detail(student_id, quiz_id)
    return success_response(msg="Submission retrieved", data=answers)
