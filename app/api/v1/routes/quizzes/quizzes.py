"""Quiz authoring, reading, submission and student result endpoints.

Students pass the access gate for the quiz's subject; admins bypass it.
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.routes.auth.auth import get_current_user
from app.core.response import ResponseModel, success_response
from app.core.security import is_admin, require_roles
from app.db.deps import get_db
from app.models.user import Role, User
from app.schemas.quizzes import (
    ModelAnswerRequest,
    QuestionIn,
    QuizCreateRequest,
    QuizStatusRequest,
    SubmitQuizRequest,
)
from app.services.access_gate import list_accessible_subject_ids, require_access
from app.services.quiz_service import QuizSubmissionService
from app.services.quiz_service.authoring import (
    add_question,
    create_quiz,
    delete_quiz,
    get_daily_quiz,
    list_quizzes,
    load_quiz,
    serialize_quiz,
    serialize_quiz_summary,
    set_model_answer,
)
from app.services.quiz_service.results import get_my_answers, get_quiz_statuses
from app.utils.enums import QuizKind

admin_guard = require_roles(Role.admin)
student_guard = require_roles(Role.student)

router = APIRouter(prefix="/quizzes", tags=["quizzes"])


async def _gate(current_user: User, subject_id: uuid.UUID, db: AsyncSession) -> None:
    if not is_admin(current_user):
        await require_access(current_user.id, subject_id, db)


# Authoring
@router.post(
    "",
    status_code=201,
    response_model=ResponseModel,
    dependencies=[Depends(admin_guard)],
)
async def create_quiz_endpoint(
    payload: QuizCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    quiz = await create_quiz(db, payload, current_user)
    return success_response(
        msg="Quiz created", data=serialize_quiz(quiz, include_answers=True), status_code=201
    )


# Reads (static paths before /{quiz_id})
@router.get("", response_model=ResponseModel)
async def list_subject_quizzes(
    subject_id: uuid.UUID = Query(...),
    kind: Optional[QuizKind] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await _gate(current_user, subject_id, db)
    quizzes = await list_quizzes(db, subject_id=subject_id, kind=kind)
    return success_response(
        msg="Quizzes retrieved", data=[serialize_quiz_summary(q) for q in quizzes]
    )


@router.get("/exams", response_model=ResponseModel)
async def list_exams(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Monthly and semester quizzes; students only see subjects they can access."""
    subject_ids = None
    if not is_admin(current_user):
        subject_ids = await list_accessible_subject_ids(current_user.id, db)
    quizzes = await list_quizzes(db, exams_only=True, subject_ids=subject_ids)
    return success_response(
        msg="Exams retrieved", data=[serialize_quiz_summary(q) for q in quizzes]
    )


@router.get("/daily", response_model=ResponseModel)
async def get_daily(
    subject_id: uuid.UUID = Query(...),
    day_number: int = Query(..., ge=1),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await _gate(current_user, subject_id, db)
    quiz = await get_daily_quiz(db, subject_id, day_number)
    return success_response(
        msg="Quiz retrieved",
        data=serialize_quiz(quiz, include_answers=is_admin(current_user)),
    )


@router.post(
    "/status",
    response_model=ResponseModel,
    dependencies=[Depends(student_guard)],
)
async def quiz_statuses(
    payload: QuizStatusRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    statuses = await get_quiz_statuses(db, current_user.id, payload.quiz_ids)
    return success_response(msg="Quiz statuses retrieved", data=statuses)


@router.get("/{quiz_id}", response_model=ResponseModel)
async def get_quiz(
    quiz_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    quiz = await load_quiz(db, quiz_id)
    await _gate(current_user, quiz.subject_id, db)
    return success_response(
        msg="Quiz retrieved",
        data=serialize_quiz(quiz, include_answers=is_admin(current_user)),
    )


@router.post(
    "/{quiz_id}/questions",
    status_code=201,
    response_model=ResponseModel,
    dependencies=[Depends(admin_guard)],
)
async def add_question_endpoint(
    quiz_id: uuid.UUID,
    payload: QuestionIn,
    db: AsyncSession = Depends(get_db),
):
    await add_question(db, quiz_id, payload)
    quiz = await load_quiz(db, quiz_id)
    return success_response(
        msg="Question added", data=serialize_quiz(quiz, include_answers=True), status_code=201
    )


@router.put(
    "/{quiz_id}/model-answer",
    response_model=ResponseModel,
    dependencies=[Depends(admin_guard)],
)
async def put_model_answer(
    quiz_id: uuid.UUID,
    payload: ModelAnswerRequest,
    db: AsyncSession = Depends(get_db),
):
    quiz = await set_model_answer(db, quiz_id, payload)
    return success_response(
        msg="Model answer saved",
        data={
            "quiz_id": str(quiz.id),
            "model_answer_text": quiz.model_answer_text,
            "model_answer_attachment": quiz.model_answer_attachment,
        },
    )


@router.delete(
    "/{quiz_id}",
    response_model=ResponseModel,
    dependencies=[Depends(admin_guard)],
)
async def delete_quiz_endpoint(
    quiz_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    await delete_quiz(db, quiz_id)
    return success_response(msg="Quiz deleted", data={"id": str(quiz_id)})


# Student submission & results
@router.post(
    "/{quiz_id}/submit",
    response_model=ResponseModel,
    dependencies=[Depends(student_guard)],
)
async def submit_quiz(
    quiz_id: uuid.UUID,
    payload: SubmitQuizRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    quiz = await load_quiz(db, quiz_id, with_questions=False)
    await require_access(current_user.id, quiz.subject_id, db)

    result = await QuizSubmissionService(db).submit(
        student_id=current_user.id,
        quiz_id=quiz_id,
        answers=payload.answers,
        is_first_attempt=payload.is_first_attempt,
    )
    return success_response(msg="Quiz submitted", data=result.as_dict())


@router.get(
    "/{quiz_id}/my-answers",
    response_model=ResponseModel,
    dependencies=[Depends(student_guard)],
)
async def my_answers(
    quiz_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    data = await get_my_answers(db, current_user.id, quiz_id)
    return success_response(msg="Answers retrieved", data=data)
