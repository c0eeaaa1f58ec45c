# Standard library imports
import logging
import uuid

# Third-party imports
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

# Local imports
from app.api.v1.routes.auth.auth import get_current_user
from app.core.response import success_response, ResponseModel
from app.core.security import require_roles
from app.db.deps import get_db
from app.models.user import Role, User
from app.schemas.chat import AskTutorRequest
from app.services.ai_service import tutoring_service

# Initialize logger
logger = logging.getLogger(__name__)

student_guard = require_roles(Role.student)

# Create router
router = APIRouter(
    prefix="/chat",
    tags=["tutoring"],
    dependencies=[Depends(student_guard)],
)


# Ask questions
@router.post(
    "/ask",
    response_model=ResponseModel,
)
async def ask_question(
    request: AskTutorRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Ask the tutoring assistant a question about a subject's curriculum"""
    result = await tutoring_service.ask_tutor(
        db,
        student_id=current_user.id,
        subject_id=request.subject_id,
        question=request.question,
    )
    msg = "Answer generated" if result["success"] else "The assistant is unavailable"
    return success_response(msg=msg, data=result)


@router.get(
    "/history",
    response_model=ResponseModel,
)
async def chat_history(
    subject_id: uuid.UUID = Query(..., description="Subject whose conversation to list"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    history = await tutoring_service.list_chat_history(db, current_user.id, subject_id)
    return success_response(msg="Chat history retrieved", data=history)
