# Standard library imports
import base64
import binascii
import logging
import uuid
from typing import Any, Dict, List, Optional

# Third-party imports
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

# Local imports
from app.core.exceptions import AccessDeniedError, SubjectNotFound
from app.core.genai_client import get_gemini_model
from app.db.session_utils import commit_or_raise
from app.models.chat_history import ChatHistory
from app.models.subject import Subject
from app.services.access_gate import DENIAL_MESSAGES, require_access
from app.utils.datetime_utils import Clock, dt_to_iso, get_current_utc_datetime
from app.utils.enums import AccessDenialReason

# Initialize logger
logger = logging.getLogger(__name__)

PDF_DATA_URL_PREFIX = "data:application/pdf;base64,"
HISTORY_LIMIT = 50

FALLBACK_ANSWER = (
    "I'm sorry, I couldn't answer your question right now. "
    "Please try again in a few moments."
)

PERSONA = (
    "You are the tutoring assistant of an e-learning application. "
    "Answer students' questions using only the curriculum of the subject they are studying. "
    "If the curriculum does not cover the question, say so briefly and point the student "
    "to the closest topic that it does cover. "
    "Keep explanations clear and age-appropriate, use short paragraphs and markdown, "
    "and write mathematical expressions in LaTeX between dollar signs without mentioning LaTeX."
)


def _decode_pdf_data_url(url: str) -> Optional[bytes]:
    try:
        return base64.b64decode(url[len(PDF_DATA_URL_PREFIX):], validate=True)
    except (binascii.Error, ValueError):
        logger.warning("Curriculum attachment is not valid base64; ignoring it")
        return None


def build_curriculum_parts(question: str, subject: Subject) -> List[Any]:
    """Content parts for one tutoring request: optional curriculum file, then the question."""
    parts: List[Any] = []
    url = (subject.curriculum_url or "").strip()
    if url.startswith(PDF_DATA_URL_PREFIX):
        data = _decode_pdf_data_url(url)
        if data:
            parts.append({"mime_type": "application/pdf", "data": data})
    elif url:
        parts.append(f"Curriculum document: {url}")

    parts.append(f"QUESTION:\n{question}\n\nAnswer the question using markdown.")
    return parts


def build_system_instruction(subject: Subject) -> str:
    instruction = f"{PERSONA}\n\nSUBJECT: {subject.name}"
    if (subject.curriculum or "").strip():
        instruction += f"\n\nCURRICULUM:\n{subject.curriculum.strip()}"
    return instruction


async def generate_curriculum_answer(question: str, subject: Subject) -> Dict[str, Any]:
    """Answer a question from the subject's curriculum.

    Args:
        question: The student's question
        subject: Subject whose curriculum text and attachment are used as context

    Returns:
        dict: ``{"answer": str, "success": bool}``; on any generation failure the
        answer is a fixed apology and ``success`` is False
    """
    try:
        response = await get_gemini_model().generate_content_async(
            build_curriculum_parts(question, subject),
            system_instruction=build_system_instruction(subject),
        )
        text = (response.text or "").strip()
        if not text:
            return {"answer": FALLBACK_ANSWER, "success": False}
        return {"answer": text, "success": True}

    except Exception as e:
        logger.error(f"Error in generate_curriculum_answer: {str(e)}")
        return {"answer": FALLBACK_ANSWER, "success": False}


async def ask_tutor(
    db: AsyncSession,
    student_id: uuid.UUID,
    subject_id: uuid.UUID,
    question: str,
    clock: Clock = get_current_utc_datetime,
) -> Dict[str, Any]:
    """Gate, then forward the question to the answer generator.

    Access is checked first and curriculum availability second; nothing is
    sent to the generator unless both pass. Only successful answers are kept
    in the chat history.
    """
    await require_access(student_id, subject_id, db, clock=clock)

    subject = await db.get(Subject, subject_id)
    if subject is None:
        raise SubjectNotFound("Subject not found")
    if not subject.has_curriculum:
        logger.info(
            "access_denied student_id=%s subject_id=%s reason=%s",
            student_id, subject_id, AccessDenialReason.no_curriculum.value,
        )
        raise AccessDeniedError(
            DENIAL_MESSAGES[AccessDenialReason.no_curriculum],
            reason=AccessDenialReason.no_curriculum.value,
        )

    logger.info("tutor_request_forwarded student_id=%s subject_id=%s", student_id, subject_id)
    result = await generate_curriculum_answer(question, subject)

    if not result["success"]:
        logger.warning("tutor_request_failed student_id=%s subject_id=%s", student_id, subject_id)
        return result

    db.add(
        ChatHistory(
            student_id=student_id,
            subject_id=subject_id,
            question=question,
            answer=result["answer"],
            created_at=clock(),
        )
    )
    await commit_or_raise(db, operation="save_chat_history")
    return result


async def list_chat_history(
    db: AsyncSession,
    student_id: uuid.UUID,
    subject_id: uuid.UUID,
    limit: int = HISTORY_LIMIT,
) -> List[Dict[str, Any]]:
    """The student's previous questions for a subject, newest first."""
    result = await db.execute(
        select(ChatHistory)
        .where(
            ChatHistory.student_id == student_id,
            ChatHistory.subject_id == subject_id,
        )
        .order_by(ChatHistory.created_at.desc())
        .limit(limit)
    )
    return [
        {
            "id": str(row.id),
            "question": row.question,
            "answer": row.answer,
            "created_at": dt_to_iso(row.created_at),
        }
        for row in result.scalars().all()
    ]
