"""Question API routes: stage-driven and themed question generation."""

from fastapi import APIRouter, Depends

from app.api.deps import get_gateway
from app.core.auth import ClerkUser, require_auth
from app.db.base import get_session_factory
from app.llm.gateway import LLMGateway
from app.schemas.questions import CustomQuestionRequest, QuestionResponse
from app.services.progress_service import ProgressService
from app.services.question_service import QuestionService

router = APIRouter()


@router.post("", response_model=QuestionResponse)
async def next_question(
    user: ClerkUser = Depends(require_auth),
    gateway: LLMGateway = Depends(get_gateway),
):
    """Generate the next question for the caller's current stage.

    Progress is initialized on first use. A static baseline question is
    returned when the model is unavailable.

    Raises:
        HTTPException(409): If a contradiction is awaiting resolution
    """
    session_factory = get_session_factory()
    await ProgressService(session_factory).get_or_init(user.user_id)

    generated = await QuestionService(gateway, session_factory).next_question(user.user_id)
    return QuestionResponse(question=generated.question, response_id=generated.response_id, stage=generated.stage)


@router.post("/custom", response_model=QuestionResponse)
async def next_custom_question(
    request: CustomQuestionRequest,
    user: ClerkUser = Depends(require_auth),
    gateway: LLMGateway = Depends(get_gateway),
):
    """Generate a question about a user-chosen theme, calibrated to the caller's stage.

    Raises:
        HTTPException(400): If the theme is blank
        HTTPException(409): If a contradiction is awaiting resolution
    """
    session_factory = get_session_factory()
    await ProgressService(session_factory).get_or_init(user.user_id)

    generated = await QuestionService(gateway, session_factory).next_custom_question(user.user_id, request.theme)
    return QuestionResponse(question=generated.question, response_id=generated.response_id, stage=generated.stage)
