"""Contradiction API routes: clarifying questions and resolution checks."""

from fastapi import APIRouter, Depends

from app.api.deps import get_gateway
from app.core.auth import ClerkUser, require_auth
from app.db.base import get_session_factory
from app.llm.gateway import LLMGateway
from app.schemas.contradictions import (
    CheckResolutionRequest,
    CheckResolutionResponse,
    ClarifyingQuestionResponse,
)
from app.services.contradiction_service import ResolutionWorkflow

router = APIRouter()

RESOLVED_MESSAGE = "Thank you. Your answers are now consistent, so you can continue."
UNRESOLVED_MESSAGE = "The contradiction is still open. Try explaining how your views fit together, or edit an earlier answer."


@router.post("/resolve", response_model=ClarifyingQuestionResponse)
async def resolve_contradiction(
    user: ClerkUser = Depends(require_auth),
    gateway: LLMGateway = Depends(get_gateway),
):
    """Return one clarifying question about the pending contradiction.

    Raises:
        HTTPException(409): If no contradiction is pending
    """
    question = await ResolutionWorkflow(gateway, get_session_factory()).resolve(user.user_id)
    return ClarifyingQuestionResponse(question=question)


@router.post("/check-resolution", response_model=CheckResolutionResponse)
async def check_resolution(
    request: CheckResolutionRequest,
    user: ClerkUser = Depends(require_auth),
    gateway: LLMGateway = Depends(get_gateway),
):
    """Judge whether the caller's explanation reconciles the pending contradiction.

    Raises:
        HTTPException(400): If the explanation is blank
        HTTPException(409): If no contradiction is pending
    """
    resolved = await ResolutionWorkflow(gateway, get_session_factory()).check_resolution(
        user.user_id, request.resolution_text
    )
    return CheckResolutionResponse(resolved=resolved, message=RESOLVED_MESSAGE if resolved else UNRESOLVED_MESSAGE)
