"""Response API routes: answer history, answer submission and edits."""

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_gateway
from app.core.auth import ClerkUser, require_auth
from app.db.base import get_session_factory
from app.llm.gateway import LLMGateway
from app.schemas.responses import (
    ContradictionVerdictResponse,
    EditAnswerRequest,
    ResponseListResponse,
    ResponseOut,
    SubmitAnswerRequest,
)
from app.services.contradiction_service import AnswerOutcome, ResolutionWorkflow
from app.services.response_store import ResponseStore

router = APIRouter()


def _verdict_response(outcome: AnswerOutcome) -> ContradictionVerdictResponse:
    return ContradictionVerdictResponse(
        contradiction=outcome.verdict.found,
        details=outcome.verdict.details,
        contradiction_pending=outcome.contradiction_pending,
        response=ResponseOut.model_validate(outcome.response),
    )


@router.get("", response_model=ResponseListResponse)
async def list_responses(
    include_superseded: bool = Query(False, description="Include every historical version"),
    user: ClerkUser = Depends(require_auth),
):
    """List the caller's responses, oldest first."""
    async with get_session_factory()() as session:
        rows = await ResponseStore(session).list_history(user.user_id, include_superseded=include_superseded)
    return ResponseListResponse(responses=[ResponseOut.model_validate(r) for r in rows])


@router.patch("", response_model=ContradictionVerdictResponse)
async def submit_answer(
    request: SubmitAnswerRequest,
    user: ClerkUser = Depends(require_auth),
    gateway: LLMGateway = Depends(get_gateway),
):
    """Record the answer to an open question and check it for contradictions.

    Raises:
        HTTPException(400): If the answer is blank
        HTTPException(404): If the response does not belong to the caller
        HTTPException(409): If the response is superseded or already answered
    """
    outcome = await ResolutionWorkflow(gateway, get_session_factory()).submit_answer(
        user.user_id, request.response_id, request.answer
    )
    return _verdict_response(outcome)


@router.post("/edit", response_model=ContradictionVerdictResponse)
async def edit_answer(
    request: EditAnswerRequest,
    user: ClerkUser = Depends(require_auth),
    gateway: LLMGateway = Depends(get_gateway),
):
    """Replace an answer with a new version and re-check it for contradictions.

    The previous version is kept as superseded history.
    """
    outcome = await ResolutionWorkflow(gateway, get_session_factory()).edit_response(
        user.user_id, request.response_id, request.new_answer
    )
    return _verdict_response(outcome)
