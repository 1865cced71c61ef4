"""Progress API routes: stage tracking, stage evaluation and final evaluation."""

from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import get_gateway
from app.core.auth import ClerkUser, require_auth
from app.db.base import get_session_factory
from app.llm.gateway import LLMGateway
from app.schemas.progress import (
    EvaluateStageResponse,
    FinalEvaluationRequest,
    FinalEvaluationResponse,
    ProgressOut,
    ProgressResponse,
    UpdateProgressRequest,
)
from app.services.evaluation_service import EvaluationService
from app.services.progress_service import ProgressService

router = APIRouter()


@router.get("", response_model=ProgressResponse)
async def get_progress(user: ClerkUser = Depends(require_auth)):
    """Return the caller's progress, creating stage-1 defaults on first access."""
    progress = await ProgressService(get_session_factory()).get_or_init(user.user_id)
    return ProgressResponse(progress=ProgressOut.model_validate(progress))


@router.patch("", response_model=ProgressResponse)
async def update_progress(
    request: UpdateProgressRequest,
    user: ClerkUser = Depends(require_auth),
):
    """Merge the supplied fields into the caller's progress.

    Raises:
        HTTPException(400): If the body carries no fields
        HTTPException(422): If a field is out of range
    """
    updates = request.model_dump(exclude_unset=True, exclude_none=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No progress fields supplied")

    progress = await ProgressService(get_session_factory()).update(user.user_id, updates)
    return ProgressResponse(progress=ProgressOut.model_validate(progress))


@router.post("/evaluate", response_model=EvaluateStageResponse)
async def evaluate_stage(user: ClerkUser = Depends(require_auth)):
    """Advance to the next stage once the current one has enough answers and no open contradiction."""
    progress, advance = await ProgressService(get_session_factory()).evaluate_stage(user.user_id)
    return EvaluateStageResponse(
        advanced=advance.advanced,
        reason=advance.reason,
        progress=ProgressOut.model_validate(progress),
    )


@router.post("/final", response_model=FinalEvaluationResponse)
async def final_evaluation(
    request: FinalEvaluationRequest | None = None,
    user: ClerkUser = Depends(require_auth),
    gateway: LLMGateway = Depends(get_gateway),
):
    """Produce the narrative analysis of the caller's moral reasoning.

    Always 200; a fixed message replaces the analysis when the model fails.
    """
    include_history = request.include_history if request else False
    summary = await EvaluationService(gateway, get_session_factory()).summarize(
        user.user_id, include_history=include_history
    )
    return FinalEvaluationResponse(summary=summary)
