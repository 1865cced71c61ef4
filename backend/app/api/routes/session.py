"""Session API routes."""

from fastapi import APIRouter, Depends

from app.core.auth import ClerkUser, require_auth
from app.db.base import get_session_factory
from app.schemas.progress import ResetSessionResponse
from app.services.progress_service import ProgressService

router = APIRouter()


@router.post("/reset", response_model=ResetSessionResponse)
async def reset_session(user: ClerkUser = Depends(require_auth)):
    """Delete every response and the progress record for the caller."""
    result = await ProgressService(get_session_factory()).reset_session(user.user_id)
    return ResetSessionResponse(message="Session reset", responses_deleted=result.responses_deleted)
