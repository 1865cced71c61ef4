"""Response (answer log) Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ResponseOut(BaseModel):
    """One version of one answer slot."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    slot_id: UUID
    question_text: str
    answer: str
    stage: int
    version: int
    superseded: bool
    contradiction_flag: bool
    created_at: datetime
    updated_at: datetime


class ResponseListResponse(BaseModel):
    responses: list[ResponseOut]


class SubmitAnswerRequest(BaseModel):
    response_id: UUID = Field(..., description="Id of the unanswered question row")
    answer: str = Field(..., min_length=1, description="User's answer (non-empty)")


class EditAnswerRequest(BaseModel):
    response_id: UUID = Field(..., description="Id of the active version being replaced")
    new_answer: str = Field(..., min_length=1, description="Replacement answer (non-empty)")


class ContradictionVerdictResponse(BaseModel):
    """Verdict returned after an answer is recorded or edited."""

    contradiction: bool
    details: str | None = None
    contradiction_pending: bool
    response: ResponseOut
