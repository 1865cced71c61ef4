"""Progress Pydantic schemas: API contracts for stage tracking and evaluation."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.config import get_settings


class ProgressOut(BaseModel):
    """A user's progress record."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str
    stage: int
    status: str
    response_count: int
    contradiction_flag: bool
    completed_stages: list[int] = Field(default_factory=list)
    last_updated: datetime | None = None


class ProgressResponse(BaseModel):
    progress: ProgressOut


class UpdateProgressRequest(BaseModel):
    """Partial update; only fields present in the body are merged."""

    model_config = ConfigDict(extra="forbid")

    stage: int | None = Field(None, ge=1)
    status: Literal["active", "completed"] | None = None
    response_count: int | None = Field(None, ge=0)
    contradiction_flag: bool | None = None
    completed_stages: list[int] | None = None

    @field_validator("stage")
    @classmethod
    def stage_within_catalog(cls, v: int | None) -> int | None:
        if v is not None and v > get_settings().max_stage:
            raise ValueError(f"stage must be at most {get_settings().max_stage}")
        return v

    @field_validator("completed_stages")
    @classmethod
    def completed_stages_within_catalog(cls, v: list[int] | None) -> list[int] | None:
        if v is None:
            return v
        max_stage = get_settings().max_stage
        if any(s < 1 or s > max_stage for s in v):
            raise ValueError(f"completed stages must be between 1 and {max_stage}")
        return sorted(set(v))


class EvaluateStageResponse(BaseModel):
    """Outcome of POST /api/progress/evaluate."""

    advanced: bool
    reason: str = ""
    progress: ProgressOut


class FinalEvaluationRequest(BaseModel):
    include_history: bool = Field(False, description="Include superseded answer versions")


class FinalEvaluationResponse(BaseModel):
    summary: str


class ResetSessionResponse(BaseModel):
    message: str
    responses_deleted: int
