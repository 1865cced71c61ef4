"""Contradiction resolution Pydantic schemas."""

from pydantic import BaseModel, Field


class ClarifyingQuestionResponse(BaseModel):
    question: str


class CheckResolutionRequest(BaseModel):
    resolution_text: str = Field(..., min_length=1, description="User's reconciliation of the conflict")


class CheckResolutionResponse(BaseModel):
    resolved: bool
    message: str
