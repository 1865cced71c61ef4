"""Question Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel, Field


class CustomQuestionRequest(BaseModel):
    theme: str = Field(..., min_length=1, max_length=500, description="Free-text moral theme")


class QuestionResponse(BaseModel):
    question: str
    response_id: UUID
    stage: int
