from fastapi import APIRouter

from app.api.routes import contradictions, health, progress, questions, responses, session

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(progress.router, prefix="/progress", tags=["progress"])
api_router.include_router(questions.router, prefix="/questions", tags=["questions"])
api_router.include_router(responses.router, prefix="/responses", tags=["responses"])
api_router.include_router(contradictions.router, prefix="/contradictions", tags=["contradictions"])
api_router.include_router(session.router, prefix="/session", tags=["session"])
