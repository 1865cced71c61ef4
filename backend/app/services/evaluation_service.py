"""EvaluationService: final narrative analysis of a user's moral reasoning.

Read-only; never raises because of the model.
"""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import Settings, get_settings
from app.core.exceptions import GatewayError
from app.llm.gateway import LLMGateway
from app.llm.prompts import build_evaluation_prompt, render_statements
from app.services.progress_tracker import ProgressTracker
from app.services.response_store import ResponseStore

logger = structlog.get_logger(__name__)

EVALUATION_EMPTY_FALLBACK = "Unable to generate a final evaluation with the current responses."
EVALUATION_ERROR_FALLBACK = "Error generating final evaluation. Please try again later."


class EvaluationService:
    def __init__(
        self,
        gateway: LLMGateway,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings | None = None,
    ):
        self.gateway = gateway
        self.session_factory = session_factory
        self.settings = settings or get_settings()

    async def summarize(self, user_id: str, include_history: bool = False) -> str:
        """Summarize the user's answers and completed stages.

        Args:
            user_id: Authenticated user
            include_history: Also show superseded versions to the model

        Returns:
            Sectioned analysis text, or a fixed message when the model fails
        """
        async with self.session_factory() as session:
            store = ResponseStore(session)
            if include_history:
                rows = [r for r in await store.list_history(user_id, include_superseded=True) if r.answer]
            else:
                rows = await store.list_active_answers(user_id)
            progress = await ProgressTracker(session).get(user_id)

        completed = list(progress.completed_stages or []) if progress else []
        prompt = build_evaluation_prompt(render_statements(rows, label="Response", separator="\n\n"), completed)

        try:
            analysis = await self.gateway.generate(prompt, temperature=self.settings.evaluation_temperature)
        except GatewayError as exc:
            logger.warning("final_evaluation_failed", user_id=user_id, error=str(exc))
            return EVALUATION_ERROR_FALLBACK

        return analysis or EVALUATION_EMPTY_FALLBACK
