"""QuestionService: chooses and persists the next question for a user.

Responsibilities:
- Stage-driven questions adapted from the stage catalog's baseline prompts
- Themed questions calibrated to the user's stage
- Refusing new questions while a contradiction is pending
- Falling back to a static question whenever the model fails

A question is always persisted as a fresh unanswered Response; repeated calls
without an answer in between produce distinct rows.
"""

import random
import uuid
from dataclasses import dataclass

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import Settings, get_settings
from app.core.exceptions import ContradictionPendingError, GatewayError, InvalidAnswerError
from app.domain.resolution import can_generate_questions, state_from_flag
from app.domain.stages import DEFAULT_STAGE_CATALOG, StageCatalog
from app.llm.gateway import LLMGateway
from app.llm.prompts import build_custom_question_prompt, build_question_prompt, render_statements
from app.services.progress_tracker import ProgressTracker
from app.services.response_store import ResponseStore

logger = structlog.get_logger(__name__)

CUSTOM_QUESTION_FALLBACK = "Thinking about {theme}, what do you believe is the right thing to do, and why?"


@dataclass(frozen=True)
class GeneratedQuestion:
    question: str
    response_id: uuid.UUID
    stage: int
    fallback: bool = False


class QuestionService:
    """Question Generation Policy backed by an LLMGateway."""

    def __init__(
        self,
        gateway: LLMGateway,
        session_factory: async_sessionmaker[AsyncSession],
        catalog: StageCatalog = DEFAULT_STAGE_CATALOG,
        rng: random.Random | None = None,
        settings: Settings | None = None,
    ):
        self.gateway = gateway
        self.session_factory = session_factory
        self.catalog = catalog
        self.rng = rng or random.Random()
        self.settings = settings or get_settings()

    async def _load_context(self, user_id: str) -> tuple[int, str]:
        """Return (stage, rendered active answers), enforcing the contradiction gate.

        Raises:
            NotInitializedError: If the user has no progress row
            ContradictionPendingError: If a contradiction is awaiting resolution
        """
        async with self.session_factory() as session:
            progress = await ProgressTracker(session).require(user_id)
            if not can_generate_questions(state_from_flag(progress.contradiction_flag)):
                raise ContradictionPendingError()
            answers = await ResponseStore(session).list_active_answers(user_id)
            return progress.stage, render_statements(answers)

    async def _persist(self, user_id: str, question: str, stage: int, fallback: bool) -> GeneratedQuestion:
        async with self.session_factory() as session:
            row = await ResponseStore(session).create_question(user_id, question, stage)
            await session.commit()
            logger.info(
                "question_created",
                user_id=user_id,
                response_id=str(row.id),
                stage=stage,
                fallback=fallback,
            )
            return GeneratedQuestion(question=question, response_id=row.id, stage=stage, fallback=fallback)

    async def next_question(self, user_id: str) -> GeneratedQuestion:
        """Generate the next stage-driven question and persist it unanswered."""
        stage, history = await self._load_context(user_id)

        baseline = self.catalog.baseline_prompt(stage, rng=self.rng)
        prompt = build_question_prompt(self.catalog.get(stage), stage, baseline, history)

        question, fallback = baseline, True
        try:
            adapted = await self.gateway.generate(prompt, temperature=self.settings.question_temperature)
            if adapted:
                question, fallback = adapted, False
            else:
                logger.warning("question_generation_empty", user_id=user_id, stage=stage)
        except GatewayError as exc:
            logger.warning("question_generation_failed", user_id=user_id, stage=stage, error=str(exc))

        return await self._persist(user_id, question, stage, fallback)

    async def next_custom_question(self, user_id: str, theme: str) -> GeneratedQuestion:
        """Generate a question on a free-text theme, calibrated to the user's stage."""
        theme = (theme or "").strip()
        if not theme:
            raise InvalidAnswerError("Theme must not be empty")

        stage, _ = await self._load_context(user_id)
        prompt = build_custom_question_prompt(stage, theme)

        question, fallback = CUSTOM_QUESTION_FALLBACK.format(theme=theme), True
        try:
            generated = await self.gateway.generate(
                prompt, temperature=self.settings.custom_question_temperature
            )
            if generated:
                question, fallback = generated, False
            else:
                logger.warning("custom_question_empty", user_id=user_id, stage=stage)
        except GatewayError as exc:
            logger.warning("custom_question_failed", user_id=user_id, stage=stage, error=str(exc))

        return await self._persist(user_id, question, stage, fallback)
