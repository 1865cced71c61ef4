"""ProgressService: progress lifecycle (lazy init, merge updates, stage advancement, reset)."""

from dataclasses import dataclass
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import Settings, get_settings
from app.db.models.progress import Progress
from app.domain.progress import StageAdvance, evaluate_stage_advance
from app.services.progress_tracker import ProgressTracker
from app.services.response_store import ResponseStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ResetResult:
    responses_deleted: int
    progress_deleted: int


class ProgressService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], settings: Settings | None = None):
        self.session_factory = session_factory
        self.settings = settings or get_settings()

    async def get_or_init(self, user_id: str) -> Progress:
        async with self.session_factory() as session:
            progress = await ProgressTracker(session).get_or_create(user_id)
            await session.commit()
            return progress

    async def update(self, user_id: str, updates: dict[str, Any]) -> Progress:
        """Merge ``updates`` into the user's progress, creating the row if needed."""
        async with self.session_factory() as session:
            tracker = ProgressTracker(session)
            progress = await tracker.get_or_create(user_id)
            await tracker.update(progress, updates)
            await session.commit()
            return progress

    async def evaluate_stage(self, user_id: str) -> tuple[Progress, StageAdvance]:
        """Advance the user to the next stage when the current one is finished."""
        async with self.session_factory() as session:
            tracker = ProgressTracker(session)
            progress = await tracker.get_or_create(user_id)

            advance = evaluate_stage_advance(
                stage=progress.stage,
                status=progress.status,
                response_count=progress.response_count,
                completed_stages=progress.completed_stages,
                contradiction_flag=progress.contradiction_flag,
                answers_per_stage=self.settings.answers_per_stage,
                max_stage=self.settings.max_stage,
            )
            if advance.advanced:
                from_stage = progress.stage
                await tracker.apply_stage_advance(progress, advance)
                logger.info(
                    "stage_advanced",
                    user_id=user_id,
                    from_stage=from_stage,
                    to_stage=advance.stage,
                    status=advance.status,
                )
            await session.commit()
            return progress, advance

    async def reset_session(self, user_id: str) -> ResetResult:
        """Purge every response and the progress row for the user in one transaction."""
        async with self.session_factory() as session:
            responses_deleted = await ResponseStore(session).purge(user_id)
            progress_deleted = await ProgressTracker(session).delete(user_id)
            await session.commit()

        logger.info(
            "session_reset",
            user_id=user_id,
            responses_deleted=responses_deleted,
            progress_deleted=progress_deleted,
        )
        return ResetResult(responses_deleted=responses_deleted, progress_deleted=progress_deleted)
