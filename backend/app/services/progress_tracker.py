"""ProgressTracker: per-user stage, answer count and contradiction gate.

Bound to an AsyncSession; never commits. Every mutation refreshes
``last_updated``.
"""

from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotInitializedError
from app.db.models.progress import Progress
from app.domain.progress import StageAdvance

logger = structlog.get_logger(__name__)

UPDATABLE_FIELDS = frozenset(
    {"stage", "status", "response_count", "contradiction_flag", "completed_stages"}
)


class ProgressTracker:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, user_id: str) -> Progress | None:
        result = await self.session.execute(select(Progress).where(Progress.user_id == user_id))
        return result.scalar_one_or_none()

    async def require(self, user_id: str) -> Progress:
        progress = await self.get(user_id)
        if progress is None:
            raise NotInitializedError()
        return progress

    async def get_or_create(self, user_id: str) -> Progress:
        """Return the user's progress, creating it with defaults on first access."""
        existing = await self.get(user_id)
        if existing is not None:
            return existing

        progress = Progress(
            user_id=user_id,
            stage=1,
            status="active",
            response_count=0,
            contradiction_flag=False,
            completed_stages=[],
        )
        self.session.add(progress)
        try:
            await self.session.flush()
        except IntegrityError:
            # Another request created it first
            await self.session.rollback()
            return await self.require(user_id)

        logger.info("progress_initialized", user_id=user_id)
        return progress

    def _touch(self, progress: Progress) -> None:
        progress.last_updated = datetime.now(timezone.utc)

    async def update(self, progress: Progress, updates: dict[str, Any]) -> Progress:
        """Merge ``updates`` into the row. Unknown fields are rejected."""
        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown progress fields: {sorted(unknown)}")

        for key, value in updates.items():
            if key == "completed_stages":
                value = sorted(set(value))
            setattr(progress, key, value)
        self._touch(progress)
        await self.session.flush()
        return progress

    async def increment_response_count(self, progress: Progress) -> Progress:
        progress.response_count = (progress.response_count or 0) + 1
        self._touch(progress)
        await self.session.flush()
        return progress

    async def set_contradiction_flag(self, progress: Progress, flag: bool) -> Progress:
        if progress.contradiction_flag != flag:
            logger.info(
                "contradiction_flag_changed",
                user_id=progress.user_id,
                old=progress.contradiction_flag,
                new=flag,
            )
        progress.contradiction_flag = flag
        self._touch(progress)
        await self.session.flush()
        return progress

    async def apply_stage_advance(self, progress: Progress, advance: StageAdvance) -> Progress:
        progress.stage = advance.stage
        progress.status = advance.status
        progress.response_count = advance.response_count
        progress.completed_stages = list(advance.completed_stages)
        self._touch(progress)
        await self.session.flush()
        return progress

    async def delete(self, user_id: str) -> int:
        result = await self.session.execute(delete(Progress).where(Progress.user_id == user_id))
        return result.rowcount or 0
