"""ResponseStore: append-only, versioned question/answer log for one unit of work.

The store is bound to an AsyncSession and never commits; the calling service
decides the transaction boundary. Rows are never deleted except by purge().
"""

import uuid
from datetime import datetime, timezone

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AnswerConflictError, InvalidAnswerError
from app.db.models.response import Response

logger = structlog.get_logger(__name__)


class ResponseStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_question(self, user_id: str, question_text: str, stage: int) -> Response:
        """Insert a new unanswered slot (version 1)."""
        response_id = uuid.uuid4()
        row = Response(
            id=response_id,
            slot_id=response_id,
            user_id=user_id,
            question_text=question_text,
            answer="",
            stage=stage,
            version=1,
            superseded=False,
            contradiction_flag=False,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def get(self, response_id: uuid.UUID, user_id: str | None = None) -> Response | None:
        """Fetch a row by id, optionally restricted to its owner."""
        stmt = select(Response).where(Response.id == response_id)
        if user_id is not None:
            stmt = stmt.where(Response.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_active_answers(
        self, user_id: str, exclude_id: uuid.UUID | None = None
    ) -> list[Response]:
        """The active answer set: non-superseded, answered, oldest first.

        Rows sharing a timestamp fall back to version then id, so repeated
        reads build identical prompts.
        """
        stmt = select(Response).where(
            Response.user_id == user_id,
            Response.superseded.is_(False),
            Response.answer != "",
        )
        if exclude_id is not None:
            stmt = stmt.where(Response.id != exclude_id)
        stmt = stmt.order_by(Response.created_at.asc(), Response.version.asc(), Response.id.asc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_history(self, user_id: str, include_superseded: bool = False) -> list[Response]:
        """All of a user's rows (answered or not), oldest first."""
        stmt = select(Response).where(Response.user_id == user_id)
        if not include_superseded:
            stmt = stmt.where(Response.superseded.is_(False))
        stmt = stmt.order_by(Response.created_at.asc(), Response.version.asc(), Response.id.asc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_slot_versions(self, slot_id: uuid.UUID) -> list[Response]:
        result = await self.session.execute(
            select(Response).where(Response.slot_id == slot_id).order_by(Response.version.asc())
        )
        return list(result.scalars().all())

    async def record_answer(self, row: Response, answer: str, contradiction_flag: bool) -> Response:
        """Give an unanswered row its answer. Answered rows are immutable.

        The write only lands while the row is still blank and active, so a
        second writer holding a stale copy of the row gets a conflict.
        """
        answer = answer.strip()
        if not answer:
            raise InvalidAnswerError()
        if row.superseded:
            raise AnswerConflictError("Response has been superseded by a newer version")
        if row.answer:
            raise AnswerConflictError("Response already answered; edit it instead")

        result = await self.session.execute(
            update(Response)
            .where(
                Response.id == row.id,
                Response.answer == "",
                Response.superseded.is_(False),
            )
            .values(
                answer=answer,
                contradiction_flag=contradiction_flag,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise AnswerConflictError("Response already answered; edit it instead")
        await self.session.refresh(row)
        return row

    async def supersede_with(self, row: Response, new_answer: str, contradiction_flag: bool) -> Response:
        """Retire ``row`` and insert its successor in the same slot.

        The retire step is conditional on the row still being active, so two
        concurrent edits cannot both produce an active successor.
        """
        new_answer = new_answer.strip()
        if not new_answer:
            raise InvalidAnswerError()

        result = await self.session.execute(
            update(Response)
            .where(Response.id == row.id, Response.superseded.is_(False))
            .values(superseded=True, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise AnswerConflictError("Response has been superseded by a newer version")
        await self.session.refresh(row)

        successor = Response(
            id=uuid.uuid4(),
            slot_id=row.slot_id,
            user_id=row.user_id,
            question_text=row.question_text,
            answer=new_answer,
            stage=row.stage,
            version=row.version + 1,
            superseded=False,
            contradiction_flag=contradiction_flag,
        )
        self.session.add(successor)
        await self.session.flush()

        logger.info(
            "response_superseded",
            user_id=row.user_id,
            slot_id=str(row.slot_id),
            old_version=row.version,
            new_version=successor.version,
        )
        return successor

    async def purge(self, user_id: str) -> int:
        """Delete every row for the user. Only used by session reset."""
        result = await self.session.execute(delete(Response).where(Response.user_id == user_id))
        return result.rowcount or 0
