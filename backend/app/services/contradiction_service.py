"""Contradiction detection and the resolution workflow.

ContradictionDetector asks the model whether a candidate answer conflicts with
the user's active answers. It fails open: an unreachable model never blocks
progress.

ResolutionWorkflow records answers and edits, drives the contradiction flag
through the state machine in ``app.domain.resolution`` and checks resolution
attempts. It fails closed: an unreachable model never clears the flag.

Every operation reads first, calls the model with no transaction open, then
writes its outcome in a single transaction.
"""

import uuid
from dataclasses import dataclass

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import Settings, get_settings
from app.core.exceptions import (
    AnswerConflictError,
    GatewayError,
    InvalidAnswerError,
    NoContradictionPendingError,
    ResponseNotFoundError,
)
from app.db.models.response import Response
from app.domain.resolution import (
    ResolutionEvent,
    ResolutionState,
    flag_for_state,
    state_from_flag,
    transition,
)
from app.llm.gateway import LLMGateway
from app.llm.parsing import (
    NO_CONTRADICTION,
    ContradictionVerdict,
    parse_contradiction,
    parse_resolution,
)
from app.llm.prompts import (
    build_contradiction_prompt,
    build_resolution_check_prompt,
    build_resolution_question_prompt,
    render_statements,
)
from app.services.progress_tracker import ProgressTracker
from app.services.response_store import ResponseStore

logger = structlog.get_logger(__name__)

# Contradiction needs two prior statements besides the candidate
MIN_PRIOR_STATEMENTS = 2

RESOLUTION_QUESTION_EMPTY_FALLBACK = "Could you explain how these different moral views fit together in your thinking?"
RESOLUTION_QUESTION_ERROR_FALLBACK = "Could you clarify your thinking about these seemingly different moral positions?"


@dataclass(frozen=True)
class AnswerOutcome:
    """Result of submitting or editing an answer."""

    verdict: ContradictionVerdict
    response: Response
    contradiction_pending: bool
    previous: Response | None = None


class ContradictionDetector:
    def __init__(
        self,
        gateway: LLMGateway,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings | None = None,
    ):
        self.gateway = gateway
        self.session_factory = session_factory
        self.settings = settings or get_settings()

    async def detect(
        self,
        user_id: str,
        candidate_answer: str,
        exclude_response_id: uuid.UUID | None = None,
    ) -> ContradictionVerdict:
        """Judge ``candidate_answer`` against the user's active answers.

        Args:
            user_id: Owner of the answers
            candidate_answer: The answer being added
            exclude_response_id: Row to leave out of the comparison set (the
                version an edit is replacing)

        Returns:
            ContradictionVerdict; found=False when fewer than two prior answers
            exist or the model is unavailable
        """
        async with self.session_factory() as session:
            prior = await ResponseStore(session).list_active_answers(user_id, exclude_id=exclude_response_id)

        if len(prior) < MIN_PRIOR_STATEMENTS:
            return NO_CONTRADICTION

        prompt = build_contradiction_prompt(render_statements(prior), candidate_answer)
        try:
            output = await self.gateway.generate(prompt, temperature=self.settings.contradiction_temperature)
        except GatewayError as exc:
            logger.warning("contradiction_check_failed", user_id=user_id, error=str(exc))
            return NO_CONTRADICTION

        verdict = parse_contradiction(output)
        logger.info(
            "contradiction_checked",
            user_id=user_id,
            prior_statements=len(prior),
            found=verdict.found,
        )
        return verdict


class ResolutionWorkflow:
    """Orchestrates detector -> clarification -> re-check -> flag update."""

    def __init__(
        self,
        gateway: LLMGateway,
        session_factory: async_sessionmaker[AsyncSession],
        detector: ContradictionDetector | None = None,
        settings: Settings | None = None,
    ):
        self.gateway = gateway
        self.session_factory = session_factory
        self.settings = settings or get_settings()
        self.detector = detector or ContradictionDetector(gateway, session_factory, self.settings)

    async def _load_active_row(self, session: AsyncSession, user_id: str, response_id: uuid.UUID) -> Response:
        row = await ResponseStore(session).get(response_id, user_id=user_id)
        if row is None:
            raise ResponseNotFoundError()
        if row.superseded:
            raise AnswerConflictError("Response has been superseded by a newer version")
        return row

    async def submit_answer(self, user_id: str, response_id: uuid.UUID, answer: str) -> AnswerOutcome:
        """Record the first answer for an open question and check it for contradictions.

        Contradictory answers are stored, flagged, and close the question gate.

        Raises:
            InvalidAnswerError: Blank answer
            ResponseNotFoundError: Unknown id or another user's row
            AnswerConflictError: Row superseded or already answered
            NotInitializedError: No progress row
        """
        answer = (answer or "").strip()
        if not answer:
            raise InvalidAnswerError()

        async with self.session_factory() as session:
            row = await self._load_active_row(session, user_id, response_id)
            if row.answer:
                raise AnswerConflictError("Response already answered; edit it instead")
            await ProgressTracker(session).require(user_id)

        verdict = await self.detector.detect(user_id, answer, exclude_response_id=response_id)

        async with self.session_factory() as session:
            store = ResponseStore(session)
            tracker = ProgressTracker(session)

            row = await self._load_active_row(session, user_id, response_id)
            progress = await tracker.require(user_id)

            await store.record_answer(row, answer, contradiction_flag=verdict.found)
            await tracker.increment_response_count(progress)

            event = ResolutionEvent.CONTRADICTION_FOUND if verdict.found else ResolutionEvent.ANSWER_CONSISTENT
            state = transition(state_from_flag(progress.contradiction_flag), event)
            await tracker.set_contradiction_flag(progress, flag_for_state(state))

            await session.commit()

        logger.info(
            "answer_recorded",
            user_id=user_id,
            response_id=str(response_id),
            contradiction=verdict.found,
        )
        return AnswerOutcome(verdict=verdict, response=row, contradiction_pending=flag_for_state(state))

    async def edit_response(self, user_id: str, response_id: uuid.UUID, new_answer: str) -> AnswerOutcome:
        """Replace an answered row with a new version and re-run detection.

        The fresh verdict sets or clears the contradiction flag, so an edit can
        both create and resolve a contradiction. Superseding the old row and
        inserting its successor happen in one transaction.

        Raises:
            InvalidAnswerError: Blank answer
            ResponseNotFoundError: Unknown id or another user's row
            AnswerConflictError: Row superseded or not yet answered
            NotInitializedError: No progress row
        """
        new_answer = (new_answer or "").strip()
        if not new_answer:
            raise InvalidAnswerError()

        async with self.session_factory() as session:
            row = await self._load_active_row(session, user_id, response_id)
            if not row.answer:
                raise AnswerConflictError("Response has no answer yet; submit one instead")
            await ProgressTracker(session).require(user_id)

        # Compare against the active set as it will be after the edit
        verdict = await self.detector.detect(user_id, new_answer, exclude_response_id=response_id)

        async with self.session_factory() as session:
            store = ResponseStore(session)
            tracker = ProgressTracker(session)

            previous = await self._load_active_row(session, user_id, response_id)
            progress = await tracker.require(user_id)

            successor = await store.supersede_with(previous, new_answer, contradiction_flag=verdict.found)

            event = ResolutionEvent.EDIT_CONTRADICTORY if verdict.found else ResolutionEvent.EDIT_CONSISTENT
            state = transition(state_from_flag(progress.contradiction_flag), event)
            await tracker.set_contradiction_flag(progress, flag_for_state(state))

            await session.commit()

        return AnswerOutcome(
            verdict=verdict,
            response=successor,
            contradiction_pending=flag_for_state(state),
            previous=previous,
        )

    async def _pending_context(self, user_id: str) -> tuple[int, str]:
        """Return (stage, rendered active answers); requires a pending contradiction."""
        async with self.session_factory() as session:
            progress = await ProgressTracker(session).require(user_id)
            if state_from_flag(progress.contradiction_flag) is not ResolutionState.CONTRADICTION_PENDING:
                raise NoContradictionPendingError()
            answers = await ResponseStore(session).list_active_answers(user_id)
            return progress.stage, render_statements(answers)

    async def resolve(self, user_id: str) -> str:
        """Produce one neutral clarifying question for the pending contradiction.

        Never fails because of the model; a generic question is returned instead.
        """
        stage, statements = await self._pending_context(user_id)
        prompt = build_resolution_question_prompt(statements, stage)

        try:
            question = await self.gateway.generate(
                prompt, temperature=self.settings.resolution_question_temperature
            )
        except GatewayError as exc:
            logger.warning("resolution_question_failed", user_id=user_id, error=str(exc))
            return RESOLUTION_QUESTION_ERROR_FALLBACK

        return question or RESOLUTION_QUESTION_EMPTY_FALLBACK

    async def check_resolution(self, user_id: str, resolution_text: str) -> bool:
        """Ask the model whether ``resolution_text`` reconciles the contradiction.

        Resolved clears the flag; anything else (including model failure)
        leaves it set. No Response row is written for resolution attempts.
        """
        resolution_text = (resolution_text or "").strip()
        if not resolution_text:
            raise InvalidAnswerError("Resolution text must not be empty")

        _, statements = await self._pending_context(user_id)
        state = transition(ResolutionState.CONTRADICTION_PENDING, ResolutionEvent.RESOLUTION_SUBMITTED)

        prompt = build_resolution_check_prompt(statements, resolution_text)
        try:
            output = await self.gateway.generate(prompt, temperature=self.settings.resolution_check_temperature)
            resolved = parse_resolution(output)
        except GatewayError as exc:
            logger.warning("resolution_check_failed", user_id=user_id, error=str(exc))
            resolved = False

        state = transition(state, ResolutionEvent.RESOLVED if resolved else ResolutionEvent.NOT_RESOLVED)

        async with self.session_factory() as session:
            tracker = ProgressTracker(session)
            progress = await tracker.require(user_id)
            await tracker.set_contradiction_flag(progress, flag_for_state(state))
            await session.commit()

        logger.info("resolution_checked", user_id=user_id, resolved=resolved)
        return resolved
