"""Contradiction resolution state machine.

Pure domain logic. Only the contradiction flag on Progress is persisted;
AWAITING_RESOLUTION_CHECK exists for the duration of a resolution check.
"""
from enum import Enum


class ResolutionState(str, Enum):
    NORMAL = "normal"
    CONTRADICTION_PENDING = "contradiction_pending"
    AWAITING_RESOLUTION_CHECK = "awaiting_resolution_check"


class ResolutionEvent(str, Enum):
    ANSWER_CONSISTENT = "answer_consistent"
    CONTRADICTION_FOUND = "contradiction_found"
    RESOLUTION_SUBMITTED = "resolution_submitted"
    RESOLVED = "resolved"
    NOT_RESOLVED = "not_resolved"
    EDIT_CONSISTENT = "edit_consistent"
    EDIT_CONTRADICTORY = "edit_contradictory"


class InvalidTransitionError(ValueError):
    """Raised when an event is not allowed in the current state."""

    def __init__(self, state: ResolutionState, event: ResolutionEvent):
        self.state = state
        self.event = event
        super().__init__(f"Event '{event.value}' not allowed in state '{state.value}'")


_S = ResolutionState
_E = ResolutionEvent

TRANSITIONS: dict[ResolutionState, dict[ResolutionEvent, ResolutionState]] = {
    _S.NORMAL: {
        _E.ANSWER_CONSISTENT: _S.NORMAL,
        _E.CONTRADICTION_FOUND: _S.CONTRADICTION_PENDING,
        _E.EDIT_CONSISTENT: _S.NORMAL,
        _E.EDIT_CONTRADICTORY: _S.CONTRADICTION_PENDING,
    },
    _S.CONTRADICTION_PENDING: {
        # A consistent answer to an older open question does not clear the gate
        _E.ANSWER_CONSISTENT: _S.CONTRADICTION_PENDING,
        _E.CONTRADICTION_FOUND: _S.CONTRADICTION_PENDING,
        _E.RESOLUTION_SUBMITTED: _S.AWAITING_RESOLUTION_CHECK,
        _E.EDIT_CONSISTENT: _S.NORMAL,
        _E.EDIT_CONTRADICTORY: _S.CONTRADICTION_PENDING,
    },
    _S.AWAITING_RESOLUTION_CHECK: {
        _E.RESOLVED: _S.NORMAL,
        _E.NOT_RESOLVED: _S.CONTRADICTION_PENDING,
    },
}


def state_from_flag(contradiction_flag: bool) -> ResolutionState:
    return _S.CONTRADICTION_PENDING if contradiction_flag else _S.NORMAL


def flag_for_state(state: ResolutionState) -> bool:
    return state is not _S.NORMAL


def transition(state: ResolutionState, event: ResolutionEvent) -> ResolutionState:
    """Return the next state, raising InvalidTransitionError for illegal events."""
    try:
        return TRANSITIONS[state][event]
    except KeyError:
        raise InvalidTransitionError(state, event) from None


def can_generate_questions(state: ResolutionState) -> bool:
    """New questions are only generated while no contradiction is pending."""
    return state is _S.NORMAL
