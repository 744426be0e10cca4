"""Candidate lifecycle state model.

Pure lookup functions over the six pipeline states:

* which actions a client may take from each state,
* which state-to-state moves are legal,
* which state an action leads to,
* how the backend's status strings map onto the client states.

The backend is authoritative.  These tables exist so the portal can offer
exactly the right actions and refuse illegal ones without a round trip.
"""

from __future__ import annotations

import logging

from app.core.errors import InvalidActionError
from app.models.enums import (
    BackendApplicationStatus,
    BackendCandidateStatus,
    CandidateState,
    ClientAction,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

# Display order matters for the UI, so actions are kept as ordered tuples.
STATE_ALLOWED_ACTIONS: dict[CandidateState, tuple[ClientAction, ...]] = {
    CandidateState.TO_REVIEW: (
        ClientAction.SCHEDULE_INTERVIEW,
        ClientAction.SELECT,
        ClientAction.REJECT,
    ),
    CandidateState.INTERVIEW_SCHEDULED: (
        ClientAction.SCHEDULE_INTERVIEW,
        ClientAction.SELECT,
        ClientAction.REJECT,
    ),
    CandidateState.SELECTED: (ClientAction.REJECT,),
    CandidateState.JOINED: (ClientAction.MARK_LEFT_COMPANY,),
    CandidateState.REJECTED: (),
    CandidateState.LEFT_COMPANY: (),
}

VALID_TRANSITIONS: dict[CandidateState, frozenset[CandidateState]] = {
    CandidateState.TO_REVIEW: frozenset({
        CandidateState.INTERVIEW_SCHEDULED,
        CandidateState.SELECTED,
        CandidateState.REJECTED,
    }),
    CandidateState.INTERVIEW_SCHEDULED: frozenset({
        CandidateState.INTERVIEW_SCHEDULED,
        CandidateState.SELECTED,
        CandidateState.REJECTED,
    }),
    # SELECTED -> JOINED is performed by the backend (HR), never by a client action
    CandidateState.SELECTED: frozenset({
        CandidateState.JOINED,
        CandidateState.REJECTED,
    }),
    CandidateState.JOINED: frozenset({CandidateState.LEFT_COMPANY}),
    CandidateState.REJECTED: frozenset(),
    CandidateState.LEFT_COMPANY: frozenset(),
}

ACTION_TARGET_STATE: dict[ClientAction, CandidateState] = {
    ClientAction.SCHEDULE_INTERVIEW: CandidateState.INTERVIEW_SCHEDULED,
    ClientAction.SELECT: CandidateState.SELECTED,
    ClientAction.REJECT: CandidateState.REJECTED,
    ClientAction.MARK_LEFT_COMPANY: CandidateState.LEFT_COMPANY,
}

_APPLICATION_STATUS_TO_STATE: dict[BackendApplicationStatus, CandidateState] = {
    BackendApplicationStatus.RECEIVED: CandidateState.TO_REVIEW,
    BackendApplicationStatus.SCREENING: CandidateState.TO_REVIEW,
    BackendApplicationStatus.INTERVIEW_SCHEDULED: CandidateState.INTERVIEW_SCHEDULED,
    BackendApplicationStatus.INTERVIEWED: CandidateState.INTERVIEW_SCHEDULED,
    BackendApplicationStatus.OFFER_MADE: CandidateState.SELECTED,
    BackendApplicationStatus.HIRED: CandidateState.JOINED,
    BackendApplicationStatus.REJECTED: CandidateState.REJECTED,
    BackendApplicationStatus.WITHDRAWN: CandidateState.REJECTED,
}

_CANDIDATE_STATUS_TO_STATE: dict[BackendCandidateStatus, CandidateState] = {
    BackendCandidateStatus.ACTIVE: CandidateState.TO_REVIEW,
    BackendCandidateStatus.INACTIVE: CandidateState.REJECTED,
    BackendCandidateStatus.LEFT: CandidateState.LEFT_COMPANY,
    BackendCandidateStatus.HIRED: CandidateState.JOINED,
    BackendCandidateStatus.REJECTED: CandidateState.REJECTED,
}

_STATE_TO_APPLICATION_STATUS: dict[CandidateState, BackendApplicationStatus] = {
    CandidateState.TO_REVIEW: BackendApplicationStatus.SCREENING,
    CandidateState.INTERVIEW_SCHEDULED: BackendApplicationStatus.INTERVIEW_SCHEDULED,
    CandidateState.SELECTED: BackendApplicationStatus.OFFER_MADE,
    CandidateState.JOINED: BackendApplicationStatus.HIRED,
    CandidateState.REJECTED: BackendApplicationStatus.REJECTED,
    CandidateState.LEFT_COMPANY: BackendApplicationStatus.WITHDRAWN,
}

_ACTION_TO_BACKEND_STATUS: dict[ClientAction, BackendApplicationStatus] = {
    ClientAction.SCHEDULE_INTERVIEW: BackendApplicationStatus.INTERVIEW_SCHEDULED,
    ClientAction.SELECT: BackendApplicationStatus.OFFER_MADE,
    ClientAction.REJECT: BackendApplicationStatus.REJECTED,
    ClientAction.MARK_LEFT_COMPANY: BackendApplicationStatus.WITHDRAWN,
}

_FALLBACK_STATE = CandidateState.TO_REVIEW

# Interview feedback is recorded against a round that has been scheduled
FEEDBACK_STATES: frozenset[CandidateState] = frozenset({CandidateState.INTERVIEW_SCHEDULED})


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def allowed_actions(state: CandidateState) -> frozenset[ClientAction]:
    """Return the set of actions a client may take from *state*."""
    return frozenset(STATE_ALLOWED_ACTIONS[state])


def ordered_actions(state: CandidateState) -> list[ClientAction]:
    """Return the allowed actions for *state* in display order."""
    return list(STATE_ALLOWED_ACTIONS[state])


def is_terminal(state: CandidateState) -> bool:
    return not VALID_TRANSITIONS[state]


def can_submit_feedback(state: CandidateState) -> bool:
    return state in FEEDBACK_STATES


def is_valid_transition(from_state: CandidateState, to_state: CandidateState) -> bool:
    """Return True if the backend may move a candidate from *from_state* to *to_state*."""
    return to_state in VALID_TRANSITIONS[from_state]


def target_state_for(action: ClientAction, current_state: CandidateState) -> CandidateState:
    """Return the state *action* leads to from *current_state*.

    Raises ``InvalidActionError`` if the action is not applicable.
    """
    if action not in STATE_ALLOWED_ACTIONS[current_state]:
        raise InvalidActionError(action.value, current_state.value)
    return ACTION_TARGET_STATE[action]


# ---------------------------------------------------------------------------
# Backend status mapping
# ---------------------------------------------------------------------------

def _log_unknown_status(kind: str, raw: str) -> None:
    logger.warning(
        "unknown_backend_status",
        extra={
            "status_kind": kind,
            "raw_status": raw,
            "fallback_state": _FALLBACK_STATE.value,
        },
    )


def map_application_status(status: str) -> CandidateState:
    """Map a backend application status string to a client state.

    Unknown values fall back to ``TO_REVIEW`` and are logged as a
    data-quality event.
    """
    try:
        return _APPLICATION_STATUS_TO_STATE[BackendApplicationStatus(status)]
    except ValueError:
        _log_unknown_status("application", status)
        return _FALLBACK_STATE


def map_candidate_status(status: str) -> CandidateState:
    """Map a backend candidate status string to a client state."""
    try:
        return _CANDIDATE_STATUS_TO_STATE[BackendCandidateStatus(status)]
    except ValueError:
        _log_unknown_status("candidate", status)
        return _FALLBACK_STATE


def resolve_state(candidate_status: str, application_status: str | None) -> CandidateState:
    """Derive the current state from a candidate record and its application.

    The application status drives the pipeline, except for departures:
    the backend records those on the candidate (``LEFT``) while the
    application stays ``HIRED``.
    """
    if candidate_status == BackendCandidateStatus.LEFT.value:
        return CandidateState.LEFT_COMPANY
    if application_status is None:
        return map_candidate_status(candidate_status)
    return map_application_status(application_status)


def application_status_for(state: CandidateState) -> BackendApplicationStatus:
    """Return the backend application status that represents *state*."""
    return _STATE_TO_APPLICATION_STATUS[state]


def backend_status_for(action: ClientAction) -> BackendApplicationStatus:
    """Return the application status the backend expects for *action*."""
    return _ACTION_TO_BACKEND_STATUS[action]
