"""Fallback timeline built from application history.

Used when the backend has no dedicated timeline endpoint.  Only state-change
events can be reconstructed this way; interview rounds and feedback need the
real endpoint.
"""

from __future__ import annotations

from app.models.candidate import BackendApplication
from app.models.enums import (
    BackendApplicationStatus,
    CandidateState,
    TimelineActor,
    TimelineEventType,
)
from app.models.timeline import TimelineEvent
from app.services.state_model import map_application_status


def synthesize_timeline(
    candidate_id: str, applications: list[BackendApplication]
) -> list[TimelineEvent]:
    """Return state-change events for *applications*, oldest first.

    Each application contributes a ``TO_REVIEW`` event at creation time and,
    unless it is still ``RECEIVED``, a second event carrying its current
    state at its last update time.
    """
    events: list[TimelineEvent] = []

    for app in applications:
        events.append(
            TimelineEvent(
                id=f"timeline-{app.id}-created",
                candidate_id=candidate_id,
                event_type=TimelineEventType.state_change,
                state=CandidateState.TO_REVIEW,
                timestamp=app.created_at,
                actor=TimelineActor.system,
                note=f"Application received for {app.job_title or 'position'}",
            )
        )
        if app.status != BackendApplicationStatus.RECEIVED.value:
            events.append(
                TimelineEvent(
                    id=f"timeline-{app.id}-status",
                    candidate_id=candidate_id,
                    event_type=TimelineEventType.state_change,
                    state=map_application_status(app.status),
                    timestamp=app.updated_at,
                    actor=TimelineActor.client,
                )
            )

    return sorted(events, key=lambda event: event.timestamp)
