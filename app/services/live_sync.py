"""Reconciles the candidate store with live update events.

Event payloads are treated as hints only: the affected candidate is
re-fetched from the gateway and the backend's snapshot is merged.
"""

from __future__ import annotations

import logging
from typing import Any

from app.core.errors import PortalError
from app.models.enums import LiveEventType
from app.models.events import LiveEvent
from app.services.candidate_store import CandidateStore

logger = logging.getLogger(__name__)

_REFETCH_EVENTS = frozenset({
    LiveEventType.candidate_status_change,
    LiveEventType.interview_scheduled,
    LiveEventType.feedback_submitted,
})


class LiveSync:
    def __init__(self, gateway: Any, store: CandidateStore) -> None:
        self.gateway = gateway
        self.store = store

    async def handle(self, event: LiveEvent) -> None:
        """Apply *event* to the store.  Errors are logged, never raised."""
        try:
            if event.type in _REFETCH_EVENTS and event.candidate_id:
                candidate = await self.gateway.fetch_candidate(event.candidate_id)
                self.store.merge(candidate)
                logger.info(
                    "live_candidate_synced",
                    extra={
                        "event": event.type.value,
                        "candidate_id": event.candidate_id,
                        "state": candidate.current_state.value,
                    },
                )
            elif event.type == LiveEventType.candidate_created:
                await self.store.refresh(self.gateway)
            elif event.type == LiveEventType.connection_established:
                logger.info("live_connection_established")
        except PortalError as exc:
            logger.warning(
                "live_sync_failed",
                extra={
                    "event": event.type.value,
                    "candidate_id": event.candidate_id,
                    "code": exc.code,
                },
            )
