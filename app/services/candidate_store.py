"""In-memory candidate cache.

Records are keyed by candidate id and kept in first-insertion order.  A
merge replaces the whole record; the store never edits ``current_state``
on its own, it only holds what the backend returned.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from app.models.candidate import Candidate
from app.models.enums import CandidateState

logger = logging.getLogger(__name__)

StoreListener = Callable[[list[Candidate]], None]


class CandidateStore:
    def __init__(self, reject_stale_merges: bool = False) -> None:
        self.reject_stale_merges = reject_stale_merges
        self._records: dict[str, Candidate] = {}
        self._listeners: list[StoreListener] = []
        self.loading = False

    def add_listener(self, listener: StoreListener) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        snapshot = self.list()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("store_listener_failed")

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, candidate_id: object) -> bool:
        return candidate_id in self._records

    def replace_all(self, candidates: list[Candidate]) -> None:
        """Replace the whole cache with *candidates* (duplicate ids: first wins)."""
        records: dict[str, Candidate] = {}
        for candidate in candidates:
            records.setdefault(candidate.id, candidate)
        self._records = records
        self._notify()

    def merge(self, candidate: Candidate) -> bool:
        """Insert or replace the record with ``candidate.id``.

        Returns False when the merge was dropped by the stale-merge guard.
        """
        current = self._records.get(candidate.id)
        if (
            self.reject_stale_merges
            and current is not None
            and candidate.updated_at < current.updated_at
        ):
            logger.info(
                "stale_merge_dropped",
                extra={
                    "candidate_id": candidate.id,
                    "incoming_updated_at": candidate.updated_at.isoformat(),
                    "stored_updated_at": current.updated_at.isoformat(),
                },
            )
            return False
        self._records[candidate.id] = candidate
        self._notify()
        return True

    def get(self, candidate_id: str) -> Candidate | None:
        return self._records.get(candidate_id)

    def list(self) -> list[Candidate]:
        return list(self._records.values())

    def by_state(self, state: CandidateState) -> list[Candidate]:
        return [c for c in self._records.values() if c.current_state == state]

    def counts(self) -> dict[str, int]:
        """Number of candidates per state, every state present."""
        counts = {state.value: 0 for state in CandidateState}
        for candidate in self._records.values():
            counts[candidate.current_state.value] += 1
        return counts

    async def refresh(self, gateway: Any) -> list[Candidate]:
        """Reload the cache from *gateway*.

        On failure the previous contents are kept and the error propagates.
        """
        self.loading = True
        try:
            candidates = await gateway.fetch_candidates()
        finally:
            self.loading = False
        self.replace_all(candidates)
        logger.info("store_refreshed", extra={"count": len(self._records)})
        return self.list()

    def clear(self) -> None:
        self._records = {}
        self._notify()
