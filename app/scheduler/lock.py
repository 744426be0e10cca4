"""In-flight action registry.

At most one request per (candidate, operation) pair may be outstanding.
Operations are named by string (a ``ClientAction`` value or a composite
operation such as feedback submission).
Acquisition is non-blocking: if the key is already held the caller gets
False and reports the action as already in progress.
"""

from __future__ import annotations

import threading

_Key = tuple[str, str]


class InFlightRegistry:
    """Tracks which candidate actions currently have a request outstanding."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: set[_Key] = set()

    def try_acquire(self, candidate_id: str, action: str) -> bool:
        """Mark *action* on *candidate_id* as in flight.

        Returns True if the key was free, False if already held.
        """
        key = (candidate_id, action)
        with self._lock:
            if key in self._pending:
                return False
            self._pending.add(key)
            return True

    def release(self, candidate_id: str, action: str) -> None:
        """Release the key.  Safe to call when it is not held."""
        with self._lock:
            self._pending.discard((candidate_id, action))

    def is_pending(self, candidate_id: str, action: str) -> bool:
        with self._lock:
            return (candidate_id, action) in self._pending

    def is_candidate_busy(self, candidate_id: str) -> bool:
        """Check if any action is in flight for *candidate_id*."""
        with self._lock:
            return any(cid == candidate_id for cid, _ in self._pending)

    def pending(self) -> list[_Key]:
        with self._lock:
            return sorted(self._pending, key=lambda key: (key[0], key[1]))
