"""Candidate read endpoints.

Lists come from the in-memory store; single reads fall back to the gateway
when the candidate is not cached yet.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query

from app.core.constants import STATE_LABELS
from app.models.candidate import Candidate
from app.models.enums import CandidateState
from app.models.timeline import TimelineEvent
from app.runtime import PortalRuntime, require_session

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=list[Candidate])
async def list_candidates(
    state: CandidateState | None = Query(default=None),
    runtime: PortalRuntime = Depends(require_session),
) -> list[Candidate]:
    if state is not None:
        return runtime.store.by_state(state)
    return runtime.store.list()


@router.post("/refresh", response_model=list[Candidate])
async def refresh_candidates(runtime: PortalRuntime = Depends(require_session)) -> list[Candidate]:
    """Reload the cache from the backend.  Errors use the error envelope."""
    return await runtime.store.refresh(runtime.gateway)


@router.get("/summary")
async def candidate_summary(runtime: PortalRuntime = Depends(require_session)) -> dict[str, Any]:
    """Per-state counts of the cached candidates (kanban column sizes)."""
    return {
        "total": len(runtime.store),
        "by_state": runtime.store.counts(),
        "labels": STATE_LABELS,
    }


@router.get("/stats")
async def candidate_stats(runtime: PortalRuntime = Depends(require_session)) -> dict[str, Any]:
    return await runtime.gateway.fetch_candidate_stats()


@router.get("/{candidate_id}", response_model=Candidate)
async def get_candidate(
    candidate_id: str,
    runtime: PortalRuntime = Depends(require_session),
) -> Candidate:
    candidate = runtime.store.get(candidate_id)
    if candidate is None:
        candidate = await runtime.gateway.fetch_candidate(candidate_id)
        runtime.store.merge(candidate)
    return candidate


@router.get("/{candidate_id}/timeline", response_model=list[TimelineEvent])
async def get_timeline(
    candidate_id: str,
    runtime: PortalRuntime = Depends(require_session),
) -> list[TimelineEvent]:
    return await runtime.gateway.fetch_timeline(candidate_id)
