"""Candidate action endpoints.

Each endpoint hands the raw JSON body to the orchestrator, which validates
it and answers with an ``ActionOutcome``.  The HTTP status mirrors the
outcome category.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from app.models.actions import ActionOutcome
from app.models.enums import OutcomeStatus
from app.runtime import PortalRuntime, require_session

logger = logging.getLogger(__name__)

router = APIRouter()

_HTTP_STATUS: dict[OutcomeStatus, int] = {
    OutcomeStatus.success: 200,
    OutcomeStatus.partial: 207,
    OutcomeStatus.validation_error: 422,
    OutcomeStatus.domain_error: 400,
    OutcomeStatus.transport_error: 502,
    OutcomeStatus.session_error: 401,
}

_CONFLICT_CODES = frozenset({"INVALID_ACTION", "ACTION_IN_PROGRESS", "INVALID_TRANSITION"})


def _respond(outcome: ActionOutcome) -> JSONResponse:
    status_code = _HTTP_STATUS[outcome.status]
    if outcome.code in _CONFLICT_CODES:
        status_code = 409
    return JSONResponse(status_code=status_code, content=outcome.model_dump(mode="json"))


@router.post("/schedule-interview", response_model=ActionOutcome)
async def schedule_interview(
    candidate_id: str,
    payload: dict[str, Any] | None = Body(default=None),
    runtime: PortalRuntime = Depends(require_session),
) -> JSONResponse:
    return _respond(await runtime.orchestrator.schedule_interview(candidate_id, payload or {}))


@router.post("/select", response_model=ActionOutcome)
async def select(
    candidate_id: str,
    runtime: PortalRuntime = Depends(require_session),
) -> JSONResponse:
    return _respond(await runtime.orchestrator.select(candidate_id))


@router.post("/reject", response_model=ActionOutcome)
async def reject(
    candidate_id: str,
    payload: dict[str, Any] | None = Body(default=None),
    runtime: PortalRuntime = Depends(require_session),
) -> JSONResponse:
    return _respond(await runtime.orchestrator.reject(candidate_id, payload or {}))


@router.post("/mark-left-company", response_model=ActionOutcome)
async def mark_left_company(
    candidate_id: str,
    payload: dict[str, Any] | None = Body(default=None),
    runtime: PortalRuntime = Depends(require_session),
) -> JSONResponse:
    return _respond(await runtime.orchestrator.mark_left_company(candidate_id, payload or {}))


@router.post("/feedback", response_model=ActionOutcome)
async def submit_feedback(
    candidate_id: str,
    payload: dict[str, Any] | None = Body(default=None),
    runtime: PortalRuntime = Depends(require_session),
) -> JSONResponse:
    return _respond(await runtime.orchestrator.submit_feedback(candidate_id, payload or {}))


@router.post("/feedback-and-schedule", response_model=ActionOutcome)
async def submit_feedback_and_schedule(
    candidate_id: str,
    payload: dict[str, Any] | None = Body(default=None),
    runtime: PortalRuntime = Depends(require_session),
) -> JSONResponse:
    return _respond(
        await runtime.orchestrator.submit_feedback_and_schedule(candidate_id, payload or {})
    )
