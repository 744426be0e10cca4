"""Pydantic models for candidates and applications.

``BackendCandidate`` and ``BackendApplication`` mirror the backend's JSON.
``Candidate`` is the portal's view of a person under review: profile fields
plus the derived pipeline state and the actions legal from it.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.core.errors import ContractViolationError
from app.models.enums import CandidateState, ClientAction
from app.services.state_model import allowed_actions, ordered_actions


class BackendCandidate(BaseModel):
    """Candidate record as returned by ``/candidates/{id}``."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    client_id: str | None = None
    name: str
    email: str | None = None
    phone: str | None = None
    location: str | None = None
    skills: list[str] | dict[str, Any] | None = None
    experience: str | dict[str, Any] | None = None
    ctc_current: float | None = None
    ctc_expected: float | None = None
    status: str = "ACTIVE"
    remark: str | None = None
    candidate_hash: str | None = None
    created_at: datetime
    updated_at: datetime


class BackendApplication(BaseModel):
    """Application record as returned by ``/applications/``."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    candidate_id: str
    client_id: str | None = None
    job_title: str | None = None
    application_date: str | None = None
    status: str
    flagged_for_review: bool = False
    flag_reason: str | None = None
    deleted_at: datetime | None = None
    is_deleted: bool = False
    created_at: datetime
    updated_at: datetime
    candidate: BackendCandidate | None = None


class Candidate(BaseModel):
    """A candidate as presented to the client user.

    ``allowed_actions`` is derived from ``current_state``.  When omitted it is
    filled from the state model; when supplied it must match the state model
    exactly, otherwise the snapshot is rejected with
    ``ContractViolationError``.
    """

    id: str
    application_id: str = ""
    name: str
    email: str | None = None
    phone: str | None = None
    location: str | None = None
    current_state: CandidateState
    skills: list[str] = Field(default_factory=list)
    experience_summary: str = ""
    ctc_current: float | None = None
    ctc_expected: float | None = None
    resume_url: str | None = None
    remark: str | None = None
    allowed_actions: list[ClientAction] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def derive_allowed_actions(self) -> "Candidate":
        if "allowed_actions" not in self.model_fields_set:
            self.allowed_actions = ordered_actions(self.current_state)
            return self
        expected = allowed_actions(self.current_state)
        if set(self.allowed_actions) != expected:
            raise ContractViolationError(
                f"Candidate {self.id} in state {self.current_state.value} exposes "
                f"{sorted(a.value for a in self.allowed_actions)}, expected "
                f"{sorted(a.value for a in expected)}"
            )
        return self

    def can(self, action: ClientAction) -> bool:
        return action in self.allowed_actions
