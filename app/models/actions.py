"""Pydantic models for action inputs.

Each model enforces the required fields of one client action.  Raw dicts
coming from the HTTP surface are validated by the orchestrator, which turns
a ``pydantic.ValidationError`` into an ``ActionValidationError``.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from pydantic import BaseModel, Field, field_validator

from app.core.constants import (
    MAX_RATING,
    MAX_REMARK_LENGTH,
    MIN_RATING,
    MIN_REMARK_LENGTH,
)
from app.models.candidate import Candidate
from app.models.enums import (
    InterviewMode,
    LeftReason,
    OutcomeStatus,
    Recommendation,
    RejectReason,
)


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _remark(value: str, minimum: int) -> str:
    text = value.strip()
    if len(text) < minimum:
        if minimum <= 1:
            raise ValueError("Feedback is required")
        raise ValueError(f"Feedback must be at least {minimum} characters")
    if len(text) > MAX_REMARK_LENGTH:
        raise ValueError(f"Feedback must be at most {MAX_REMARK_LENGTH} characters")
    return text


class ScheduleInterviewRequest(BaseModel):
    scheduled_date: datetime
    mode: InterviewMode = InterviewMode.video
    round_number: int = Field(default=1, ge=1)
    interviewer_name: str | None = None
    notes: str | None = Field(default=None, max_length=MAX_REMARK_LENGTH)

    @field_validator("scheduled_date")
    @classmethod
    def must_be_future(cls, value: datetime) -> datetime:
        value = _utc(value)
        if value <= datetime.now(timezone.utc):
            raise ValueError("Interview date and time must be in the future")
        return value

    @field_validator("interviewer_name", "notes")
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class FeedbackRequest(BaseModel):
    round_number: int = Field(ge=1)
    rating: int = Field(ge=MIN_RATING, le=MAX_RATING)
    recommendation: Recommendation
    feedback: str

    @field_validator("feedback")
    @classmethod
    def feedback_required(cls, value: str) -> str:
        return _remark(value, 1)


class RejectRequest(BaseModel):
    reason: RejectReason
    feedback: str

    @field_validator("feedback")
    @classmethod
    def feedback_length(cls, value: str) -> str:
        return _remark(value, MIN_REMARK_LENGTH)


class LeftCompanyRequest(BaseModel):
    reason: LeftReason
    feedback: str
    last_working_date: date | None = None

    @field_validator("feedback")
    @classmethod
    def feedback_length(cls, value: str) -> str:
        return _remark(value, MIN_REMARK_LENGTH)

    @field_validator("last_working_date")
    @classmethod
    def not_in_future(cls, value: date | None) -> date | None:
        if value is not None and value > date.today():
            raise ValueError("Last working date cannot be in the future")
        return value


class FeedbackAndScheduleRequest(BaseModel):
    """Feedback for the round just held plus the next round to schedule."""
    feedback: FeedbackRequest
    next_round: ScheduleInterviewRequest


class ActionOutcome(BaseModel):
    """Result of an orchestrated action, ready for display.

    ``dialog_open`` tells the UI whether the action dialog should stay open
    so the user can correct input or retry.
    """
    status: OutcomeStatus
    action: str
    candidate_id: str
    title: str
    message: str
    code: str | None = None
    candidate: Candidate | None = None
    dialog_open: bool = False
    completed: list[str] = Field(default_factory=list)
    failed: str | None = None
