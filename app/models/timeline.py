"""Pydantic models for candidate timeline events."""

from datetime import datetime

from pydantic import BaseModel, Field

from app.models.enums import (
    CandidateState,
    InterviewMode,
    Recommendation,
    TimelineActor,
    TimelineEventType,
)


class InterviewRoundDetails(BaseModel):
    round_number: int = Field(ge=1)
    mode: InterviewMode
    interviewer_name: str | None = None
    scheduled_date: datetime | None = None


class FeedbackDetails(BaseModel):
    round_number: int = Field(ge=1)
    rating: int = Field(ge=1, le=5)
    recommendation: Recommendation


class TimelineEvent(BaseModel):
    """One immutable entry in a candidate's application history."""
    id: str
    candidate_id: str
    event_type: TimelineEventType
    state: CandidateState | None = None
    timestamp: datetime
    actor: TimelineActor = TimelineActor.system
    note: str | None = None
    interview_details: InterviewRoundDetails | None = None
    feedback_details: FeedbackDetails | None = None
