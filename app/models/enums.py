"""Enum types for the candidate pipeline, the backend wire vocabulary,
sessions and the live update channel."""

from enum import Enum


class CandidateState(str, Enum):
    """Pipeline stage a candidate occupies (exactly one at a time)."""
    TO_REVIEW = "TO_REVIEW"
    INTERVIEW_SCHEDULED = "INTERVIEW_SCHEDULED"
    SELECTED = "SELECTED"
    JOINED = "JOINED"
    REJECTED = "REJECTED"
    LEFT_COMPANY = "LEFT_COMPANY"


class ClientAction(str, Enum):
    """Transitions a client user may request."""
    SCHEDULE_INTERVIEW = "SCHEDULE_INTERVIEW"
    SELECT = "SELECT"
    REJECT = "REJECT"
    MARK_LEFT_COMPANY = "MARK_LEFT_COMPANY"


class BackendApplicationStatus(str, Enum):
    """Application ``status`` values as stored by the backend."""
    RECEIVED = "RECEIVED"
    SCREENING = "SCREENING"
    INTERVIEW_SCHEDULED = "INTERVIEW_SCHEDULED"
    INTERVIEWED = "INTERVIEWED"
    OFFER_MADE = "OFFER_MADE"
    HIRED = "HIRED"
    REJECTED = "REJECTED"
    WITHDRAWN = "WITHDRAWN"


class BackendCandidateStatus(str, Enum):
    """Candidate ``status`` values as stored by the backend."""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    LEFT = "LEFT"
    HIRED = "HIRED"
    REJECTED = "REJECTED"


class InterviewMode(str, Enum):
    in_person = "in_person"
    video = "video"
    phone = "phone"


class Recommendation(str, Enum):
    strong_yes = "strong_yes"
    yes = "yes"
    neutral = "neutral"
    no = "no"
    strong_no = "strong_no"


class RejectReason(str, Enum):
    skill_mismatch = "skill_mismatch"
    experience_insufficient = "experience_insufficient"
    culture_fit = "culture_fit"
    salary_expectation = "salary_expectation"
    other = "other"


class LeftReason(str, Enum):
    resigned = "resigned"
    terminated = "terminated"
    contract_ended = "contract_ended"
    other = "other"


class TimelineEventType(str, Enum):
    state_change = "state_change"
    interview_round = "interview_round"
    feedback = "feedback"


class TimelineActor(str, Enum):
    client = "client"
    system = "system"
    hr = "hr"


class SessionStatus(str, Enum):
    """Lifecycle of the client session."""
    anonymous = "anonymous"
    validating = "validating"
    authenticated = "authenticated"


class SessionErrorKind(str, Enum):
    expired = "expired"
    invalid = "invalid"
    revoked = "revoked"


class ChannelStatus(str, Enum):
    """Connectivity of the live update channel."""
    disconnected = "disconnected"
    connecting = "connecting"
    connected = "connected"


class LiveEventType(str, Enum):
    """Named events pushed over the server-sent-event stream."""
    candidate_status_change = "candidate_status_change"
    interview_scheduled = "interview_scheduled"
    feedback_submitted = "feedback_submitted"
    candidate_created = "candidate_created"
    connection_established = "connection_established"


class OutcomeStatus(str, Enum):
    """Result category of an orchestrated action."""
    success = "success"
    validation_error = "validation_error"
    domain_error = "domain_error"
    transport_error = "transport_error"
    partial = "partial"
    session_error = "session_error"
