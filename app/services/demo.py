"""Demo-mode gateway.

Serves every gateway operation from deterministic in-memory fixtures so the
portal can be explored without a backend.  Each instance owns its own copy
of the fixtures; mutations follow the same transition rules the backend
enforces.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from app.core.errors import DomainError, InvalidCredentialsError, SessionError
from app.models.actions import (
    FeedbackRequest,
    LeftCompanyRequest,
    RejectRequest,
    ScheduleInterviewRequest,
)
from app.models.candidate import BackendApplication, Candidate
from app.models.enums import (
    CandidateState,
    ClientAction,
    SessionErrorKind,
    TimelineActor,
    TimelineEventType,
)
from app.models.session import Identity, LoginCredentials, LoginResponse
from app.models.timeline import FeedbackDetails, InterviewRoundDetails, TimelineEvent
from app.services.state_model import (
    ACTION_TARGET_STATE,
    application_status_for,
    is_valid_transition,
)

logger = logging.getLogger(__name__)

DEMO_USERNAME = "demo@example.com"
DEMO_PASSWORD = "demo123"
DEMO_TOKEN = "demo-token-12345"

DEMO_IDENTITY = Identity(
    id="user-demo",
    email=DEMO_USERNAME,
    role="client",
    client_id="client-123",
    client_name="Acme Corporation",
)


def _ts(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


_CANDIDATE_FIXTURES: list[dict[str, Any]] = [
    {
        "id": "1",
        "application_id": "APP-2024-001",
        "name": "Sarah Chen",
        "current_state": CandidateState.TO_REVIEW,
        "skills": ["React", "TypeScript", "Node.js", "PostgreSQL", "AWS"],
        "experience_summary": (
            "Senior Full-Stack Engineer with 7 years of experience building scalable "
            "web applications. Previously at Stripe and Airbnb."
        ),
        "created_at": "2024-12-20T10:00:00Z",
        "updated_at": "2024-12-28T14:30:00Z",
    },
    {
        "id": "2",
        "application_id": "APP-2024-002",
        "name": "Marcus Johnson",
        "current_state": CandidateState.TO_REVIEW,
        "skills": ["Python", "Machine Learning", "TensorFlow", "Data Analysis"],
        "experience_summary": (
            "Data Scientist with expertise in ML pipelines and predictive modeling. "
            "PhD in Computer Science from MIT."
        ),
        "created_at": "2024-12-21T09:00:00Z",
        "updated_at": "2024-12-27T11:00:00Z",
    },
    {
        "id": "3",
        "application_id": "APP-2024-003",
        "name": "Elena Rodriguez",
        "current_state": CandidateState.INTERVIEW_SCHEDULED,
        "skills": ["Product Management", "Agile", "User Research", "SQL"],
        "experience_summary": (
            "Product Manager with 5 years experience in B2B SaaS. "
            "Led teams at Salesforce and HubSpot."
        ),
        "created_at": "2024-12-15T08:00:00Z",
        "updated_at": "2024-12-26T16:00:00Z",
    },
    {
        "id": "4",
        "application_id": "APP-2024-004",
        "name": "James Kim",
        "current_state": CandidateState.INTERVIEW_SCHEDULED,
        "skills": ["DevOps", "Kubernetes", "Docker", "Terraform", "CI/CD"],
        "experience_summary": (
            "Platform Engineer specializing in cloud infrastructure and automation. "
            "AWS Certified Solutions Architect."
        ),
        "created_at": "2024-12-18T12:00:00Z",
        "updated_at": "2024-12-25T10:00:00Z",
    },
    {
        "id": "5",
        "application_id": "APP-2024-005",
        "name": "Priya Patel",
        "current_state": CandidateState.SELECTED,
        "skills": ["UX Design", "Figma", "User Research", "Prototyping", "Design Systems"],
        "experience_summary": (
            "Senior UX Designer with a passion for creating intuitive user experiences. "
            "Former design lead at Notion."
        ),
        "created_at": "2024-12-10T14:00:00Z",
        "updated_at": "2024-12-24T09:00:00Z",
    },
    {
        "id": "6",
        "application_id": "APP-2024-006",
        "name": "David Liu",
        "current_state": CandidateState.JOINED,
        "skills": ["Java", "Spring Boot", "Microservices", "MongoDB"],
        "experience_summary": (
            "Backend Engineer with 8 years of experience. Expert in distributed "
            "systems and high-performance applications."
        ),
        "created_at": "2024-11-01T10:00:00Z",
        "updated_at": "2024-12-01T08:00:00Z",
    },
    {
        "id": "7",
        "application_id": "APP-2024-007",
        "name": "Anna Thompson",
        "current_state": CandidateState.TO_REVIEW,
        "skills": ["Marketing", "SEO", "Content Strategy", "Analytics"],
        "experience_summary": (
            "Growth Marketing Manager with proven track record of scaling startups "
            "from seed to Series B."
        ),
        "created_at": "2024-12-22T11:00:00Z",
        "updated_at": "2024-12-29T15:00:00Z",
    },
]


def _state_event(
    event_id: str, candidate_id: str, state: CandidateState, when: str, actor: TimelineActor,
    note: str | None = None,
) -> TimelineEvent:
    return TimelineEvent(
        id=event_id,
        candidate_id=candidate_id,
        event_type=TimelineEventType.state_change,
        state=state,
        timestamp=_ts(when),
        actor=actor,
        note=note,
    )


def _round_event(
    event_id: str, candidate_id: str, round_number: int, mode: str, interviewer: str,
    when: str, note: str,
) -> TimelineEvent:
    return TimelineEvent(
        id=event_id,
        candidate_id=candidate_id,
        event_type=TimelineEventType.interview_round,
        timestamp=_ts(when),
        actor=TimelineActor.client,
        note=note,
        interview_details=InterviewRoundDetails(
            round_number=round_number,
            mode=mode,
            interviewer_name=interviewer,
            scheduled_date=_ts(when),
        ),
    )


def _feedback_event(
    event_id: str, candidate_id: str, round_number: int, rating: int, recommendation: str,
    when: str, note: str,
) -> TimelineEvent:
    return TimelineEvent(
        id=event_id,
        candidate_id=candidate_id,
        event_type=TimelineEventType.feedback,
        timestamp=_ts(when),
        actor=TimelineActor.client,
        note=note,
        feedback_details=FeedbackDetails(
            round_number=round_number, rating=rating, recommendation=recommendation
        ),
    )


def _timeline_fixtures() -> dict[str, list[TimelineEvent]]:
    client, system, hr = TimelineActor.client, TimelineActor.system, TimelineActor.hr
    return {
        "1": [_state_event("t1", "1", CandidateState.TO_REVIEW, "2024-12-20T10:00:00Z", system)],
        "3": [
            _state_event("t3-1", "3", CandidateState.TO_REVIEW, "2024-12-15T08:00:00Z", system),
            _state_event(
                "t3-2", "3", CandidateState.INTERVIEW_SCHEDULED, "2024-12-18T14:00:00Z", client
            ),
            _round_event(
                "t3-3", "3", 1, "video", "John Smith", "2024-12-20T10:00:00Z",
                "Technical screening with engineering team",
            ),
            _feedback_event(
                "t3-4", "3", 1, 4, "yes", "2024-12-20T11:30:00Z",
                "Strong technical skills, good problem-solving approach. "
                "Recommended for next round.",
            ),
            _round_event(
                "t3-5", "3", 2, "video", "Sarah Johnson", "2024-12-26T14:00:00Z",
                "System design round with senior architects",
            ),
        ],
        "5": [
            _state_event("t5-1", "5", CandidateState.TO_REVIEW, "2024-12-10T14:00:00Z", system),
            _state_event(
                "t5-2", "5", CandidateState.INTERVIEW_SCHEDULED, "2024-12-12T10:00:00Z", client
            ),
            _round_event(
                "t5-3", "5", 1, "video", "Mike Chen", "2024-12-15T10:00:00Z",
                "Portfolio review and design challenge",
            ),
            _feedback_event(
                "t5-4", "5", 1, 5, "strong_yes", "2024-12-15T12:00:00Z",
                "Exceptional portfolio. Creative solutions and strong design thinking.",
            ),
            _round_event(
                "t5-5", "5", 2, "in_person", "Emily Davis", "2024-12-20T14:00:00Z",
                "Cultural fit interview with leadership",
            ),
            _feedback_event(
                "t5-6", "5", 2, 5, "strong_yes", "2024-12-20T16:00:00Z",
                "Great cultural fit. Aligns well with company values.",
            ),
            _state_event(
                "t5-7", "5", CandidateState.SELECTED, "2024-12-24T09:00:00Z", client,
                "Excellent interview performance across all rounds",
            ),
        ],
        "6": [
            _state_event("t6-1", "6", CandidateState.TO_REVIEW, "2024-11-01T10:00:00Z", system),
            _state_event(
                "t6-2", "6", CandidateState.INTERVIEW_SCHEDULED, "2024-11-05T09:00:00Z", client
            ),
            _round_event(
                "t6-3", "6", 1, "video", "Alex Thompson", "2024-11-10T09:00:00Z",
                "Technical deep dive - distributed systems",
            ),
            _feedback_event(
                "t6-4", "6", 1, 5, "strong_yes", "2024-11-10T11:00:00Z",
                "Excellent knowledge of microservices and distributed systems.",
            ),
            _round_event(
                "t6-5", "6", 2, "in_person", "Robert Williams", "2024-11-15T14:00:00Z",
                "Final round with CTO",
            ),
            _feedback_event(
                "t6-6", "6", 2, 5, "strong_yes", "2024-11-15T16:00:00Z",
                "Outstanding candidate. Strong hire recommendation.",
            ),
            _state_event("t6-7", "6", CandidateState.SELECTED, "2024-11-20T14:00:00Z", client),
            _state_event(
                "t6-8", "6", CandidateState.JOINED, "2024-12-01T08:00:00Z", hr,
                "Onboarding completed",
            ),
        ],
    }


class DemoGateway:
    """``CandidateGateway`` that never touches the network."""

    def __init__(self) -> None:
        self._candidates: dict[str, Candidate] = {}
        for fixture in _CANDIDATE_FIXTURES:
            candidate = Candidate(
                **{
                    **fixture,
                    "created_at": _ts(fixture["created_at"]),
                    "updated_at": _ts(fixture["updated_at"]),
                }
            )
            self._candidates[candidate.id] = candidate
        self._timeline = _timeline_fixtures()
        self._sequence = 0

    # -- helpers -----------------------------------------------------------

    def _get(self, candidate_id: str) -> Candidate:
        candidate = self._candidates.get(candidate_id)
        if candidate is None:
            raise DomainError("NOT_FOUND", "Candidate not found", status_code=404)
        return candidate

    def _append(self, event: TimelineEvent) -> None:
        self._timeline.setdefault(event.candidate_id, []).append(event)

    def _next_event_id(self, candidate_id: str, kind: str) -> str:
        self._sequence += 1
        return f"timeline-{candidate_id}-{kind}-{self._sequence}"

    def _move(self, candidate_id: str, action: ClientAction, note: str | None = None) -> Candidate:
        candidate = self._get(candidate_id)
        target = ACTION_TARGET_STATE[action]
        if not is_valid_transition(candidate.current_state, target):
            raise DomainError(
                "INVALID_TRANSITION",
                f"Cannot {action.value.lower().replace('_', ' ')} a candidate who is "
                f"{candidate.current_state.value.lower().replace('_', ' ')}",
                status_code=409,
            )

        now = datetime.now(timezone.utc)
        updated = Candidate(
            **candidate.model_dump(exclude={"current_state", "allowed_actions", "updated_at"}),
            current_state=target,
            updated_at=now,
        )
        self._candidates[candidate_id] = updated
        if target != candidate.current_state:
            self._append(
                TimelineEvent(
                    id=self._next_event_id(candidate_id, "state"),
                    candidate_id=candidate_id,
                    event_type=TimelineEventType.state_change,
                    state=target,
                    timestamp=now,
                    actor=TimelineActor.client,
                    note=note,
                )
            )
        logger.info(
            "demo_candidate_moved",
            extra={"candidate_id": candidate_id, "state": target.value},
        )
        return updated

    # -- authentication ----------------------------------------------------

    async def login(self, credentials: LoginCredentials) -> LoginResponse:
        if credentials.username == DEMO_USERNAME and credentials.password == DEMO_PASSWORD:
            return LoginResponse(access_token=DEMO_TOKEN, token_type="bearer")
        raise InvalidCredentialsError()

    async def validate_session(self, token: str | None = None) -> Identity:
        if token and (token.startswith("demo") or token == "test"):
            return DEMO_IDENTITY.model_copy()
        raise SessionError(SessionErrorKind.invalid.value)

    # -- reads -------------------------------------------------------------

    async def fetch_candidates(self) -> list[Candidate]:
        return list(self._candidates.values())

    async def fetch_candidate(self, candidate_id: str) -> Candidate:
        return self._get(candidate_id)

    async def fetch_timeline(self, candidate_id: str) -> list[TimelineEvent]:
        self._get(candidate_id)
        events = self._timeline.get(candidate_id, [])
        return sorted(events, key=lambda event: event.timestamp)

    async def fetch_applications(
        self,
        status: str | None = None,
        flagged_only: bool = False,
        include_deleted: bool = False,
    ) -> list[BackendApplication]:
        applications = [
            BackendApplication(
                id=candidate.application_id,
                candidate_id=candidate.id,
                client_id=DEMO_IDENTITY.client_id,
                status=application_status_for(candidate.current_state).value,
                created_at=candidate.created_at,
                updated_at=candidate.updated_at,
            )
            for candidate in self._candidates.values()
        ]
        if status:
            applications = [a for a in applications if a.status == status]
        return [] if flagged_only else applications

    async def fetch_candidate_stats(self) -> dict[str, Any]:
        counts: dict[str, int] = {state.value: 0 for state in CandidateState}
        for candidate in self._candidates.values():
            counts[candidate.current_state.value] += 1
        return {"total": len(self._candidates), "by_state": counts}

    async def fetch_application_stats(self) -> dict[str, Any]:
        counts: dict[str, int] = {}
        for application in await self.fetch_applications():
            counts[application.status] = counts.get(application.status, 0) + 1
        return {"total": sum(counts.values()), "by_status": counts}

    # -- writes ------------------------------------------------------------

    async def schedule_interview(
        self, candidate_id: str, request: ScheduleInterviewRequest
    ) -> Candidate:
        updated = self._move(candidate_id, ClientAction.SCHEDULE_INTERVIEW)
        self._append(
            TimelineEvent(
                id=self._next_event_id(candidate_id, "round"),
                candidate_id=candidate_id,
                event_type=TimelineEventType.interview_round,
                timestamp=datetime.now(timezone.utc),
                actor=TimelineActor.client,
                note=request.notes,
                interview_details=InterviewRoundDetails(
                    round_number=request.round_number,
                    mode=request.mode,
                    interviewer_name=request.interviewer_name,
                    scheduled_date=request.scheduled_date,
                ),
            )
        )
        return updated

    async def submit_feedback(self, candidate_id: str, request: FeedbackRequest) -> Candidate:
        candidate = self._get(candidate_id)
        self._append(
            TimelineEvent(
                id=self._next_event_id(candidate_id, "feedback"),
                candidate_id=candidate_id,
                event_type=TimelineEventType.feedback,
                timestamp=datetime.now(timezone.utc),
                actor=TimelineActor.client,
                note=request.feedback,
                feedback_details=FeedbackDetails(
                    round_number=request.round_number,
                    rating=request.rating,
                    recommendation=request.recommendation,
                ),
            )
        )
        return candidate

    async def select(self, candidate_id: str) -> Candidate:
        return self._move(candidate_id, ClientAction.SELECT)

    async def reject(self, candidate_id: str, request: RejectRequest) -> Candidate:
        return self._move(
            candidate_id,
            ClientAction.REJECT,
            note=f"{request.reason.value}: {request.feedback}",
        )

    async def mark_left_company(
        self, candidate_id: str, request: LeftCompanyRequest
    ) -> Candidate:
        return self._move(
            candidate_id,
            ClientAction.MARK_LEFT_COMPANY,
            note=f"{request.reason.value}: {request.feedback}",
        )

    async def aclose(self) -> None:
        return None
