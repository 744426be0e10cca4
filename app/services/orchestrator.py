"""Action orchestrator.

Runs a client action end to end:

1. refuse it locally if the candidate's state does not allow it,
2. validate the action input,
3. refuse it if another request for the same candidate is in flight,
4. call the gateway and merge the backend's snapshot into the store.

Every path ends in an ``ActionOutcome``; gateway errors never escape.  The
store is only written with candidates returned by the backend.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, ValidationError

from app.core.constants import GENERIC_ERROR_MESSAGE
from app.core.errors import (
    ActionValidationError,
    DomainError,
    InvalidActionError,
    PortalError,
    SessionError,
    TransportError,
)
from app.models.actions import (
    ActionOutcome,
    FeedbackAndScheduleRequest,
    FeedbackRequest,
    LeftCompanyRequest,
    RejectRequest,
    ScheduleInterviewRequest,
)
from app.models.candidate import Candidate
from app.models.enums import ClientAction, OutcomeStatus
from app.scheduler.lock import InFlightRegistry
from app.services.candidate_store import CandidateStore
from app.services.state_model import can_submit_feedback, target_state_for

logger = logging.getLogger(__name__)

SUBMIT_FEEDBACK = "SUBMIT_FEEDBACK"
FEEDBACK_AND_SCHEDULE = "FEEDBACK_AND_SCHEDULE"

# operation -> (success title, success message, failure title)
_COPY: dict[str, tuple[str, str, str]] = {
    ClientAction.SCHEDULE_INTERVIEW.value: (
        "Interview Scheduled",
        "Interview with {name} has been scheduled.",
        "Failed to Schedule",
    ),
    ClientAction.SELECT.value: (
        "Candidate Selected",
        "{name} has been marked as selected.",
        "Action Failed",
    ),
    ClientAction.REJECT.value: (
        "Candidate Rejected",
        "{name} has been rejected.",
        "Action Failed",
    ),
    ClientAction.MARK_LEFT_COMPANY.value: (
        "Status Updated",
        "{name} has been marked as left company.",
        "Action Failed",
    ),
    SUBMIT_FEEDBACK: (
        "Feedback Submitted",
        "Feedback for Round {round} has been saved.",
        "Submission Failed",
    ),
    FEEDBACK_AND_SCHEDULE: (
        "Feedback Submitted",
        "Feedback for Round {round} has been saved and the next interview "
        "with {name} has been scheduled.",
        "Submission Failed",
    ),
}

_FAILURE_STATUS: dict[type[PortalError], OutcomeStatus] = {
    SessionError: OutcomeStatus.session_error,
    ActionValidationError: OutcomeStatus.validation_error,
    DomainError: OutcomeStatus.domain_error,
}


def _validation_message(exc: ValidationError) -> str:
    error = exc.errors()[0]
    message = str(error.get("msg", "Invalid input"))
    if message.startswith("Value error, "):
        return message[len("Value error, "):]
    field = ".".join(str(part) for part in error.get("loc", ()))
    return f"{field}: {message}" if field else message


def _parse(model: type[BaseModel], payload: Any) -> Any:
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ActionValidationError(_validation_message(exc)) from exc


class ActionScope:
    """Owner handle for an action whose result may outlive its caller.

    Closing the scope stops delivery of the outcome to ``callback``; the
    store still receives the backend's snapshot.
    """

    def __init__(self, callback: Callable[[ActionOutcome], None] | None = None) -> None:
        self.callback = callback
        self.closed = False

    def close(self) -> None:
        self.closed = True

    def deliver(self, outcome: ActionOutcome) -> bool:
        if self.closed:
            logger.debug(
                "action_outcome_discarded",
                extra={"action": outcome.action, "candidate_id": outcome.candidate_id},
            )
            return False
        if self.callback is not None:
            self.callback(outcome)
        return True


class ActionOrchestrator:
    def __init__(
        self,
        gateway: Any,
        store: CandidateStore,
        session: Any = None,
        registry: InFlightRegistry | None = None,
    ) -> None:
        self.gateway = gateway
        self.store = store
        self.session = session
        self.registry = registry or InFlightRegistry()

    # -- public actions ----------------------------------------------------

    async def schedule_interview(
        self, candidate_id: str, payload: Any, scope: ActionScope | None = None
    ) -> ActionOutcome:
        return await self._execute(
            candidate_id,
            ClientAction.SCHEDULE_INTERVIEW.value,
            lambda: _parse(ScheduleInterviewRequest, payload),
            lambda request: self.gateway.schedule_interview(candidate_id, request),
            scope,
        )

    async def select(
        self, candidate_id: str, scope: ActionScope | None = None
    ) -> ActionOutcome:
        return await self._execute(
            candidate_id,
            ClientAction.SELECT.value,
            lambda: None,
            lambda _: self.gateway.select(candidate_id),
            scope,
        )

    async def reject(
        self, candidate_id: str, payload: Any, scope: ActionScope | None = None
    ) -> ActionOutcome:
        return await self._execute(
            candidate_id,
            ClientAction.REJECT.value,
            lambda: _parse(RejectRequest, payload),
            lambda request: self.gateway.reject(candidate_id, request),
            scope,
        )

    async def mark_left_company(
        self, candidate_id: str, payload: Any, scope: ActionScope | None = None
    ) -> ActionOutcome:
        return await self._execute(
            candidate_id,
            ClientAction.MARK_LEFT_COMPANY.value,
            lambda: _parse(LeftCompanyRequest, payload),
            lambda request: self.gateway.mark_left_company(candidate_id, request),
            scope,
        )

    async def submit_feedback(
        self, candidate_id: str, payload: Any, scope: ActionScope | None = None
    ) -> ActionOutcome:
        return await self._execute(
            candidate_id,
            SUBMIT_FEEDBACK,
            lambda: _parse(FeedbackRequest, payload),
            lambda request: self.gateway.submit_feedback(candidate_id, request),
            scope,
        )

    async def submit_feedback_and_schedule(
        self, candidate_id: str, payload: Any, scope: ActionScope | None = None
    ) -> ActionOutcome:
        """Submit round feedback, then schedule the next round.

        Scheduling only starts after the feedback is saved.  If scheduling
        then fails the outcome is ``partial``: the feedback stays saved and
        its snapshot is merged.
        """
        return await self._execute(
            candidate_id,
            FEEDBACK_AND_SCHEDULE,
            lambda: _parse(FeedbackAndScheduleRequest, payload),
            lambda request: self._feedback_then_schedule(candidate_id, request),
            scope,
        )

    # -- pipeline ----------------------------------------------------------

    def _check_legal(self, candidate: Candidate, operation: str) -> None:
        """Raise ``InvalidActionError`` unless the state model allows *operation*."""
        state = candidate.current_state
        if operation in (SUBMIT_FEEDBACK, FEEDBACK_AND_SCHEDULE):
            if not can_submit_feedback(state):
                raise InvalidActionError(operation, state.value)
            if operation == FEEDBACK_AND_SCHEDULE:
                target_state_for(ClientAction.SCHEDULE_INTERVIEW, state)
            return
        target_state_for(ClientAction(operation), state)

    async def _load(self, candidate_id: str) -> Candidate:
        candidate = self.store.get(candidate_id)
        if candidate is not None:
            return candidate
        candidate = await self.gateway.fetch_candidate(candidate_id)
        self.store.merge(candidate)
        return candidate

    async def _execute(
        self,
        candidate_id: str,
        operation: str,
        parse: Callable[[], Any],
        call: Callable[[Any], Awaitable[Any]],
        scope: ActionScope | None,
    ) -> ActionOutcome:
        try:
            candidate = await self._load(candidate_id)
        except PortalError as exc:
            return self._finish(self._failure(operation, candidate_id, exc), scope)

        try:
            self._check_legal(candidate, operation)
            request = parse()
        except ActionValidationError as exc:
            logger.info(
                "action_rejected_locally",
                extra={"action": operation, "candidate_id": candidate_id, "code": exc.code},
            )
            return self._finish(self._failure(operation, candidate_id, exc), scope)

        if self.registry.is_candidate_busy(candidate_id) or not self.registry.try_acquire(
            candidate_id, operation
        ):
            busy = ActionValidationError(
                "Another action for this candidate is still in progress",
                code="ACTION_IN_PROGRESS",
            )
            return self._finish(self._failure(operation, candidate_id, busy), scope)

        try:
            result = await call(request)
        except PortalError as exc:
            outcome = self._failure(operation, candidate_id, exc)
        else:
            outcome = result if isinstance(result, ActionOutcome) else self._success(
                operation, result, request
            )
        finally:
            self.registry.release(candidate_id, operation)
        return self._finish(outcome, scope)

    async def _feedback_then_schedule(
        self, candidate_id: str, request: FeedbackAndScheduleRequest
    ) -> ActionOutcome:
        updated = await self.gateway.submit_feedback(candidate_id, request.feedback)
        self.store.merge(updated)
        try:
            scheduled = await self.gateway.schedule_interview(candidate_id, request.next_round)
        except PortalError as exc:
            self._handle_session_error(exc)
            if isinstance(exc, TransportError):
                logger.warning(
                    "action_transport_failed",
                    extra={"action": ClientAction.SCHEDULE_INTERVIEW.value,
                           "candidate_id": candidate_id, "detail": exc.detail},
                )
            reason = GENERIC_ERROR_MESSAGE if isinstance(exc, TransportError) else exc.message
            logger.warning(
                "action_partially_completed",
                extra={"action": FEEDBACK_AND_SCHEDULE, "candidate_id": candidate_id,
                       "failed": ClientAction.SCHEDULE_INTERVIEW.value, "code": exc.code},
            )
            return ActionOutcome(
                status=OutcomeStatus.partial,
                action=FEEDBACK_AND_SCHEDULE,
                candidate_id=candidate_id,
                title="Partially Completed",
                message=(
                    f"Feedback for Round {request.feedback.round_number} has been saved, "
                    f"but scheduling the next interview failed: {reason}"
                ),
                code=exc.code,
                candidate=updated,
                dialog_open=True,
                completed=[SUBMIT_FEEDBACK],
                failed=ClientAction.SCHEDULE_INTERVIEW.value,
            )
        self.store.merge(scheduled)
        return self._success(FEEDBACK_AND_SCHEDULE, scheduled, request)

    # -- outcomes ----------------------------------------------------------

    def _success(self, operation: str, candidate: Candidate, request: Any) -> ActionOutcome:
        self.store.merge(candidate)
        title, template, _ = _COPY[operation]
        round_number = None
        if isinstance(request, FeedbackRequest):
            round_number = request.round_number
        elif isinstance(request, FeedbackAndScheduleRequest):
            round_number = request.feedback.round_number
        logger.info(
            "action_succeeded",
            extra={
                "action": operation,
                "candidate_id": candidate.id,
                "state": candidate.current_state.value,
            },
        )
        completed = [operation]
        if operation == FEEDBACK_AND_SCHEDULE:
            completed = [SUBMIT_FEEDBACK, ClientAction.SCHEDULE_INTERVIEW.value]
        return ActionOutcome(
            status=OutcomeStatus.success,
            action=operation,
            candidate_id=candidate.id,
            title=title,
            message=template.format(name=candidate.name, round=round_number),
            candidate=candidate,
            dialog_open=False,
            completed=completed,
        )

    def _handle_session_error(self, exc: PortalError) -> None:
        if isinstance(exc, SessionError) and self.session is not None:
            self.session.invalidate(exc.kind)

    def _failure(self, operation: str, candidate_id: str, exc: PortalError) -> ActionOutcome:
        self._handle_session_error(exc)
        status = OutcomeStatus.transport_error
        for error_type, mapped in _FAILURE_STATUS.items():
            if isinstance(exc, error_type):
                status = mapped
                break

        message = exc.message
        if status == OutcomeStatus.transport_error:
            message = GENERIC_ERROR_MESSAGE
            logger.warning(
                "action_transport_failed",
                extra={
                    "action": operation,
                    "candidate_id": candidate_id,
                    "detail": getattr(exc, "detail", exc.message),
                },
            )
        elif status != OutcomeStatus.validation_error:
            logger.info(
                "action_failed",
                extra={"action": operation, "candidate_id": candidate_id, "code": exc.code},
            )

        return ActionOutcome(
            status=status,
            action=operation,
            candidate_id=candidate_id,
            title=_COPY[operation][2],
            message=message,
            code=exc.code,
            candidate=self.store.get(candidate_id),
            dialog_open=status != OutcomeStatus.session_error,
            failed=operation,
        )

    def _finish(self, outcome: ActionOutcome, scope: ActionScope | None) -> ActionOutcome:
        if scope is not None:
            scope.deliver(outcome)
        return outcome
