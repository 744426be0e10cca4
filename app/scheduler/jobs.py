"""APScheduler job definitions and scheduler management.

Runs the periodic session-expiry check on an ``AsyncIOScheduler`` so the
job executes on the same event loop as the session store it inspects.  The
scheduler runs for the life of the portal; the expiry job only exists while
a session is authenticated.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)

SESSION_EXPIRY_JOB_ID = "session_expiry_check"


def create_scheduler() -> AsyncIOScheduler:
    return AsyncIOScheduler()


def start_scheduler(scheduler: AsyncIOScheduler) -> None:
    if not scheduler.running:
        scheduler.start()
        logger.info("scheduler_started")


def add_session_expiry_job(
    scheduler: AsyncIOScheduler,
    check: Callable[[], Awaitable[object]],
    interval_seconds: int,
) -> None:
    """Register *check* to run every *interval_seconds*."""
    scheduler.add_job(
        check,
        IntervalTrigger(seconds=interval_seconds),
        id=SESSION_EXPIRY_JOB_ID,
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    logger.info(
        "session_expiry_job_added",
        extra={"job_id": SESSION_EXPIRY_JOB_ID, "interval_seconds": interval_seconds},
    )


def remove_session_expiry_job(scheduler: AsyncIOScheduler) -> bool:
    """Remove the expiry job.  Returns False if it was not scheduled."""
    try:
        scheduler.remove_job(SESSION_EXPIRY_JOB_ID)
    except JobLookupError:
        return False
    logger.info("session_expiry_job_removed", extra={"job_id": SESSION_EXPIRY_JOB_ID})
    return True


def is_session_expiry_scheduled(scheduler: AsyncIOScheduler) -> bool:
    return scheduler.running and scheduler.get_job(SESSION_EXPIRY_JOB_ID) is not None


def shutdown_scheduler(scheduler: AsyncIOScheduler) -> None:
    """Shutdown the scheduler without waiting for running jobs."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("scheduler_stopped")
