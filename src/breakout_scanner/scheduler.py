"""APScheduler configuration for the polling loop."""

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, EVENT_JOB_MISSED
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from .config.logging import get_logger

logger = get_logger(__name__)


def create_scheduler(timezone: str = "UTC") -> AsyncIOScheduler:
    """
    Create and configure an AsyncIOScheduler.

    Jobs are bound coroutine methods of live objects, so the default
    in-memory job store is used.

    Returns:
        Configured AsyncIOScheduler instance (not started)
    """
    job_defaults = {
        "coalesce": True,  # Collapse missed polls into one
        "max_instances": 1,  # Never overlap two ticks
        "misfire_grace_time": 30,
    }

    scheduler = AsyncIOScheduler(job_defaults=job_defaults, timezone=timezone)

    scheduler.add_listener(job_executed_listener, EVENT_JOB_EXECUTED)
    scheduler.add_listener(job_error_listener, EVENT_JOB_ERROR)
    scheduler.add_listener(job_missed_listener, EVENT_JOB_MISSED)

    return scheduler


def job_executed_listener(event):
    """Log successful job executions."""
    logger.debug(
        "Job executed", job_id=event.job_id, scheduled_run_time=str(event.scheduled_run_time)
    )


def job_error_listener(event):
    """Log job execution errors."""
    logger.error(
        "Job crashed",
        job_id=event.job_id,
        error=str(event.exception),
        traceback=event.traceback,
    )


def job_missed_listener(event):
    """Log missed runs, usually a tick that outlived its interval."""
    logger.warning(
        "Job run missed", job_id=event.job_id, scheduled_run_time=str(event.scheduled_run_time)
    )


def shutdown_scheduler(scheduler: AsyncIOScheduler) -> None:
    """Shut the scheduler down if it is running."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler shutdown complete")
