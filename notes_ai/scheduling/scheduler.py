"""APScheduler wrapper for periodic maintenance jobs.

Provides:
- Async-compatible scheduler bound to the running event loop
- Interval job registration (e.g. the rate limiter sweep)
- Graceful shutdown handling
- Job event logging and Prometheus metrics

Usage:
    scheduler = MaintenanceScheduler()
    scheduler.add_interval_job(rate_limiter.sweep, "rate_limit_sweep", seconds=3600)

    await scheduler.start()
    ...
    await scheduler.shutdown()
"""

from typing import Any, Callable, Dict, List

import structlog

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from apscheduler.events import (
    EVENT_JOB_EXECUTED,
    EVENT_JOB_ERROR,
    JobExecutionEvent,
)

from notes_ai.observability.metrics import SCHEDULER_JOBS

logger = structlog.get_logger()


class MaintenanceScheduler:
    """Async scheduler for background maintenance jobs.

    Wraps APScheduler's AsyncIOScheduler with:
    - Job lifecycle management
    - Error logging for failed runs
    - Prometheus metrics integration
    """

    def __init__(
        self,
        timezone: str = "UTC",
        max_instances: int = 1,
        coalesce: bool = True,
    ):
        """Initialize maintenance scheduler.

        Args:
            timezone: Timezone for job scheduling
            max_instances: Max concurrent instances per job
            coalesce: Coalesce missed executions
        """
        self.scheduler = AsyncIOScheduler(
            timezone=timezone,
            job_defaults={
                "max_instances": max_instances,
                "coalesce": coalesce,
            },
        )
        self._running = False
        self._jobs: Dict[str, Any] = {}

        self.scheduler.add_listener(self._on_job_executed, EVENT_JOB_EXECUTED)
        self.scheduler.add_listener(self._on_job_error, EVENT_JOB_ERROR)

    def add_interval_job(
        self,
        func: Callable[..., Any],
        job_id: str,
        seconds: float,
    ) -> str:
        """Add a job that runs every ``seconds``.

        Args:
            func: Callable (sync or async) to execute
            job_id: Unique job identifier
            seconds: Interval between runs

        Returns:
            Job ID
        """
        # Pending jobs are not deduplicated by replace_existing before start
        if job_id in self._jobs:
            self.scheduler.remove_job(job_id)

        job = self.scheduler.add_job(
            func,
            trigger=IntervalTrigger(seconds=seconds),
            id=job_id,
            name=job_id,
            replace_existing=True,
        )
        self._jobs[job_id] = job

        logger.info("job_added", job_id=job_id, interval_seconds=seconds)
        SCHEDULER_JOBS.set(len(self._jobs))
        return job_id

    def get_jobs(self) -> List[Dict[str, Any]]:
        """Get list of all scheduled jobs."""
        jobs = []
        for job in self.scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            jobs.append(
                {
                    "id": job.id,
                    "name": job.name,
                    "next_run_time": str(next_run) if next_run else None,
                }
            )
        return jobs

    async def start(self) -> None:
        """Start executing scheduled jobs on the running event loop."""
        if self._running:
            logger.warning("scheduler_already_running")
            return

        self.scheduler.start()
        self._running = True
        logger.info("scheduler_started", jobs=len(self._jobs))

    async def shutdown(self, wait: bool = False) -> None:
        """Shutdown the scheduler.

        Args:
            wait: Wait for running jobs to complete
        """
        if not self._running:
            return

        self.scheduler.shutdown(wait=wait)
        self._running = False
        logger.info("scheduler_stopped")

    def _on_job_executed(self, event: JobExecutionEvent) -> None:
        logger.debug(
            "job_executed",
            job_id=event.job_id,
            scheduled_run_time=str(event.scheduled_run_time),
        )

    def _on_job_error(self, event: JobExecutionEvent) -> None:
        logger.error(
            "job_failed",
            job_id=event.job_id,
            exception=str(event.exception),
            traceback=event.traceback,
        )

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._running
