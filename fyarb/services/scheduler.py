"""
Scheduler service for periodic background jobs.

Uses APScheduler for local scheduling. The only recurring job today is
the benchmark curve refresh; block evaluation is event driven and never
scheduled here.
"""

from typing import Any, Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler

from fyarb.core.config import Settings, get_settings
from fyarb.core.logging import get_logger
from fyarb.services.curve_store import CurveStore

logger = get_logger("scheduler")


class SchedulerService:
    """Scheduler service wrapping an APScheduler BackgroundScheduler."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._scheduler: Optional[BackgroundScheduler] = None
        self._jobs: dict[str, str] = {}  # name -> job_id

    @property
    def scheduler(self) -> BackgroundScheduler:
        """Lazy-initialize scheduler."""
        if self._scheduler is None:
            self._scheduler = BackgroundScheduler(
                timezone=self.settings.timezone,
            )
        return self._scheduler

    def add_interval_job(
        self,
        name: str,
        func: Callable,
        minutes: float,
        args: Optional[tuple] = None,
        kwargs: Optional[dict] = None,
    ) -> str:
        """
        Add a job that runs at fixed intervals.

        Args:
            name: Job name
            func: Function to execute
            minutes: Interval in minutes
            args: Positional arguments
            kwargs: Keyword arguments

        Returns:
            Job ID
        """
        if minutes <= 0:
            raise ValueError(f"Interval must be positive, got {minutes}")

        job = self.scheduler.add_job(
            func,
            "interval",
            minutes=minutes,
            args=args or (),
            kwargs=kwargs or {},
            id=name,
            name=name,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

        self._jobs[name] = job.id
        logger.info(f"Added interval job: {name} every {minutes} minutes")
        return job.id

    def remove_job(self, name: str) -> bool:
        """Remove a scheduled job."""
        if name in self._jobs:
            self.scheduler.remove_job(self._jobs[name])
            del self._jobs[name]
            logger.info(f"Removed job: {name}")
            return True
        return False

    def start(self) -> None:
        """Start the scheduler."""
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Scheduler started")

    def stop(self) -> None:
        """Stop the scheduler."""
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")

    def get_jobs(self) -> list[dict[str, Any]]:
        """Get list of scheduled jobs."""
        jobs = []
        for job in self.scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": next_run.isoformat() if next_run else None,
            })
        return jobs

    def setup_curve_refresh(self, store: CurveStore, minutes: float) -> Optional[str]:
        """Schedule periodic curve refresh; no-op if the store has no provider."""
        if store.provider is None:
            logger.info("Curve has no provider; refresh not scheduled")
            return None
        return self.add_interval_job("curve_refresh", store.refresh, minutes)


def create_scheduler_service(settings: Optional[Settings] = None) -> SchedulerService:
    """Create scheduler service."""
    return SchedulerService(settings=settings)
