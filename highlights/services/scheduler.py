"""
Background Job Scheduler

Manages scheduled background tasks using APScheduler and keeps a
bounded history of every run (scheduled or manual).

Default jobs (see jobs/pipeline.py):
- sync_upcoming: next N days of schedule, daily
- sync_yesterday: final scores of yesterday, daily
- live_scores: today's scores every 10 minutes during game hours
- discover_videos: highlight discovery for finished games
- refresh_video_stats: view count refresh, daily

Overlap: each job runs with max_instances=1 and coalesce=True, so a tick
that fires while the previous run is still going is skipped. Manual
triggers are never blocked.
"""

import time
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import Settings, get_settings
from ..core.logging import get_logger
from ..core.exceptions import NotFoundError
from ..db import session_scope
from ..db.repositories import JobRunRepository
from ..models.results import JobRun, JobRunStatus

logger = get_logger(__name__)

JobHandler = Callable[[], Awaitable[Optional[Dict[str, Any]]]]


@dataclass
class JobDefinition:
    """A named, cron-scheduled unit of work."""
    name: str
    cron: str
    handler: JobHandler
    enabled: bool = True
    description: str = ""


class JobHistory:
    """Most-recent-first ring buffer of job runs."""

    def __init__(self, capacity: int = 100):
        self._runs: Deque[JobRun] = deque(maxlen=capacity)

    def add(self, run: JobRun):
        self._runs.appendleft(run)

    def get(self, job_name: Optional[str] = None, limit: int = 20) -> List[JobRun]:
        runs = (r for r in self._runs if job_name is None or r.job_name == job_name)
        result = []
        for run in runs:
            if len(result) >= limit:
                break
            result.append(run)
        return result

    def last(self, job_name: str) -> Optional[JobRun]:
        runs = self.get(job_name, limit=1)
        return runs[0] if runs else None

    def clear(self):
        self._runs.clear()

    def __len__(self) -> int:
        return len(self._runs)


class SchedulerService:
    """
    Manages background job scheduling.

    Every execution goes through run_job(), which records a JobRun
    (and persists it to job_history when persist_job_history is on).
    Handler exceptions are captured as failed runs and never escape.
    """

    def __init__(
        self,
        jobs: List[JobDefinition],
        settings: Optional[Settings] = None,
        history: Optional[JobHistory] = None,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.settings = settings or get_settings()
        self.jobs: Dict[str, JobDefinition] = {job.name: job for job in jobs}
        self.history = history or JobHistory(self.settings.job_history_size)
        self.session_factory = session_factory
        self.scheduler = scheduler or AsyncIOScheduler(timezone=self.settings.scheduler_timezone)

    def _get_definition(self, name: str) -> JobDefinition:
        definition = self.jobs.get(name)
        if definition is None:
            raise NotFoundError("Job", name)
        return definition

    # =========================================================================
    # Execution
    # =========================================================================

    async def run_job(self, name: str, trigger: str = "manual") -> JobRun:
        """
        Execute a job now and record the run.

        Raises:
            NotFoundError for an unknown job name. Handler errors are
            recorded on the returned JobRun instead.
        """
        definition = self._get_definition(name)

        run = JobRun(job_name=name, trigger=trigger)
        run.started_at = datetime.now(timezone.utc)
        run.status = JobRunStatus.RUNNING
        started = time.perf_counter()

        logger.info("scheduler_job_started", job=name, trigger=trigger)
        try:
            result = await definition.handler()
            run.result = result if isinstance(result, dict) or result is None else {"value": result}
            run.status = JobRunStatus.SUCCESS
        except Exception as e:
            run.error = str(e) or e.__class__.__name__
            run.status = JobRunStatus.FAILURE

        run.completed_at = datetime.now(timezone.utc)
        run.duration_ms = int((time.perf_counter() - started) * 1000)

        if run.status == JobRunStatus.SUCCESS:
            logger.info("scheduler_job_completed", job=name, duration_ms=run.duration_ms)
        else:
            logger.error("scheduler_job_failed", job=name, error=run.error, duration_ms=run.duration_ms)

        self.history.add(run)
        await self._persist(run)
        return run

    async def _run_scheduled(self, name: str):
        await self.run_job(name, trigger="scheduled")

    async def _persist(self, run: JobRun):
        if not self.settings.persist_job_history:
            return
        try:
            async with session_scope(self.session_factory) as session:
                await JobRunRepository(session).add(
                    job_name=run.job_name,
                    status=run.status,
                    trigger=run.trigger,
                    started_at=run.started_at,
                    completed_at=run.completed_at,
                    duration_ms=run.duration_ms,
                    result=run.result,
                    error=run.error,
                )
        except Exception as e:
            logger.error("job_history_persist_failed", job=run.job_name, error=str(e))

    # =========================================================================
    # Registration
    # =========================================================================

    def _add_job(self, definition: JobDefinition):
        self.scheduler.add_job(
            self._run_scheduled,
            trigger=CronTrigger.from_crontab(definition.cron, timezone=self.settings.scheduler_timezone),
            args=[definition.name],
            id=definition.name,
            name=definition.description or definition.name,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

    def setup_jobs(self):
        """Configure and add all enabled jobs."""
        for definition in self.jobs.values():
            if definition.enabled:
                self._add_job(definition)

        logger.info(
            "scheduler_jobs_configured",
            jobs={name: job.cron for name, job in self.jobs.items() if job.enabled},
        )

    def enable_job(self, name: str) -> JobDefinition:
        definition = self._get_definition(name)
        definition.enabled = True

        if self.scheduler.running:
            if self.scheduler.get_job(name) is None:
                self._add_job(definition)
            else:
                self.scheduler.resume_job(name)

        logger.info("scheduler_job_enabled", job=name)
        return definition

    def disable_job(self, name: str) -> JobDefinition:
        definition = self._get_definition(name)
        definition.enabled = False

        if self.scheduler.running and self.scheduler.get_job(name) is not None:
            self.scheduler.pause_job(name)

        logger.info("scheduler_job_disabled", job=name)
        return definition

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self):
        """Start the scheduler. Calling it again is a no-op."""
        if not self.scheduler.running:
            self.setup_jobs()
            self.scheduler.start()
            logger.info("scheduler_started")

    def stop(self):
        """Stop the scheduler gracefully. Calling it again is a no-op."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("scheduler_stopped")

    @property
    def running(self) -> bool:
        return self.scheduler.running

    # =========================================================================
    # Status
    # =========================================================================

    async def get_history(self, job_name: Optional[str] = None, limit: int = 20) -> List[JobRun]:
        """
        Recent runs, most recent first.

        Reads the job_history table when persist_job_history is on, so runs
        from before a restart are included. Otherwise the in-memory buffer.
        """
        if job_name is not None:
            self._get_definition(job_name)

        if not self.settings.persist_job_history:
            return self.history.get(job_name, limit)

        async with session_scope(self.session_factory) as session:
            records = await JobRunRepository(session).find_recent(job_name, limit)
        return [JobRun.model_validate(record, from_attributes=True) for record in records]

    def get_job_status(self) -> dict:
        """Get status of all registered jobs."""
        jobs = []
        for name, definition in self.jobs.items():
            scheduled = self.scheduler.get_job(name) if self.scheduler.running else None
            next_run = scheduled.next_run_time if scheduled else None
            last = self.history.last(name)
            jobs.append({
                "name": name,
                "description": definition.description,
                "cron": definition.cron,
                "enabled": definition.enabled,
                "next_run": next_run.isoformat() if next_run else None,
                "last_run": last.model_dump(mode="json") if last else None,
            })

        return {
            "running": self.scheduler.running,
            "jobs": jobs,
            "current_time": datetime.now(timezone.utc).isoformat(),
        }


# Singleton instance
_scheduler_service: Optional[SchedulerService] = None


def get_scheduler_service() -> SchedulerService:
    """Get singleton SchedulerService instance wired to the default jobs."""
    global _scheduler_service
    if _scheduler_service is None:
        from ..jobs.pipeline import build_default_jobs, get_pipeline

        _scheduler_service = SchedulerService(build_default_jobs(get_pipeline()))
    return _scheduler_service
