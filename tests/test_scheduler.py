"""
Tests for the job scheduler, job history and pipeline job handlers.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from highlights.core.exceptions import NotFoundError
from highlights.db import session_scope
from highlights.db.repositories import JobRunRepository
from highlights.jobs.pipeline import Pipeline, build_default_jobs, run_discover_videos_job
from highlights.models.results import DiscoveryResult, JobRun, QuotaCheck
from highlights.services.scheduler import JobDefinition, JobHistory, SchedulerService


def make_service(settings, *jobs, **kwargs) -> SchedulerService:
    return SchedulerService(list(jobs), settings=settings, **kwargs)


class TestJobHistory:
    def test_most_recent_first_and_bounded(self):
        history = JobHistory(capacity=3)
        for i in range(5):
            history.add(JobRun(job_name=f"job_{i}"))

        assert len(history) == 3
        assert [r.job_name for r in history.get()] == ["job_4", "job_3", "job_2"]

    def test_filter_by_name_and_limit(self):
        history = JobHistory(capacity=10)
        for name in ["a", "b", "a", "a"]:
            history.add(JobRun(job_name=name))

        assert len(history.get("a")) == 3
        assert len(history.get("a", limit=2)) == 2
        assert history.get("missing") == []


class TestRunJob:
    @pytest.mark.asyncio
    async def test_success_is_recorded(self, settings):
        handler = AsyncMock(return_value={"games_added": 3})
        service = make_service(settings, JobDefinition("sync_upcoming", "0 6 * * *", handler))

        run = await service.run_job("sync_upcoming")

        assert run.status == "success"
        assert run.trigger == "manual"
        assert run.result == {"games_added": 3}
        assert run.error is None
        assert run.started_at <= run.completed_at
        assert run.duration_ms >= 0
        assert await service.get_history("sync_upcoming") == [run]

    @pytest.mark.asyncio
    async def test_handler_exception_becomes_failed_run(self, settings):
        handler = AsyncMock(side_effect=RuntimeError("upstream exploded"))
        service = make_service(settings, JobDefinition("live_scores", "*/10 * * * *", handler))

        run = await service.run_job("live_scores")

        assert run.status == "failure"
        assert run.error == "upstream exploded"
        assert service.history.last("live_scores") is run

    @pytest.mark.asyncio
    async def test_unknown_job(self, settings):
        service = make_service(settings)

        with pytest.raises(NotFoundError):
            await service.run_job("nope")

    @pytest.mark.asyncio
    async def test_scheduled_tick_goes_through_history(self, settings):
        handler = AsyncMock(return_value=None)
        service = make_service(settings, JobDefinition("sync_yesterday", "30 5 * * *", handler))

        await service._run_scheduled("sync_yesterday")

        assert (await service.get_history())[0].trigger == "scheduled"

    @pytest.mark.asyncio
    async def test_persists_when_enabled(self, settings, session_factory):
        settings.persist_job_history = True
        handler = AsyncMock(return_value={"updated": 2})
        service = make_service(settings, JobDefinition("refresh_video_stats", "0 14 * * *", handler),
                               session_factory=session_factory)

        await service.run_job("refresh_video_stats")
        await service.run_job("refresh_video_stats")

        async with session_scope(session_factory) as session:
            records = await JobRunRepository(session).find_recent("refresh_video_stats")
        assert len(records) == 2
        assert records[0].status == "success"
        assert records[0].trigger == "manual"
        assert records[0].result == {"updated": 2}

    @pytest.mark.asyncio
    async def test_persisted_history_survives_restart(self, settings, session_factory):
        settings.persist_job_history = True
        job = JobDefinition("sync_yesterday", "30 5 * * *", AsyncMock(return_value={"games_updated": 4}))
        first = make_service(settings, job, session_factory=session_factory)
        await first.run_job("sync_yesterday")
        await first._run_scheduled("sync_yesterday")

        restarted = make_service(settings, job, session_factory=session_factory)
        history = await restarted.get_history("sync_yesterday")

        assert len(restarted.history) == 0
        assert [r.trigger for r in history] == ["scheduled", "manual"]
        assert history[0].status == "success"
        assert history[0].result == {"games_updated": 4}

        with pytest.raises(NotFoundError):
            await restarted.get_history("nope")


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_and_stop_are_idempotent(self, settings):
        service = make_service(
            settings,
            JobDefinition("sync_upcoming", "0 6 * * *", AsyncMock()),
            JobDefinition("live_scores", "*/10 18-23 * * *", AsyncMock(), enabled=False),
        )

        service.start()
        service.start()
        assert service.running
        assert service.scheduler.get_job("sync_upcoming") is not None
        assert service.scheduler.get_job("live_scores") is None

        service.stop()
        service.stop()
        await asyncio.sleep(0)
        assert not service.running

    @pytest.mark.asyncio
    async def test_overlapping_ticks_are_skipped(self, settings):
        service = make_service(settings, JobDefinition("discover_videos", "0 1,3,7,12 * * *", AsyncMock()))

        service.start()
        job = service.scheduler.get_job("discover_videos")
        assert job.max_instances == 1
        assert job.coalesce is True
        service.stop()

    @pytest.mark.asyncio
    async def test_enable_and_disable(self, settings):
        service = make_service(
            settings,
            JobDefinition("sync_upcoming", "0 6 * * *", AsyncMock()),
            JobDefinition("live_scores", "*/10 18-23 * * *", AsyncMock(), enabled=False),
        )
        service.start()

        service.disable_job("sync_upcoming")
        assert service.scheduler.get_job("sync_upcoming").next_run_time is None

        service.enable_job("sync_upcoming")
        assert service.scheduler.get_job("sync_upcoming").next_run_time is not None

        service.enable_job("live_scores")
        assert service.scheduler.get_job("live_scores") is not None

        with pytest.raises(NotFoundError):
            service.disable_job("nope")

        service.stop()

    def test_status_lists_every_job(self, settings):
        service = make_service(
            settings,
            JobDefinition("sync_upcoming", "0 6 * * *", AsyncMock(), description="Sync upcoming games"),
        )

        status = service.get_job_status()

        assert status["running"] is False
        assert status["jobs"][0]["name"] == "sync_upcoming"
        assert status["jobs"][0]["cron"] == "0 6 * * *"
        assert status["jobs"][0]["last_run"] is None


class TestPipelineJobs:
    def test_default_jobs(self, settings):
        pipeline = Pipeline(settings, quota_manager=MagicMock())

        jobs = build_default_jobs(pipeline)

        assert [j.name for j in jobs] == [
            "sync_upcoming", "sync_yesterday", "live_scores", "discover_videos", "refresh_video_stats",
        ]
        assert jobs[2].cron == settings.live_scores_cron

    @pytest.mark.asyncio
    async def test_discovery_skips_when_quota_is_low(self, settings):
        pipeline = MagicMock()
        pipeline.quota_manager.preflight = AsyncMock(return_value=QuotaCheck(
            allowed=False, remaining=800, batch_size=0, reason="quota_exhausted"))
        pipeline.video_discovery.discover_videos_for_finished_games = AsyncMock()

        result = await run_discover_videos_job(pipeline)

        assert result["skipped"] is True
        assert result["reason"] == "quota_exhausted"
        pipeline.video_discovery.discover_videos_for_finished_games.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_skip_is_a_successful_run(self, settings):
        pipeline = MagicMock()
        pipeline.quota_manager.preflight = AsyncMock(return_value=QuotaCheck(
            allowed=False, remaining=800, batch_size=0, reason="quota_exhausted"))
        service = make_service(
            settings, JobDefinition("discover_videos", "0 1 * * *", lambda: run_discover_videos_job(pipeline)))

        run = await service.run_job("discover_videos")

        assert run.status == "success"
        assert run.result["skipped"] is True

    @pytest.mark.asyncio
    async def test_discovery_uses_safe_batch_size(self, settings):
        pipeline = MagicMock()
        pipeline.quota_manager.preflight = AsyncMock(return_value=QuotaCheck(
            allowed=True, remaining=1200, batch_size=6))
        pipeline.quota_manager.get_remaining = AsyncMock(return_value=990)
        pipeline.video_discovery.discover_videos_for_finished_games = AsyncMock(return_value=[
            DiscoveryResult(game_id=1, success=True, video_id=1, youtube_video_id="a"),
            DiscoveryResult(game_id=2, success=False, error="No highlights found", error_code="no_results"),
        ])

        result = await run_discover_videos_job(pipeline)

        pipeline.video_discovery.discover_videos_for_finished_games.assert_awaited_once_with(6)
        assert result["processed"] == 2
        assert result["succeeded"] == 1
        assert result["errors"] == ["Game 2: No highlights found"]
