"""
Sync Pipeline Jobs

Wires the schedule/video services together and exposes one handler per
scheduled job. Handlers return a JSON-serializable summary that ends up
in the job history.

Quota: discovery runs start with a pre-flight check. When the remaining
YouTube budget is too low the run is recorded as a successful skip, not
a failure.
"""

from functools import partial
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import Settings, get_settings
from ..core.logging import get_logger
from ..models.results import DiscoveryResult, SyncResult
from ..services.quota_manager import QuotaManager, create_redis_client
from ..services.schedule_api import ScheduleAPIService
from ..services.schedule_sync import ScheduleSyncService
from ..services.scheduler import JobDefinition
from ..services.verified_channels import VerifiedChannels
from ..services.video_discovery import VideoDiscoveryService
from ..services.youtube_api import YouTubeAPIService

logger = get_logger(__name__)


class Pipeline:
    """Container for the services the jobs and admin routes share."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        redis_client=None,
        quota_manager: Optional[QuotaManager] = None,
        schedule_api: Optional[ScheduleAPIService] = None,
        youtube: Optional[YouTubeAPIService] = None,
    ):
        self.settings = settings or get_settings()
        self.quota_manager = quota_manager or QuotaManager(redis_client, settings=self.settings)
        self.schedule_api = schedule_api or ScheduleAPIService(settings=self.settings)
        self.youtube = youtube or YouTubeAPIService(self.quota_manager, settings=self.settings)
        self.schedule_sync = ScheduleSyncService(self.schedule_api, session_factory, self.settings)
        self.video_discovery = VideoDiscoveryService(
            self.youtube,
            self.quota_manager,
            session_factory,
            is_verified=VerifiedChannels.from_settings(self.settings),
            settings=self.settings,
        )


def summarize_sync(window: str, result: SyncResult) -> Dict[str, Any]:
    return {"window": window, **result.model_dump()}


def summarize_discovery(results: List[DiscoveryResult]) -> Dict[str, Any]:
    succeeded = [r for r in results if r.success]
    return {
        "processed": len(results),
        "succeeded": len(succeeded),
        "failed": len(results) - len(succeeded),
        "errors": [f"Game {r.game_id}: {r.error}" for r in results if not r.success],
    }


async def run_sync_upcoming_job(pipeline: Pipeline) -> Dict[str, Any]:
    result = await pipeline.schedule_sync.sync_upcoming()
    return summarize_sync("upcoming", result)


async def run_sync_yesterday_job(pipeline: Pipeline) -> Dict[str, Any]:
    result = await pipeline.schedule_sync.sync_yesterday()
    return summarize_sync("yesterday", result)


async def run_live_scores_job(pipeline: Pipeline) -> Dict[str, Any]:
    result = await pipeline.schedule_sync.update_live_scores()
    return summarize_sync("live", result)


async def run_discover_videos_job(pipeline: Pipeline) -> Dict[str, Any]:
    """Quota-aware discovery for finished games without a video."""
    check = await pipeline.quota_manager.preflight()
    if not check.allowed:
        logger.warning(
            "discover_videos_skipped",
            reason=check.reason,
            remaining=check.remaining,
        )
        return {"skipped": True, "reason": check.reason, "remaining": check.remaining}

    results = await pipeline.video_discovery.discover_videos_for_finished_games(check.batch_size)
    return {
        "skipped": False,
        "batch_size": check.batch_size,
        "quota_remaining": await pipeline.quota_manager.get_remaining(),
        **summarize_discovery(results),
    }


async def run_refresh_video_stats_job(pipeline: Pipeline) -> Dict[str, Any]:
    limit = pipeline.settings.refresh_video_stats_limit
    updated = await pipeline.video_discovery.refresh_all_video_stats(limit)
    return {"limit": limit, "updated": updated}


def build_default_jobs(pipeline: Pipeline) -> List[JobDefinition]:
    s = pipeline.settings
    return [
        JobDefinition(
            name="sync_upcoming",
            cron=s.sync_upcoming_cron,
            handler=partial(run_sync_upcoming_job, pipeline),
            description="Sync upcoming games",
        ),
        JobDefinition(
            name="sync_yesterday",
            cron=s.sync_yesterday_cron,
            handler=partial(run_sync_yesterday_job, pipeline),
            description="Sync yesterday's final scores",
        ),
        JobDefinition(
            name="live_scores",
            cron=s.live_scores_cron,
            handler=partial(run_live_scores_job, pipeline),
            description="Update live scores",
        ),
        JobDefinition(
            name="discover_videos",
            cron=s.discover_videos_cron,
            handler=partial(run_discover_videos_job, pipeline),
            description="Discover highlight videos",
        ),
        JobDefinition(
            name="refresh_video_stats",
            cron=s.refresh_video_stats_cron,
            handler=partial(run_refresh_video_stats_job, pipeline),
            description="Refresh video view counts",
        ),
    ]


# Singleton instance
_pipeline: Optional[Pipeline] = None


def get_pipeline() -> Pipeline:
    """Get singleton Pipeline instance."""
    global _pipeline
    if _pipeline is None:
        settings = get_settings()
        _pipeline = Pipeline(settings, redis_client=create_redis_client(settings.redis_url))
    return _pipeline
