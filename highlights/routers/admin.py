"""
Admin API Router

Manual triggers for the sync pipeline (cron jobs, operators).
All endpoints require the X-Admin-API-Key header. Routes only call the
sync/discovery services; they never write rows themselves.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..core.logging import get_logger
from ..core.security import verify_admin_access
from ..db import get_db
from ..db.repositories import GameRepository, TeamRepository, VideoRepository
from ..jobs.pipeline import Pipeline, get_pipeline
from ..models.admin import (
    HealthResponse,
    RefreshStatsRequest,
    RefreshStatsResponse,
    SyncRange,
    SyncScheduleRequest,
    SyncScheduleResponse,
    SyncVideosRequest,
    SyncVideosResponse,
    VideoScope,
)
from ..models.results import DiscoveryResult, SyncResult
from ..services.scheduler import SchedulerService, get_scheduler_service

logger = get_logger(__name__)
settings = get_settings()

router = APIRouter(prefix="/api/admin", tags=["admin"])
limiter = Limiter(key_func=get_remote_address)

# HTTP status for unsuccessful single-game discoveries
DISCOVERY_STATUS_CODES = {
    "not_found": 404,
    "not_eligible": 409,
    "duplicate_conflict": 409,
    "quota_exhausted": 429,
    "upstream_error": 502,
    "configuration_error": 500,
}


@router.post("/sync/schedule", response_model=SyncScheduleResponse)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def sync_schedule(
    request: Request,
    body: SyncScheduleRequest = SyncScheduleRequest(),
    admin: dict = Depends(verify_admin_access),
    pipeline: Pipeline = Depends(get_pipeline),
):
    """Sync today's, yesterday's or the upcoming window's games."""
    logger.info("manual_schedule_sync", range=body.range.value)
    sync = pipeline.schedule_sync

    if body.range == SyncRange.YESTERDAY:
        result = await sync.sync_yesterday()
    elif body.range == SyncRange.UPCOMING:
        result = await sync.sync_upcoming(body.days)
    else:
        result = await sync.sync_today()

    return SyncScheduleResponse(success=not result.errors, range=body.range.value, result=result)


@router.post("/sync/scores", response_model=SyncResult)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def sync_scores(
    request: Request,
    admin: dict = Depends(verify_admin_access),
    pipeline: Pipeline = Depends(get_pipeline),
):
    """Refresh status and scores of today's games."""
    logger.info("manual_scores_sync")
    return await pipeline.schedule_sync.update_live_scores()


@router.post("/sync/videos", response_model=SyncVideosResponse)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def sync_videos(
    request: Request,
    body: SyncVideosRequest = SyncVideosRequest(),
    admin: dict = Depends(verify_admin_access),
    pipeline: Pipeline = Depends(get_pipeline),
):
    """
    Discover highlight videos.

    Manual runs bypass the scheduled pre-flight check; the quota's
    safety buffer exists for exactly these.
    """
    logger.info("manual_video_sync", scope=body.scope.value, limit=body.limit)
    discovery = pipeline.video_discovery

    if body.scope == VideoScope.YESTERDAY:
        results = await discovery.discover_videos_for_yesterday()
    else:
        results = await discovery.discover_videos_for_finished_games(body.limit)

    succeeded = sum(1 for r in results if r.success)
    return SyncVideosResponse(
        success=succeeded == len(results),
        scope=body.scope.value,
        processed=len(results),
        succeeded=succeeded,
        results=results,
    )


@router.post("/sync/videos/{game_id}", response_model=DiscoveryResult)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def sync_video_for_game(
    request: Request,
    game_id: int,
    admin: dict = Depends(verify_admin_access),
    pipeline: Pipeline = Depends(get_pipeline),
):
    """Discover the highlight video for a single game."""
    logger.info("manual_video_sync_game", game_id=game_id)
    result = await pipeline.video_discovery.discover_video_for_game(game_id)

    status_code = DISCOVERY_STATUS_CODES.get(result.error_code or "")
    if not result.success and status_code:
        return JSONResponse(status_code=status_code, content=result.model_dump())
    return result


@router.post("/refresh/video-stats", response_model=RefreshStatsResponse)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def refresh_video_stats(
    request: Request,
    body: RefreshStatsRequest = RefreshStatsRequest(),
    admin: dict = Depends(verify_admin_access),
    pipeline: Pipeline = Depends(get_pipeline),
):
    """Refresh view counts of the most recent videos."""
    logger.info("manual_video_stats_refresh", limit=body.limit)
    updated = await pipeline.video_discovery.refresh_all_video_stats(body.limit)
    return RefreshStatsResponse(success=True, updated=updated)


@router.get("/health", response_model=HealthResponse)
async def admin_health(
    admin: dict = Depends(verify_admin_access),
    db: AsyncSession = Depends(get_db),
    pipeline: Pipeline = Depends(get_pipeline),
    scheduler: SchedulerService = Depends(get_scheduler_service),
):
    """Row counts, quota usage and scheduler state."""
    counts = {
        "teams": await TeamRepository(db).count(),
        "games": await GameRepository(db).count(),
        "videos": await VideoRepository(db).count(),
        "verified_videos": await VideoRepository(db).count_verified(),
    }

    return HealthResponse(
        counts=counts,
        quota=await pipeline.quota_manager.get_state(),
        scheduler={"running": scheduler.running, "jobs": len(scheduler.jobs)},
    )
