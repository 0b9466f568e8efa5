"""
Video Discovery Service

Finds and stores the best highlight video for finished games.

Selection: search YouTube for the top-K candidates in relevance order,
take the first one from a verified channel, otherwise the first one.
A game gets at most one video; repeat discovery is a no-op.
"""

import asyncio
from datetime import date, timedelta
from typing import Awaitable, Callable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import Settings, get_settings
from ..core.logging import get_logger
from ..core.exceptions import (
    HighlightsException,
    NotEligibleError,
    NotFoundError,
    ValidationError,
)
from ..db import session_scope
from ..db.models import GameStatus
from ..db.repositories import GameRepository, VideoRepository
from ..models.results import DiscoveryResult
from ..models.video import VideoCandidate
from .quota_manager import QuotaManager
from .rate_limit import RequestPacer
from .schedule_api import league_today
from .verified_channels import VerifiedChannels, VerifiedPredicate
from .youtube_api import YouTubeAPIService, get_watch_url, parse_duration

logger = get_logger(__name__)

NO_RESULTS_MESSAGE = "No highlights found"


def select_candidate(
    candidates: List[VideoCandidate], is_verified: VerifiedPredicate
) -> Optional[VideoCandidate]:
    """First verified candidate in relevance order, else the first one."""
    if not candidates:
        return None
    for candidate in candidates:
        if is_verified(candidate.channel_id, candidate.channel_title):
            return candidate
    return candidates[0]


class VideoDiscoveryService:
    """Matches finished games to a YouTube highlight video."""

    def __init__(
        self,
        youtube: YouTubeAPIService,
        quota_manager: QuotaManager,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        is_verified: Optional[VerifiedPredicate] = None,
        settings: Optional[Settings] = None,
        stats_pacer: Optional[RequestPacer] = None,
        today: Optional[Callable[[], date]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings or get_settings()
        self.youtube = youtube
        self.quota_manager = quota_manager
        self.session_factory = session_factory
        self.is_verified = is_verified or VerifiedChannels.from_settings(self.settings)
        self.stats_pacer = stats_pacer or RequestPacer(
            self.settings.stats_request_delay, name="youtube_stats", sleep=sleep
        )
        self._today = today or (lambda: league_today(self.settings.league_timezone))

    async def discover_video_for_game(self, game_id: int) -> DiscoveryResult:
        """
        Discover and store a highlight video for one game.

        Failures come back as an unsuccessful result with an error_code
        (not_found, not_eligible, no_results, duplicate_conflict,
        quota_exhausted, ...).
        """
        try:
            return await self._discover(game_id)
        except HighlightsException as e:
            logger.warning("video_discovery_failed", game_id=game_id, code=e.code, error=e.message)
            return DiscoveryResult(
                game_id=game_id, success=False, error=e.message, error_code=e.code
            )

    async def _discover(self, game_id: int) -> DiscoveryResult:
        async with session_scope(self.session_factory) as session:
            game = await GameRepository(session).find_by_id(game_id)
            if game is None:
                raise NotFoundError("Game", game_id)

            existing = await VideoRepository(session).find_by_game_id(game_id)
            if existing is not None:
                logger.debug("video_already_exists", game_id=game_id, video_id=existing.id)
                return DiscoveryResult(
                    game_id=game_id,
                    success=True,
                    video_id=existing.id,
                    youtube_video_id=existing.youtube_video_id,
                )

            if game.status != GameStatus.FINISHED.value:
                raise NotEligibleError(game_id, game.status)

            home_name = game.home_team.full_name
            away_name = game.away_team.full_name
            game_date = game.game_date

        candidates = await self.youtube.search_highlights(home_name, away_name, game_date)
        selected = select_candidate(candidates, self.is_verified)
        if selected is None:
            logger.info("video_discovery_no_results", game_id=game_id)
            return DiscoveryResult(
                game_id=game_id, success=False, error=NO_RESULTS_MESSAGE, error_code="no_results"
            )

        duration = parse_duration(selected.duration)
        if duration <= 0:
            raise ValidationError(
                f"Unparsable duration {selected.duration!r} for video {selected.id}"
            )

        verified = self.is_verified(selected.channel_id, selected.channel_title)

        async with session_scope(self.session_factory) as session:
            video = await VideoRepository(session).create(
                game_id=game_id,
                youtube_video_id=selected.id,
                title=selected.title,
                channel_name=selected.channel_title,
                channel_id=selected.channel_id,
                duration_seconds=duration,
                thumbnail_url=selected.thumbnail_url,
                published_at=selected.published_at,
                view_count=selected.view_count,
                url=get_watch_url(selected.id),
                is_verified=verified,
            )
            video_id = video.id

        logger.info(
            "video_discovered",
            game_id=game_id,
            youtube_video_id=selected.id,
            channel=selected.channel_title,
            verified=verified,
        )
        return DiscoveryResult(
            game_id=game_id, success=True, video_id=video_id, youtube_video_id=selected.id
        )

    async def _discover_batch(self, game_ids: List[int]) -> List[DiscoveryResult]:
        results: List[DiscoveryResult] = []

        for game_id in game_ids:
            await self.quota_manager.pacer.wait()
            try:
                result = await self.discover_video_for_game(game_id)
            except Exception as e:
                logger.error("video_discovery_error", game_id=game_id, error=str(e))
                result = DiscoveryResult(game_id=game_id, success=False, error=str(e))
            results.append(result)

            if result.error_code == "quota_exhausted":
                logger.warning("video_discovery_batch_stopped", reason="quota_exhausted")
                break

        logger.info(
            "video_discovery_batch_completed",
            requested=len(game_ids),
            processed=len(results),
            succeeded=sum(1 for r in results if r.success),
        )
        return results

    async def discover_videos_for_finished_games(self, limit: int = 10) -> List[DiscoveryResult]:
        """Discover videos for up to `limit` finished games that have none."""
        async with session_scope(self.session_factory) as session:
            games = await GameRepository(session).find_finished_without_video(limit)
            game_ids = [game.id for game in games]

        logger.info("video_discovery_batch_started", games=len(game_ids), limit=limit)
        return await self._discover_batch(game_ids)

    async def discover_videos_for_yesterday(self) -> List[DiscoveryResult]:
        yesterday = self._today() - timedelta(days=1)
        async with session_scope(self.session_factory) as session:
            games = await GameRepository(session).find_finished_without_video(game_date=yesterday)
            game_ids = [game.id for game in games]

        logger.info("video_discovery_yesterday_started", date=str(yesterday), games=len(game_ids))
        return await self._discover_batch(game_ids)

    # =========================================================================
    # Stats refresh
    # =========================================================================

    async def update_stats(self, video_id: int) -> bool:
        """Overwrite a stored video's view count. Returns False on any failure."""
        async with session_scope(self.session_factory) as session:
            video = await VideoRepository(session).find_by_id(video_id)
            if video is None:
                logger.warning("video_stats_not_found", video_id=video_id)
                return False
            youtube_video_id = video.youtube_video_id

        try:
            details = await self.youtube.get_video_details(youtube_video_id)
        except HighlightsException as e:
            logger.warning("video_stats_fetch_failed", video_id=video_id, error=e.message)
            return False

        if details is None:
            logger.warning("video_stats_missing_upstream", video_id=video_id)
            return False

        if details.view_count is None:
            # Statistics hidden by the uploader; keep the stored count
            logger.debug("video_stats_hidden", video_id=video_id)
            return True

        async with session_scope(self.session_factory) as session:
            repo = VideoRepository(session)
            video = await repo.find_by_id(video_id)
            if video is None:
                return False
            await repo.update_view_count(video, details.view_count)

        return True

    async def refresh_all_video_stats(self, limit: int = 50) -> int:
        """Refresh view counts of the `limit` most recent videos."""
        async with session_scope(self.session_factory) as session:
            videos = await VideoRepository(session).find_all(limit=limit)
            video_ids = [video.id for video in videos]

        updated = 0
        for video_id in video_ids:
            await self.stats_pacer.wait()
            if await self.update_stats(video_id):
                updated += 1

        logger.info("video_stats_refreshed", videos=len(video_ids), updated=updated)
        return updated
