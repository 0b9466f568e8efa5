"""
YouTube API Service

Searches the YouTube Data API v3 for game highlight videos and fetches
video details (duration, statistics, channel, thumbnails).
"""

import re
from datetime import date
from typing import List, Optional, Dict

import httpx
from pydantic import ValidationError as PydanticValidationError

from ..config import Settings, get_settings
from ..core.logging import get_logger
from ..core.exceptions import (
    ConfigurationError,
    QuotaExceededError,
    UpstreamError,
    UpstreamRateLimitedError,
    ValidationError,
)
from ..models.video import SearchResponse, Thumbnail, VideoCandidate, VideoItem, VideosResponse
from .quota_manager import QuotaManager

logger = get_logger(__name__)


YOUTUBE_API_BASE = "https://www.googleapis.com/youtube/v3"
YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
YOUTUBE_EMBED_URL = "https://www.youtube.com/embed/{video_id}"

_DURATION_RE = re.compile(r"^PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?$")


def parse_duration(duration_str: Optional[str]) -> int:
    """
    Parse ISO 8601 duration to seconds.

    Examples:
        PT1H2M3S -> 3723
        PT5M -> 300
        PT45S -> 45
        garbage -> 0
    """
    if not duration_str:
        return 0
    match = _DURATION_RE.match(duration_str.strip())
    if not match:
        return 0
    hours, minutes, seconds = (int(part) if part else 0 for part in match.groups())
    return hours * 3600 + minutes * 60 + seconds


def get_watch_url(video_id: str) -> str:
    return YOUTUBE_WATCH_URL.format(video_id=video_id)


def get_embed_url(video_id: str) -> str:
    return YOUTUBE_EMBED_URL.format(video_id=video_id)


def build_highlights_query(home_team: str, away_team: str, game_date: date) -> str:
    return f"{home_team} vs {away_team} highlights {game_date.isoformat()}"


class YouTubeAPIService:
    """
    YouTube Data API v3 client for highlight discovery.

    Every call is charged to the QuotaManager:
    - search: 100 units
    - videos: 1 unit per video ID
    """

    def __init__(
        self,
        quota_manager: QuotaManager,
        api_key: Optional[str] = None,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self.api_key = api_key if api_key is not None else self.settings.youtube_api_key
        self.quota_manager = quota_manager
        self._transport = transport

        if not self.api_key:
            logger.warning("youtube_api_key_not_set")

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=YOUTUBE_API_BASE,
            timeout=self.settings.youtube_timeout,
            transport=self._transport,
        )

    def _require_key(self):
        if not self.api_key:
            raise ConfigurationError("YouTube API key not configured")

    async def _get(self, client: httpx.AsyncClient, path: str, params: Dict[str, str], cost: int) -> dict:
        """GET an endpoint and charge its cost, whatever the response."""
        try:
            response = await client.get(path, params={**params, "key": self.api_key})
        except httpx.HTTPError as e:
            raise UpstreamError("YouTube", 0, str(e)) from e
        await self.quota_manager.record_usage(cost)

        if response.status_code == 429:
            raise UpstreamRateLimitedError("YouTube")
        if response.status_code != 200:
            detail = self._error_message(response)
            if response.status_code == 403 and "quota" in detail.lower():
                raise QuotaExceededError("youtube")
            raise UpstreamError("YouTube", response.status_code, detail)

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError("YouTube", response.status_code, f"invalid JSON body: {e}") from e

    def _error_message(self, response: httpx.Response) -> str:
        try:
            return response.json().get("error", {}).get("message", "") or ""
        except ValueError:
            return response.text[:200]

    async def search_highlights(
        self,
        home_team: str,
        away_team: str,
        game_date: date,
        max_results: Optional[int] = None,
    ) -> List[VideoCandidate]:
        """
        Search for game highlights.

        Returns up to `max_results` embeddable, medium-length (4-20 min)
        candidates in relevance order, with details merged in.
        """
        self._require_key()
        max_results = max_results or self.settings.video_search_results

        await self.quota_manager.require_quota(
            self.quota_manager.cost_of_search() + self.quota_manager.cost_of_details(max_results)
        )

        query = build_highlights_query(home_team, away_team, game_date)
        logger.info("youtube_search", query=query, max_results=max_results)

        async with self._client() as client:
            data = await self._get(
                client,
                "/search",
                {
                    "part": "snippet",
                    "q": query,
                    "type": "video",
                    "maxResults": str(max_results),
                    "order": "relevance",
                    "videoDuration": "medium",
                    "videoEmbeddable": "true",
                },
                cost=self.quota_manager.cost_of_search(),
            )
            try:
                search = SearchResponse.model_validate(data)
            except PydanticValidationError as e:
                raise ValidationError(f"Unexpected YouTube search response: {e}") from e

            video_ids = search.video_ids()
            if not video_ids:
                logger.info("youtube_search_empty", query=query)
                return []

            items = await self._fetch_videos(client, video_ids)

        # The videos endpoint does not promise order; restore relevance order
        by_id = {item.id: item for item in items}
        candidates = [self._to_candidate(by_id[vid]) for vid in video_ids if vid in by_id]

        logger.info("youtube_search_completed", query=query, count=len(candidates))
        return candidates

    async def _fetch_videos(self, client: httpx.AsyncClient, video_ids: List[str]) -> List[VideoItem]:
        data = await self._get(
            client,
            "/videos",
            {
                "part": "snippet,contentDetails,statistics",
                "id": ",".join(video_ids),
            },
            cost=self.quota_manager.cost_of_details(len(video_ids)),
        )
        try:
            return VideosResponse.model_validate(data).items
        except PydanticValidationError as e:
            raise ValidationError(f"Unexpected YouTube videos response: {e}") from e

    async def get_video_details(self, video_id: str) -> Optional[VideoCandidate]:
        """Fetch one video's details (1 unit). None if the video is gone."""
        self._require_key()
        await self.quota_manager.require_quota(self.quota_manager.cost_of_details(1))

        async with self._client() as client:
            items = await self._fetch_videos(client, [video_id])

        if not items:
            return None
        return self._to_candidate(items[0])

    def _to_candidate(self, item: VideoItem) -> VideoCandidate:
        stats = item.statistics
        return VideoCandidate(
            id=item.id,
            title=item.snippet.title,
            description=item.snippet.description,
            channel_id=item.snippet.channel_id,
            channel_title=item.snippet.channel_title,
            published_at=item.snippet.published_at,
            thumbnail_url=self._get_best_thumbnail(item.snippet.thumbnails),
            duration=item.content_details.duration,
            view_count=stats.view_count if stats else None,
            like_count=stats.like_count if stats else None,
        )

    def _get_best_thumbnail(self, thumbnails: Dict[str, Thumbnail]) -> str:
        """Get the best quality thumbnail URL."""
        # Priority: maxres > standard > high > medium > default
        for quality in ["maxres", "standard", "high", "medium", "default"]:
            if quality in thumbnails and thumbnails[quality].url:
                return thumbnails[quality].url

        return ""
