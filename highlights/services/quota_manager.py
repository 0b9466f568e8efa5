"""
Quota Manager Service

Tracks YouTube Data API usage against the daily budget and sizes
discovery batches so scheduled runs never starve manual operations.
"""

from datetime import datetime
from typing import Callable, Optional
from zoneinfo import ZoneInfo

import redis.asyncio as aioredis

from ..config import Settings, get_settings
from ..core.logging import get_logger
from ..core.exceptions import QuotaExceededError
from ..models.results import QuotaCheck, QuotaState
from .rate_limit import RequestPacer

logger = get_logger(__name__)


def create_redis_client(redis_url: Optional[str]) -> Optional[aioredis.Redis]:
    """Build an async Redis client, or None when Redis is not configured."""
    if not redis_url:
        logger.debug("redis_not_configured")
        return None
    return aioredis.from_url(
        redis_url,
        decode_responses=True,
        socket_timeout=5,
        socket_connect_timeout=5,
    )


class QuotaManager:
    """
    Manages YouTube quota tracking to prevent bans.

    YouTube Data API: 10,000 units/day
    - Search: 100 units
    - Video list: 1 unit per video ID

    Usage is counted per quota period: the calendar date in
    `quota_reset_timezone` (the provider resets at midnight Pacific).
    A new date starts from zero.

    One discovery costs a search plus a details lookup for every
    candidate, so the unit cost defaults to 100 + K * 1.
    """

    API_NAME = "youtube"

    def __init__(
        self,
        redis_client=None,
        settings: Optional[Settings] = None,
        pacer: Optional[RequestPacer] = None,
        daily_limit: Optional[int] = None,
        safety_buffer: Optional[int] = None,
        unit_cost: Optional[int] = None,
        max_per_run: Optional[int] = None,
        min_remaining: Optional[int] = None,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = settings or get_settings()
        self.redis = redis_client
        self._local_usage: dict = {}  # Fallback if no Redis

        s = self.settings
        self.daily_limit = daily_limit if daily_limit is not None else s.youtube_daily_quota_limit
        self.safety_buffer = safety_buffer if safety_buffer is not None else s.quota_safety_buffer
        self.search_cost = s.youtube_search_cost
        self.video_cost = s.youtube_video_cost
        self.unit_cost = unit_cost if unit_cost is not None else (
            self.search_cost + self.video_cost * s.video_search_results
        )
        self.max_per_run = max_per_run if max_per_run is not None else s.max_discoveries_per_run
        self.min_remaining = min_remaining if min_remaining is not None else s.quota_min_remaining
        self._tz = ZoneInfo(s.quota_reset_timezone)
        self._now = now or (lambda: datetime.now(self._tz))

        # Single pacer for every outbound YouTube request made by batch jobs
        self.pacer = pacer or RequestPacer(s.video_request_delay, name="youtube")

    def current_period(self) -> str:
        return self._now().astimezone(self._tz).strftime("%Y-%m-%d")

    def _get_period_key(self) -> str:
        """Get Redis key for the current period's usage."""
        return f"quota:{self.API_NAME}:{self.current_period()}"

    async def get_usage(self) -> int:
        """Units used in the current period."""
        key = self._get_period_key()

        if self.redis:
            try:
                usage = await self.redis.get(key)
                return int(usage) if usage else 0
            except Exception as e:
                logger.warning("redis_get_quota_failed", error=str(e))

        return self._local_usage.get(key, 0)

    async def record_usage(self, cost: int = 1):
        """Record units spent by an upstream call."""
        if cost <= 0:
            return
        key = self._get_period_key()

        if self.redis:
            try:
                await self.redis.incrby(key, cost)
                await self.redis.expire(key, 2 * 86400)
                return
            except Exception as e:
                logger.warning("redis_record_quota_failed", error=str(e))

        # Fallback to local
        self._local_usage[key] = self._local_usage.get(key, 0) + cost

    def cost_of_search(self) -> int:
        return self.search_cost

    def cost_of_details(self, id_count: int) -> int:
        return self.video_cost * id_count

    async def get_remaining(self) -> int:
        current = await self.get_usage()
        return max(0, self.daily_limit - current)

    async def can_make_request(self, cost: int = 1) -> bool:
        current = await self.get_usage()
        return (current + cost) <= self.daily_limit

    async def require_quota(self, cost: int = 1):
        """
        Check quota and raise exception if exceeded.

        Use this before making API calls.
        """
        if not await self.can_make_request(cost):
            current = await self.get_usage()
            logger.error(
                "quota_exceeded",
                api=self.API_NAME,
                current=current,
                limit=self.daily_limit,
                requested=cost
            )
            raise QuotaExceededError(self.API_NAME)

    def batch_size_for(self, remaining: int) -> int:
        """
        floor((remaining - buffer) / unit_cost), clamped to [0, max_per_run].

        Example: remaining=1200, buffer=500, unit_cost=101, cap=20 -> 6
        """
        if self.unit_cost <= 0:
            return 0
        spendable = remaining - self.safety_buffer
        if spendable <= 0:
            return 0
        return max(0, min(spendable // self.unit_cost, self.max_per_run))

    async def compute_safe_batch_size(self) -> int:
        return self.batch_size_for(await self.get_remaining())

    async def preflight(self) -> QuotaCheck:
        """Decide whether a discovery run may start and how big it may be."""
        remaining = await self.get_remaining()
        batch_size = self.batch_size_for(remaining)

        if remaining < self.min_remaining:
            logger.warning(
                "quota_preflight_skip",
                remaining=remaining,
                min_remaining=self.min_remaining,
            )
            return QuotaCheck(
                allowed=False, remaining=remaining, batch_size=0, reason="quota_exhausted"
            )
        if batch_size == 0:
            return QuotaCheck(
                allowed=False, remaining=remaining, batch_size=0, reason="quota_reserved"
            )
        return QuotaCheck(allowed=True, remaining=remaining, batch_size=batch_size)

    async def get_state(self) -> QuotaState:
        return QuotaState(
            api=self.API_NAME,
            period=self.current_period(),
            used=await self.get_usage(),
            limit=self.daily_limit,
        )
