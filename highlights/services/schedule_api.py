"""
Schedule API Service

Client for the authoritative league schedule (balldontlie-style API):
cursor-paginated game listings with embedded team records.

Rate limiting:
- Proactive: at least `schedule_request_delay` seconds between pages
- Reactive: HTTP 429 is retried with exponential backoff (2, 4, 8, 16, 32s)
"""

import asyncio
from datetime import date, datetime, timedelta
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Tuple, Union
from zoneinfo import ZoneInfo

import httpx
from pydantic import ValidationError as PydanticValidationError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..config import Settings, get_settings
from ..core.logging import get_logger
from ..core.exceptions import (
    ConfigurationError,
    MaxRetriesExceededError,
    UpstreamError,
    UpstreamRateLimitedError,
    ValidationError,
)
from ..db.models import GameStatus
from ..models.schedule import InvalidScheduleRecord, ScheduleGame, SchedulePage, ScheduleTeam
from .rate_limit import RequestPacer

logger = get_logger(__name__)

SERVICE_NAME = "Schedule"

ScheduleRecord = Union[ScheduleGame, InvalidScheduleRecord]


def map_status(game: ScheduleGame) -> str:
    """
    Collapse the upstream status string into our three states.

    "Final" anywhere in the status -> finished, a started period ->
    in_progress, anything else (tip-off times, "Scheduled") -> scheduled.
    """
    if "Final" in (game.status or ""):
        return GameStatus.FINISHED.value
    if game.period and game.period > 0:
        return GameStatus.IN_PROGRESS.value
    return GameStatus.SCHEDULED.value


def parse_game(raw: Dict[str, Any]) -> ScheduleRecord:
    """Validate one raw game record; failures come back as InvalidScheduleRecord."""
    try:
        return ScheduleGame.model_validate(raw)
    except PydanticValidationError as e:
        return InvalidScheduleRecord(
            id=raw.get("id", "unknown"), error=f"Unexpected schedule record: {e}"
        )


def score_or_none(score: Optional[int]) -> Optional[int]:
    # Upstream reports 0 for games that have not started
    return score or None


def league_today(timezone: str, now: Optional[datetime] = None) -> date:
    now = now or datetime.now(ZoneInfo(timezone))
    return now.astimezone(ZoneInfo(timezone)).date()


class ScheduleAPIService:
    """
    Read-only client for the schedule source.

    Usage:
        api = ScheduleAPIService()
        async for game in api.fetch_range(start, end):
            ...
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        pacer: Optional[RequestPacer] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = settings or get_settings()
        s = self.settings
        self.api_key = api_key if api_key is not None else s.schedule_api_key
        self.base_url = s.schedule_api_url.rstrip("/")
        self.page_size = s.schedule_page_size
        self.max_retries = s.schedule_max_retries
        self.backoff_base = s.schedule_backoff_base
        self._transport = transport
        self._sleep = sleep
        self._now = now
        self.pacer = pacer or RequestPacer(s.schedule_request_delay, name="schedule", sleep=sleep)

    # =========================================================================
    # Dates (league timezone)
    # =========================================================================

    def today(self) -> date:
        now = self._now() if self._now else None
        return league_today(self.settings.league_timezone, now)

    def yesterday(self) -> date:
        return self.today() - timedelta(days=1)

    def upcoming_range(self, days: Optional[int] = None) -> Tuple[date, date]:
        days = self.settings.upcoming_days if days is None else days
        start = self.today()
        return start, start + timedelta(days=days)

    # =========================================================================
    # HTTP
    # =========================================================================

    def _client(self) -> httpx.AsyncClient:
        if not self.api_key:
            raise ConfigurationError("Schedule API key not configured")
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": self.api_key},
            timeout=self.settings.schedule_timeout,
            transport=self._transport,
        )

    def _log_backoff(self, retry_state: RetryCallState):
        logger.warning(
            "schedule_api_rate_limited",
            attempt=retry_state.attempt_number,
            wait_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
        )

    async def _request(self, client: httpx.AsyncClient, path: str, params: Optional[dict] = None) -> httpx.Response:
        """
        GET with 429 backoff.

        Waits backoff_base * 2**(n-1) seconds before retry n; after
        max_retries retries raises MaxRetriesExceededError. Other error
        statuses are returned to the caller untouched.
        """
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(UpstreamRateLimitedError),
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=self.backoff_base, exp_base=2),
            sleep=self._sleep,
            before_sleep=self._log_backoff,
        )

        response = None
        try:
            async for attempt in retrying:
                with attempt:
                    try:
                        response = await client.get(path, params=params)
                    except httpx.HTTPError as e:
                        raise UpstreamError(SERVICE_NAME, 0, str(e)) from e
                    if response.status_code == 429:
                        raise UpstreamRateLimitedError(SERVICE_NAME)
        except RetryError as e:
            logger.error("schedule_api_max_retries", path=path, retries=self.max_retries)
            raise MaxRetriesExceededError(SERVICE_NAME, self.max_retries) from e

        return response

    async def _get_page(self, client: httpx.AsyncClient, params: dict) -> SchedulePage:
        response = await self._request(client, "/games", params)
        if response.status_code != 200:
            raise UpstreamError(SERVICE_NAME, response.status_code, response.reason_phrase)
        try:
            return SchedulePage.model_validate(response.json())
        except (PydanticValidationError, ValueError) as e:
            raise ValidationError(f"Unexpected schedule response: {e}") from e

    # =========================================================================
    # Public API
    # =========================================================================

    async def fetch_range(self, start: date, end: date) -> AsyncIterator[ScheduleRecord]:
        """
        Yield every game between start and end (inclusive), page by page.

        Records that fail validation are yielded as InvalidScheduleRecord
        instead of failing the page.
        """
        cursor: Optional[int] = None
        pages = 0

        async with self._client() as client:
            while True:
                params = {
                    "start_date": start.isoformat(),
                    "end_date": end.isoformat(),
                    "per_page": self.page_size,
                }
                if cursor is not None:
                    params["cursor"] = cursor

                await self.pacer.wait()
                page = await self._get_page(client, params)
                pages += 1

                for raw in page.data:
                    record = parse_game(raw)
                    if isinstance(record, InvalidScheduleRecord):
                        logger.warning("schedule_record_invalid", game_id=record.id, error=record.error)
                    yield record

                cursor = page.meta.next_cursor
                if not cursor:
                    break

        logger.debug("schedule_range_fetched", start=str(start), end=str(end), pages=pages)

    async def fetch_all(self, start: date, end: date) -> List[ScheduleRecord]:
        return [game async for game in self.fetch_range(start, end)]

    async def fetch_teams(self) -> List[ScheduleTeam]:
        """All franchises known upstream (used to link external team ids)."""
        async with self._client() as client:
            await self.pacer.wait()
            response = await self._request(client, "/teams")
            if response.status_code != 200:
                raise UpstreamError(SERVICE_NAME, response.status_code, response.reason_phrase)
            try:
                data = response.json().get("data", [])
                # Historical franchises carry empty conference/division
                return [ScheduleTeam.model_validate(t) for t in data if t.get("conference")]
            except (PydanticValidationError, ValueError, AttributeError) as e:
                raise ValidationError(f"Unexpected teams response: {e}") from e


# Singleton instance
_schedule_api: Optional[ScheduleAPIService] = None


def get_schedule_api() -> ScheduleAPIService:
    """Get singleton ScheduleAPIService instance."""
    global _schedule_api
    if _schedule_api is None:
        _schedule_api = ScheduleAPIService()
    return _schedule_api
