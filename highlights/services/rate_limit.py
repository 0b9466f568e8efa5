"""
Request Pacing

Proactive pacing for upstream APIs: successive acquisitions are spaced at
least `min_interval` seconds apart. Reactive backoff after a 429 lives in
the API clients, not here.
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional

from ..core.logging import get_logger

logger = get_logger(__name__)


class RequestPacer:
    """
    Leaky-bucket style limiter with a bucket size of one.

    The first call passes immediately; every later call waits until
    `min_interval` has elapsed since the previous one.
    """

    def __init__(
        self,
        min_interval: float,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.min_interval = max(0.0, min_interval)
        self.name = name
        self._clock = clock
        self._sleep = sleep
        self._last: Optional[float] = None
        self._lock = asyncio.Lock()

    async def wait(self) -> float:
        """Block until the next request may go out. Returns seconds waited."""
        async with self._lock:
            waited = 0.0
            if self._last is not None and self.min_interval > 0:
                elapsed = self._clock() - self._last
                waited = self.min_interval - elapsed
                if waited > 0:
                    logger.debug("request_pacing_wait", pacer=self.name, seconds=round(waited, 3))
                    await self._sleep(waited)
                else:
                    waited = 0.0
            self._last = self._clock()
            return waited

    def reset(self):
        self._last = None
