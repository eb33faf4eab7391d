"""
Process-wide throttle for generative-model calls.

At most `max_requests` calls may start within any rolling window of
`window_seconds`. Callers over the limit are suspended until capacity frees
up; exceeding the limit is back-pressure, never an error.
"""
from collections import deque
from typing import Awaitable, Callable, Deque, Optional
import asyncio
import threading
import time

from langchain_core.rate_limiters import BaseRateLimiter

from tickerbrief.config import CONFIG
from tickerbrief.logging_config import create_logger


class RateLimiter(BaseRateLimiter):
    """Rolling-window limiter compatible with LangChain's rate limiter interface."""

    def __init__(
        self,
        max_requests: Optional[int] = None,
        window_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        async_sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.max_requests = max_requests or CONFIG.LLM_MAX_REQUESTS_PER_MINUTE
        self.window_seconds = window_seconds or CONFIG.LLM_RATE_WINDOW_SECONDS
        self._clock = clock
        self._sleep = sleep
        self._async_sleep = async_sleep
        self._calls: Deque[float] = deque()
        self._lock = threading.Lock()
        self.logger = create_logger("RateLimiter")

    def _prune(self, now: float) -> None:
        while self._calls and now - self._calls[0] >= self.window_seconds:
            self._calls.popleft()

    def _try_acquire(self) -> float:
        """Record a call if capacity allows and return 0, else return the seconds to wait."""
        with self._lock:
            now = self._clock()
            self._prune(now)
            if len(self._calls) < self.max_requests:
                self._calls.append(now)
                return 0.0
            return self.window_seconds - (now - self._calls[0])

    @property
    def window_start(self) -> Optional[float]:
        """Start time of the oldest call still inside the window."""
        with self._lock:
            self._prune(self._clock())
            return self._calls[0] if self._calls else None

    @property
    def count(self) -> int:
        with self._lock:
            self._prune(self._clock())
            return len(self._calls)

    def acquire(self, *, blocking: bool = True) -> bool:
        while True:
            wait_seconds = self._try_acquire()
            if wait_seconds <= 0:
                return True
            if not blocking:
                return False
            self.logger.info(f"Rate limit reached, waiting {wait_seconds:.1f}s")
            self._sleep(wait_seconds)

    async def aacquire(self, *, blocking: bool = True) -> bool:
        while True:
            wait_seconds = self._try_acquire()
            if wait_seconds <= 0:
                return True
            if not blocking:
                return False
            self.logger.info(f"Rate limit reached, waiting {wait_seconds:.1f}s")
            await self._async_sleep(wait_seconds)


# Shared by every generative call in the process
llm_rate_limiter = RateLimiter()
