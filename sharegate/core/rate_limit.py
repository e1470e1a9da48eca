"""
Rate Limiting
Sliding-window attempt counters keyed by caller
"""

import asyncio
import math
from collections import deque
from datetime import timedelta
from typing import Deque, Dict

from sharegate.core.clock import utcnow
from sharegate.core.exceptions import RateLimitException
from sharegate.core.logging import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """Allow at most max_requests per key within window_seconds"""

    def __init__(self, max_requests: int, window_seconds: int, name: str = "default"):
        if max_requests < 1 or window_seconds < 1:
            raise ValueError("max_requests and window_seconds must be positive")
        self.max_requests = max_requests
        self.window = timedelta(seconds=window_seconds)
        self.name = name
        self._hits: Dict[str, Deque] = {}
        self._lock = asyncio.Lock()

    def _prune(self, key: str):
        hits = self._hits.get(key)
        if hits is None:
            return None
        window_start = utcnow() - self.window
        while hits and hits[0] <= window_start:
            hits.popleft()
        if not hits:
            del self._hits[key]
            return None
        return hits

    async def is_allowed(self, key: str) -> bool:
        """Record an attempt for key; False when the window is full"""
        async with self._lock:
            hits = self._prune(key)
            if hits is not None and len(hits) >= self.max_requests:
                return False
            self._hits.setdefault(key, deque()).append(utcnow())
            return True

    async def retry_after(self, key: str) -> int:
        """Seconds until key may try again"""
        async with self._lock:
            hits = self._prune(key)
            if not hits:
                return 0
            remaining = (hits[0] + self.window - utcnow()).total_seconds()
            return max(0, math.ceil(remaining))

    async def check(self, key: str) -> None:
        """Record an attempt or raise RateLimitException"""
        if not await self.is_allowed(key):
            retry_after = await self.retry_after(key)
            logger.warning(f"Rate limit '{self.name}' exceeded, retry in {retry_after}s")
            raise RateLimitException(
                message=f"Too many attempts. Please try again in {retry_after} seconds",
                retry_after=retry_after,
            )
