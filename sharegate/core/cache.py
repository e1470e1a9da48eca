"""
Session State Cache
In-process TTL store for short-lived, session-scoped values such as gate passes
"""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple

from sharegate.core.clock import utcnow
from sharegate.core.logging import get_logger

logger = get_logger(__name__)

# Expired entries are swept once the store grows past this many keys
PURGE_THRESHOLD = 1024


class CacheManager:
    """
    Key/value store with per-entry expiry

    Values live only in this process: they are not shared between workers
    and do not survive a restart. Keys are expected to be
    "<session_id>:<suffix>" so a whole session can be dropped at once.
    """

    def __init__(self, purge_threshold: int = PURGE_THRESHOLD):
        self._entries: Dict[str, Tuple[Any, datetime]] = {}
        self._purge_threshold = purge_threshold
        self._lock = asyncio.Lock()

    def _live(self, key: str, now: datetime) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if now >= expires_at:
            del self._entries[key]
            return None
        return value

    def _purge(self, now: datetime) -> int:
        expired = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Purged {len(expired)} expired session entries")
        return len(expired)

    async def get(self, key: str) -> Optional[Any]:
        """Live value for key, or None"""
        async with self._lock:
            return self._live(key, utcnow())

    async def set(self, key: str, value: Any, ttl: int = 3600) -> None:
        """
        Store value under key for ttl seconds

        Args:
            key: Entry key
            value: Value to store
            ttl: Lifetime in seconds
        """
        async with self._lock:
            now = utcnow()
            if len(self._entries) >= self._purge_threshold:
                self._purge(now)
            self._entries[key] = (value, now + timedelta(seconds=ttl))

    async def pop(self, key: str) -> Optional[Any]:
        """Remove key and return its value if it was still live (single-use reads)"""
        async with self._lock:
            value = self._live(key, utcnow())
            self._entries.pop(key, None)
            return value

    async def delete_prefix(self, prefix: str) -> int:
        """Drop every entry whose key starts with prefix; returns how many"""
        async with self._lock:
            keys = [key for key in self._entries if key.startswith(prefix)]
            for key in keys:
                del self._entries[key]
            return len(keys)

    def __len__(self) -> int:
        return len(self._entries)
