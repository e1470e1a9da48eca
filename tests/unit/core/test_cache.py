#!/usr/bin/env python3
"""
Unit Tests for Cache Utilities
Tests for sharegate/core/cache.py
"""

from datetime import timedelta
from unittest.mock import patch

import pytest

from sharegate.core.cache import CacheManager
from sharegate.core.clock import utcnow


@pytest.fixture
def cache_manager():
    return CacheManager()


class TestCacheManager:
    """Test CacheManager class"""

    async def test_set_and_get(self, cache_manager):
        await cache_manager.set("key", {"data": 1})
        assert await cache_manager.get("key") == {"data": 1}

    async def test_get_missing_returns_none(self, cache_manager):
        assert await cache_manager.get("missing") is None

    async def test_expired_entry_returns_none(self, cache_manager):
        await cache_manager.set("key", "value", ttl=10)
        later = utcnow() + timedelta(seconds=11)
        with patch("sharegate.core.cache.utcnow", return_value=later):
            assert await cache_manager.get("key") is None

    async def test_pop_is_single_use(self, cache_manager):
        await cache_manager.set("pass", "holder")
        assert await cache_manager.pop("pass") == "holder"
        assert await cache_manager.pop("pass") is None

    async def test_pop_expired_returns_none(self, cache_manager):
        await cache_manager.set("pass", "holder", ttl=1)
        later = utcnow() + timedelta(seconds=5)
        with patch("sharegate.core.cache.utcnow", return_value=later):
            assert await cache_manager.pop("pass") is None

    async def test_delete_prefix(self, cache_manager):
        await cache_manager.set("s1:a", 1)
        await cache_manager.set("s1:b", 2)
        await cache_manager.set("s2:a", 3)

        assert await cache_manager.delete_prefix("s1:") == 2
        assert await cache_manager.get("s1:a") is None
        assert await cache_manager.get("s2:a") == 3

    async def test_expired_entries_swept_when_full(self):
        cache = CacheManager(purge_threshold=2)
        await cache.set("a", 1, ttl=1)
        await cache.set("b", 2, ttl=1)
        later = utcnow() + timedelta(seconds=5)
        with patch("sharegate.core.cache.utcnow", return_value=later):
            await cache.set("c", 3)
        assert len(cache) == 1
