"""
Tests for admin rate limiting.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import RedisError

from admissions.core import rate_limit
from admissions.core.rate_limit import RateLimitExceeded, check_rate_limit


@pytest.fixture(autouse=True)
def empty_memory_store(monkeypatch):
    monkeypatch.setattr(rate_limit, "_memory_store", {})


@pytest.mark.asyncio
async def test_memory_fallback_enforces_limit():
    with patch("admissions.core.rate_limit.get_redis_client", return_value=None):
        results = [await check_rate_limit("admin:approve:1", 3, 60) for _ in range(4)]

    assert results == [True, True, True, False]


@pytest.mark.asyncio
async def test_memory_fallback_keys_are_independent():
    with patch("admissions.core.rate_limit.get_redis_client", return_value=None):
        assert await check_rate_limit("admin:approve:1", 1, 60) is True
        assert await check_rate_limit("admin:approve:2", 1, 60) is True
        assert await check_rate_limit("admin:approve:1", 1, 60) is False


@pytest.mark.asyncio
async def test_redis_window():
    client = MagicMock()
    pipe = client.pipeline.return_value
    pipe.execute = AsyncMock(return_value=[0, 4, 1, True])

    with patch("admissions.core.rate_limit.get_redis_client", return_value=client):
        assert await check_rate_limit("admin:reject:1", 5, 60) is True

        pipe.execute.return_value = [0, 5, 1, True]
        assert await check_rate_limit("admin:reject:1", 5, 60) is False


@pytest.mark.asyncio
async def test_redis_error_falls_back_to_memory():
    client = MagicMock()
    client.pipeline.return_value.execute = AsyncMock(side_effect=RedisError("connection lost"))

    with patch("admissions.core.rate_limit.get_redis_client", return_value=client):
        assert await check_rate_limit("admin:archive:1", 1, 60) is True
        assert await check_rate_limit("admin:archive:1", 1, 60) is False


def test_rate_limit_exceeded_response():
    error = RateLimitExceeded(10, 60)

    assert error.status_code == 429
    assert error.headers == {"Retry-After": "60"}
    assert error.detail["error"] == "RATE_LIMIT_EXCEEDED"
