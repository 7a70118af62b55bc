"""Tests for the Redis cache and rate limiter."""

from unittest.mock import MagicMock

import pytest
import redis
from httpx import AsyncClient

from doorstep.core.redis_client import CacheManager, RateLimiter


def test_cache_manager_get_json():
    """Test CacheManager get_json method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    mock_redis.get.return_value = None
    assert cache_manager.get_json("test_key") is None
    mock_redis.get.assert_called_once_with("test_key")

    mock_redis.reset_mock()
    mock_redis.get.return_value = '{"total": 1, "items": []}'
    assert cache_manager.get_json("test_key") == {"total": 1, "items": []}


def test_cache_manager_set_json():
    """Test CacheManager set_json method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    assert cache_manager.set_json("test_key", {"value": 123}) is True
    mock_redis.set.assert_called_once_with("test_key", '{"value": 123}')

    mock_redis.reset_mock()
    assert cache_manager.set_json("test_key", {"value": 123}, ttl=300) is True
    mock_redis.setex.assert_called_once_with("test_key", 300, '{"value": 123}')


def test_cache_manager_delete_pattern():
    """Test CacheManager delete_pattern method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    mock_redis.scan_iter.return_value = iter(
        ["doctors:directory::1:20", "doctors:directory:cardiology:1:20"]
    )
    mock_redis.delete.return_value = 2

    assert cache_manager.delete_pattern("doctors:directory:*") == 2
    mock_redis.scan_iter.assert_called_once_with(match="doctors:directory:*")
    mock_redis.delete.assert_called_once_with(
        "doctors:directory::1:20", "doctors:directory:cardiology:1:20"
    )


def test_cache_manager_degrades_on_redis_error():
    mock_redis = MagicMock()
    mock_redis.get.side_effect = redis.ConnectionError("down")
    mock_redis.setex.side_effect = redis.ConnectionError("down")
    cache_manager = CacheManager(redis_client=mock_redis)

    assert cache_manager.get_json("key") is None
    assert cache_manager.set_json("key", {}, ttl=10) is False


def test_rate_limiter_counts_hits():
    mock_redis = MagicMock()
    pipeline = mock_redis.pipeline.return_value
    limiter = RateLimiter(redis_client=mock_redis)

    pipeline.execute.return_value = [5, True]
    assert limiter.check_rate_limit("ratelimit:payments:u1", limit=5, window=60) is True
    pipeline.incr.assert_called_once_with("ratelimit:payments:u1")
    pipeline.expire.assert_called_once_with("ratelimit:payments:u1", 60, nx=True)

    pipeline.execute.return_value = [6, False]
    assert limiter.check_rate_limit("ratelimit:payments:u1", limit=5, window=60) is False


def test_rate_limiter_fails_open():
    mock_redis = MagicMock()
    mock_redis.pipeline.return_value.execute.side_effect = redis.ConnectionError("down")
    limiter = RateLimiter(redis_client=mock_redis)

    assert limiter.check_rate_limit("key", limit=1) is True


@pytest.mark.asyncio
async def test_directory_served_from_cache(client: AsyncClient, cache_manager: MagicMock) -> None:
    cache_manager.get_json.return_value = {
        "total": 1,
        "page": 1,
        "page_size": 20,
        "items": [
            {
                "doctor_id": "6f1f6b7e-5f5d-4c1e-9d7e-3a7f2b1c0d9e",
                "specialties": ["Cardiology"],
                "years_experience": 12,
            }
        ],
    }

    response = await client.get("/api/v1/doctors")

    assert response.status_code == 200
    assert response.json()["items"][0]["specialties"] == ["Cardiology"]
    cache_manager.get_json.assert_called_once_with("doctors:directory::1:20")
    cache_manager.set_json.assert_not_called()


@pytest.mark.asyncio
async def test_directory_cached_after_query(
    client: AsyncClient, cache_manager: MagicMock
) -> None:
    response = await client.get("/api/v1/doctors", params={"specialty": "Cardiology"})

    assert response.status_code == 200
    key, value = cache_manager.set_json.call_args.args
    assert key == "doctors:directory:cardiology:1:20"
    assert value["total"] == 0
    assert cache_manager.set_json.call_args.kwargs["ttl"] == 300
