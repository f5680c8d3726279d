"""Optional Redis client shared by pushes, throttling and login lockout.

The API runs without Redis (``FAIR_REDIS_URL=""``); callers that can degrade
use ``get_optional_redis`` and skip their Redis work when it returns None.
"""

import redis.asyncio as redis
import structlog

logger = structlog.get_logger()

_client: redis.Redis | None = None


async def init_redis(url: str, max_connections: int = 50) -> redis.Redis:
    """Create the shared client from a ``redis://`` URL and return it."""
    global _client  # noqa: PLW0603
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=max_connections,
        health_check_interval=30,
    )
    logger.info("redis_initialized", max_connections=max_connections)
    return _client


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis() -> redis.Redis:
    """Shared client for code paths that cannot run without Redis."""
    if _client is None:
        msg = "Redis is not configured (FAIR_REDIS_URL is empty or init_redis() was not called)"
        raise RuntimeError(msg)
    return _client


def get_optional_redis() -> redis.Redis | None:
    return _client
