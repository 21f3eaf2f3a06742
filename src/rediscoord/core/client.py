"""Redis client factory with a bounded reconnect policy."""

from __future__ import annotations

from typing import Optional

from redis.asyncio import Redis
from redis.asyncio.retry import Retry
from redis.backoff import ConstantBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from rediscoord.core.errors import StoreConnectionError
from rediscoord.core.settings import RedisSettings
from rediscoord.utils.logging import get_logger


logger = get_logger("RedisFactory")


def create_redis_client(settings: Optional[RedisSettings] = None) -> Redis:
    """Build an unconnected client; the first command opens the connection."""
    settings = settings or RedisSettings()
    retry = Retry(ConstantBackoff(settings.reconnect_backoff_seconds), settings.reconnect_attempts)
    options = dict(
        socket_connect_timeout=settings.connect_timeout_seconds,
        socket_timeout=settings.socket_timeout_seconds,
        retry=retry,
        retry_on_error=[RedisConnectionError, RedisTimeoutError],
        decode_responses=settings.decode_responses,
    )
    if settings.url:
        return Redis.from_url(settings.url, **options)
    return Redis(
        host=settings.host,
        port=settings.port,
        db=settings.db,
        password=settings.password,
        **options,
    )


async def connect(settings: Optional[RedisSettings] = None) -> Redis:
    """Create a client and verify it answers PING before handing it out."""
    settings = settings or RedisSettings()
    redis = create_redis_client(settings)
    target = settings.url or f"{settings.host}:{settings.port}"
    try:
        await redis.ping()
    except (RedisConnectionError, RedisTimeoutError) as exc:
        if isinstance(exc.__context__, ConnectionRefusedError) or "refused" in str(exc).lower():
            logger.error("Redis connection refused at %s - is Redis running?", target)
        else:
            logger.error("Failed to connect to Redis at %s: %s", target, exc)
        await redis.aclose()
        raise StoreConnectionError("connect", reason=str(exc)) from exc
    logger.info("Connected to Redis at %s", target)
    return redis


async def check_health(redis: Redis) -> bool:
    try:
        return bool(await redis.ping())
    except (RedisConnectionError, RedisTimeoutError) as exc:
        logger.warning("Redis health check failed: %s", exc)
        return False
