"""Redis-based distributed lock using SET NX PX semantics."""

from __future__ import annotations

import asyncio
import time
import uuid
from typing import Optional

from redis.asyncio import Redis

from rediscoord.core.errors import InvalidLockParameterError, translate_store_errors
from rediscoord.core.locks import AsyncLock, LockManager
from rediscoord.core.settings import LockSettings
from rediscoord.utils.logging import get_logger


# Ownership check and mutation run as one server-side step.
_RELEASE_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
else
    return 0
end
"""

_EXTEND_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('pexpire', KEYS[1], ARGV[2])
else
    return 0
end
"""


def default_token() -> str:
    """Wall-clock milliseconds as text.

    Not unique for two acquisitions in the same millisecond from one process;
    pass an explicit token (e.g. a uuid) when that matters.
    """
    return str(int(time.time() * 1000))


def _require_positive(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidLockParameterError(f"{name} must be a positive integer of milliseconds, got {value!r}")
    return value


class _RedisLock:
    def __init__(self, manager: "RedisLockManager", key: str, ttl_ms: int) -> None:
        self._manager = manager
        self.key = key
        self.token = str(uuid.uuid4())
        self._ttl_ms = ttl_ms
        self._acquired = False

    async def __aenter__(self) -> bool:
        self._acquired = await self._manager.acquire(self.key, self.token, self._ttl_ms)
        return self._acquired

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if not self._acquired:
            return
        try:
            await self._manager.release(self.key, self.token)
        finally:
            self._acquired = False


class RedisLockManager(LockManager):
    """Lock manager whose only state is the keys it writes to Redis."""

    def __init__(
        self,
        redis: Redis,
        *,
        key_prefix: Optional[str] = None,
        settings: Optional[LockSettings] = None,
    ) -> None:
        self._redis = redis
        self._settings = settings or LockSettings()
        self._prefix = self._settings.key_prefix if key_prefix is None else key_prefix
        self.logger = get_logger("RedisLockManager")

    def _key(self, lock_key: str) -> str:
        return f"{self._prefix}{lock_key}"

    async def acquire(self, lock_key: str, token: Optional[str] = None, ttl_ms: Optional[int] = None) -> bool:
        ttl_ms = _require_positive("ttl_ms", self._settings.default_ttl_ms if ttl_ms is None else ttl_ms)
        token = token if token is not None else default_token()
        key = self._key(lock_key)
        async with translate_store_errors("acquire", key):
            acquired = bool(await self._redis.set(key, token, px=ttl_ms, nx=True))
        self.logger.debug("acquire %s token=%s ttl=%dms -> %s", key, token, ttl_ms, acquired)
        return acquired

    async def release(self, lock_key: str, token: str) -> bool:
        key = self._key(lock_key)
        async with translate_store_errors("release", key):
            released = bool(await self._redis.eval(_RELEASE_SCRIPT, 1, key, token))
        self.logger.debug("release %s token=%s -> %s", key, token, released)
        return released

    async def extend(self, lock_key: str, token: str, additional_ttl_ms: int) -> bool:
        additional_ttl_ms = _require_positive("additional_ttl_ms", additional_ttl_ms)
        key = self._key(lock_key)
        async with translate_store_errors("extend", key):
            extended = bool(await self._redis.eval(_EXTEND_SCRIPT, 1, key, token, additional_ttl_ms))
        self.logger.debug("extend %s token=%s ttl=%dms -> %s", key, token, additional_ttl_ms, extended)
        return extended

    async def is_locked(self, lock_key: str) -> bool:
        key = self._key(lock_key)
        async with translate_store_errors("is_locked", key):
            return await self._redis.exists(key) == 1

    async def current_owner_token(self, lock_key: str) -> Optional[str]:
        key = self._key(lock_key)
        async with translate_store_errors("current_owner_token", key):
            value = await self._redis.get(key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def wait_for_lock(
        self,
        lock_key: str,
        token: Optional[str] = None,
        ttl_ms: Optional[int] = None,
        poll_interval_ms: Optional[int] = None,
        timeout_ms: Optional[int] = None,
    ) -> bool:
        ttl_ms = _require_positive("ttl_ms", self._settings.default_ttl_ms if ttl_ms is None else ttl_ms)
        poll_interval_ms = _require_positive(
            "poll_interval_ms",
            self._settings.poll_interval_ms if poll_interval_ms is None else poll_interval_ms,
        )
        timeout_ms = self._settings.wait_timeout_ms if timeout_ms is None else timeout_ms
        if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, int) or timeout_ms < 0:
            raise InvalidLockParameterError(f"timeout_ms must be a non-negative integer, got {timeout_ms!r}")
        token = token if token is not None else default_token()

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout_ms / 1000
        attempts = 0
        while True:
            attempts += 1
            if await self.acquire(lock_key, token, ttl_ms):
                return True
            remaining = deadline - loop.time()
            if remaining <= 0:
                self.logger.debug(
                    "wait_for_lock %s gave up after %d attempt(s) in %dms",
                    self._key(lock_key),
                    attempts,
                    timeout_ms,
                )
                return False
            await asyncio.sleep(min(poll_interval_ms / 1000, remaining))

    def lock(self, key: str, ttl_ms: Optional[int] = None) -> AsyncLock:
        ttl_ms = _require_positive("ttl_ms", self._settings.default_ttl_ms if ttl_ms is None else ttl_ms)
        return _RedisLock(self, key, ttl_ms)
