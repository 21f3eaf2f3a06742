"""Connection and lock settings loader."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from rediscoord.utils.env import get_env, get_float_env, get_int_env


class RedisSettings(BaseModel):
    """Where the shared store lives and how hard to try reaching it."""

    host: str = "localhost"
    port: int = Field(default=6379, gt=0, lt=65536)
    db: int = Field(default=0, ge=0)
    password: Optional[str] = None
    url: Optional[str] = None  # takes precedence over host/port/db when set
    connect_timeout_seconds: float = Field(default=5.0, gt=0)
    socket_timeout_seconds: Optional[float] = Field(default=None, gt=0)
    reconnect_attempts: int = Field(default=3, ge=0)
    reconnect_backoff_seconds: float = Field(default=1.0, ge=0)
    decode_responses: bool = True


class LockSettings(BaseModel):
    """Defaults applied when callers omit lock and transaction parameters."""

    key_prefix: str = ""
    default_ttl_ms: int = Field(default=10_000, gt=0)
    poll_interval_ms: int = Field(default=100, gt=0)
    wait_timeout_ms: int = Field(default=5_000, ge=0)
    max_retries: int = Field(default=3, ge=1)


class CoordSettings(BaseModel):
    redis: RedisSettings = Field(default_factory=RedisSettings)
    locks: LockSettings = Field(default_factory=LockSettings)

    @classmethod
    def from_file(cls, path: Path) -> "CoordSettings":
        data = yaml.safe_load(path.read_text()) or {}
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid rediscoord settings: {exc}") from exc

    @classmethod
    def from_env(cls) -> "CoordSettings":
        """Build settings from ``REDIS_*`` and ``REDISCOORD_*`` variables."""
        redis: Dict[str, Any] = {
            "host": get_env("REDIS_HOST"),
            "port": get_int_env("REDIS_PORT"),
            "db": get_int_env("REDIS_DB"),
            "password": get_env("REDIS_PASSWORD"),
            "url": get_env("REDIS_URL"),
            "connect_timeout_seconds": get_float_env("REDIS_CONNECT_TIMEOUT"),
            "socket_timeout_seconds": get_float_env("REDIS_SOCKET_TIMEOUT"),
            "reconnect_attempts": get_int_env("REDIS_RECONNECT_ATTEMPTS"),
            "reconnect_backoff_seconds": get_float_env("REDIS_RECONNECT_BACKOFF"),
        }
        locks: Dict[str, Any] = {
            "key_prefix": get_env("REDISCOORD_LOCK_PREFIX"),
            "default_ttl_ms": get_int_env("REDISCOORD_LOCK_TTL_MS"),
            "poll_interval_ms": get_int_env("REDISCOORD_LOCK_POLL_MS"),
            "wait_timeout_ms": get_int_env("REDISCOORD_LOCK_WAIT_MS"),
            "max_retries": get_int_env("REDISCOORD_TX_MAX_RETRIES"),
        }
        data = {
            "redis": {k: v for k, v in redis.items() if v is not None},
            "locks": {k: v for k, v in locks.items() if v is not None},
        }
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid rediscoord environment: {exc}") from exc
