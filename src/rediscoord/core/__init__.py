"""Core coordination primitives backed by a shared Redis server."""

from .client import check_health, connect, create_redis_client
from .errors import (
    CoordError,
    InvalidLockParameterError,
    RetryExhaustedError,
    StoreConnectionError,
    TransactionConflictError,
)
from .locks import AsyncLock, LockManager
from .locks_redis import RedisLockManager, default_token
from .retry import retry_on_conflict
from .settings import CoordSettings, LockSettings, RedisSettings
from .transactions import TransactionRunner

__all__ = [
    "AsyncLock",
    "LockManager",
    "RedisLockManager",
    "TransactionRunner",
    "retry_on_conflict",
    "default_token",
    "create_redis_client",
    "connect",
    "check_health",
    "CoordSettings",
    "LockSettings",
    "RedisSettings",
    "CoordError",
    "InvalidLockParameterError",
    "RetryExhaustedError",
    "StoreConnectionError",
    "TransactionConflictError",
]
