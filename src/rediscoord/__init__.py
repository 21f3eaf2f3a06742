"""Redis-backed distributed locks and optimistic transactions."""

from .core import (
    CoordError,
    CoordSettings,
    RedisLockManager,
    StoreConnectionError,
    TransactionConflictError,
    TransactionRunner,
)

__all__ = [
    "__version__",
    "CoordError",
    "CoordSettings",
    "RedisLockManager",
    "StoreConnectionError",
    "TransactionConflictError",
    "TransactionRunner",
]

__version__ = "0.1.0"
