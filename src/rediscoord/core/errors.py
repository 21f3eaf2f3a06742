"""Error taxonomy for lock and transaction operations.

Contention is never an error: a lost race or an ownership mismatch is
reported through boolean results. Exceptions are reserved for an unreachable
store, exhausted optimistic retries and caller mistakes.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Sequence

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from redis.exceptions import WatchError


class CoordError(Exception):
    """Base class for every error raised by rediscoord."""


class StoreConnectionError(CoordError):
    """The store is unreachable or the connection dropped mid-operation."""

    def __init__(self, operation: str, *, key: Optional[str] = None, reason: Optional[str] = None) -> None:
        self.operation = operation
        self.key = key
        message = f"Redis unavailable during {operation}"
        if key is not None:
            message += f" on {key!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class TransactionConflictError(CoordError):
    """Watched keys kept changing until the retry budget ran out."""

    def __init__(self, watched_keys: Sequence[str], attempts: int) -> None:
        self.watched_keys = list(watched_keys)
        self.attempts = attempts
        super().__init__(
            f"Transaction conflict on {self.watched_keys} after {attempts} attempt(s)"
        )


class InvalidLockParameterError(CoordError, ValueError):
    """A TTL, interval or timeout argument is out of range."""


class RetryExhaustedError(CoordError):
    """Every attempt of a bounded retry ended in a conflict."""

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Gave up after {attempts} conflicting attempt(s): {last_error}")


@asynccontextmanager
async def translate_store_errors(operation: str, key: Optional[str] = None) -> AsyncIterator[None]:
    """Re-raise redis connectivity failures as :class:`StoreConnectionError`."""
    try:
        yield
    except (RedisConnectionError, RedisTimeoutError) as exc:
        raise StoreConnectionError(operation, key=key, reason=str(exc)) from exc
    except WatchError as exc:
        # redis-py reports a connection dropped under WATCH as a WatchError
        cause = exc.__cause__ or exc.__context__
        if isinstance(cause, (RedisConnectionError, RedisTimeoutError)):
            raise StoreConnectionError(operation, key=key, reason=str(cause)) from cause
        raise
