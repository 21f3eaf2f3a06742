"""Abstract interfaces for distributed locks."""

from __future__ import annotations

import abc
from typing import Optional, Protocol


class AsyncLock(Protocol):
    key: str
    token: str

    async def __aenter__(self) -> bool: ...
    async def __aexit__(self, exc_type, exc, tb) -> None: ...


class LockManager(abc.ABC):
    """Mutual exclusion over named resources.

    Implementations hold no local lock state; two managers pointed at the same
    store are interchangeable, and a lock acquired through one can be released
    through the other given the token.
    """

    @abc.abstractmethod
    async def acquire(self, lock_key: str, token: Optional[str] = None, ttl_ms: Optional[int] = None) -> bool:  # pragma: no cover - interface
        """Take the lock if nobody holds it. Never blocks, never retries."""
        raise NotImplementedError

    @abc.abstractmethod
    async def release(self, lock_key: str, token: str) -> bool:  # pragma: no cover - interface
        """Delete the lock only while ``token`` still owns it."""
        raise NotImplementedError

    @abc.abstractmethod
    async def extend(self, lock_key: str, token: str, additional_ttl_ms: int) -> bool:  # pragma: no cover - interface
        """Reset the expiry to ``additional_ttl_ms`` from now if ``token`` owns it."""
        raise NotImplementedError

    @abc.abstractmethod
    async def is_locked(self, lock_key: str) -> bool:  # pragma: no cover - interface
        """Advisory existence check; stale as soon as it returns."""
        raise NotImplementedError

    @abc.abstractmethod
    async def current_owner_token(self, lock_key: str) -> Optional[str]:  # pragma: no cover - interface
        """Advisory read of the owner token."""
        raise NotImplementedError

    @abc.abstractmethod
    async def wait_for_lock(
        self,
        lock_key: str,
        token: Optional[str] = None,
        ttl_ms: Optional[int] = None,
        poll_interval_ms: Optional[int] = None,
        timeout_ms: Optional[int] = None,
    ) -> bool:  # pragma: no cover - interface
        """Poll :meth:`acquire` until it succeeds or the timeout elapses."""
        raise NotImplementedError

    @abc.abstractmethod
    def lock(self, key: str, ttl_ms: Optional[int] = None) -> AsyncLock:  # pragma: no cover - interface
        """Return an async context manager that attempts to acquire a lock."""
        raise NotImplementedError
