"""Optimistic WATCH/MULTI/EXEC transactions with bounded retry."""

from __future__ import annotations

import json
from typing import Any, Callable, List, Optional, Sequence, Tuple

from redis.asyncio import Redis
from redis.asyncio.client import Pipeline
from redis.exceptions import WatchError

from rediscoord.core.errors import RetryExhaustedError, TransactionConflictError, translate_store_errors
from rediscoord.core.retry import ConflictHook, retry_on_conflict
from rediscoord.core.settings import LockSettings
from rediscoord.utils.logging import get_logger


BatchBuilder = Callable[[Pipeline], Any]


def _is_watch_conflict(exc: BaseException) -> bool:
    return isinstance(exc, WatchError)


class TransactionRunner:
    """Runs queued commands atomically, provided the watched keys stay put.

    The ``build`` callback receives the MULTI-mode pipeline and only queues
    commands on it (``batch.incr(...)``, ``batch.execute_command(...)``); it
    must not await anything. A watched key changing before EXEC restarts the
    whole attempt, including ``build``, up to ``max_retries`` attempts.
    """

    def __init__(self, redis: Redis, *, settings: Optional[LockSettings] = None) -> None:
        self._redis = redis
        self._settings = settings or LockSettings()
        self.logger = get_logger("TransactionRunner")

    async def run_optimistic(
        self,
        watched_keys: Sequence[str],
        build: BatchBuilder,
        max_retries: Optional[int] = None,
        *,
        on_conflict: Optional[ConflictHook] = None,
    ) -> List[Any]:
        keys = list(watched_keys)
        max_retries = self._settings.max_retries if max_retries is None else max_retries

        async def attempt(number: int) -> List[Any]:
            # leaving the pipeline context resets it, which also UNWATCHes
            async with self._redis.pipeline(transaction=True) as pipe:
                async with translate_store_errors("watch", ",".join(keys) or None):
                    if keys:
                        await pipe.watch(*keys)
                    pipe.multi()
                build(pipe)
                if len(pipe) == 0:
                    return []
                async with translate_store_errors("exec", ",".join(keys) or None):
                    return await pipe.execute()

        def conflict(number: int, exc: BaseException) -> None:
            self.logger.warning("Watched keys %s changed, attempt %d/%d aborted", keys, number, max_retries)
            if on_conflict is not None:
                on_conflict(number, exc)

        try:
            return await retry_on_conflict(
                attempt,
                max_retries=max_retries,
                is_conflict=_is_watch_conflict,
                on_conflict=conflict,
            )
        except RetryExhaustedError as exc:
            raise TransactionConflictError(keys, exc.attempts) from exc.last_error

    async def run_batch(self, commands: Sequence[Sequence[Any]]) -> List[Any]:
        """Execute ``(command, *args)`` tuples as one unconditional MULTI/EXEC."""

        def build(batch: Pipeline) -> None:
            for command, *args in commands:
                batch.execute_command(str(command).upper(), *args)

        return await self.run_optimistic([], build, max_retries=1)

    async def get_and_set(self, key: str, value: Any) -> Tuple[Any, bool]:
        """Swap ``key`` to JSON-encoded ``value``; return the previous JSON value."""

        def build(batch: Pipeline) -> None:
            batch.get(key)
            batch.set(key, json.dumps(value))

        previous, stored = await self.run_optimistic([key], build)
        if isinstance(previous, bytes):
            previous = previous.decode("utf-8")
        return (json.loads(previous) if previous is not None else None), bool(stored)
