"""Bounded retry combinator for optimistic operations."""

from __future__ import annotations

from typing import Awaitable, Callable, Optional, TypeVar

from rediscoord.core.errors import RetryExhaustedError


T = TypeVar("T")

ConflictHook = Callable[[int, BaseException], None]


async def retry_on_conflict(
    attempt: Callable[[int], Awaitable[T]],
    *,
    max_retries: int,
    is_conflict: Callable[[BaseException], bool],
    on_conflict: Optional[ConflictHook] = None,
) -> T:
    """Run ``attempt(1..max_retries)`` until one finishes without a conflict.

    Exceptions rejected by ``is_conflict`` propagate immediately. When every
    attempt conflicts, :class:`RetryExhaustedError` is raised from the last one.
    """
    if isinstance(max_retries, bool) or not isinstance(max_retries, int) or max_retries < 1:
        raise ValueError(f"max_retries must be a positive integer, got {max_retries!r}")

    for number in range(1, max_retries + 1):
        try:
            return await attempt(number)
        except Exception as exc:
            if not is_conflict(exc):
                raise
            if on_conflict is not None:
                on_conflict(number, exc)
            if number == max_retries:
                raise RetryExhaustedError(number, exc) from exc
    raise AssertionError("unreachable")  # pragma: no cover
