from __future__ import annotations

import asyncio
import json
from unittest.mock import MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import WatchError

from rediscoord.core.errors import StoreConnectionError, TransactionConflictError
from rediscoord.core.settings import LockSettings
from rediscoord.core.transactions import TransactionRunner


@pytest.mark.asyncio
async def test_concurrent_increments_both_commit(runner: TransactionRunner, redis):
    await redis.set("counter", 0)

    first, second = await asyncio.gather(
        runner.run_optimistic(["counter"], lambda batch: batch.incr("counter"), 3),
        runner.run_optimistic(["counter"], lambda batch: batch.incr("counter"), 3),
    )

    assert await redis.get("counter") == "2"
    assert sorted(first + second) == [1, 2]


@pytest.mark.asyncio
async def test_results_follow_queue_order(runner: TransactionRunner):
    def build(batch):
        batch.set("a", "1")
        batch.incr("b")
        batch.get("a")
        batch.execute_command("PING")

    assert await runner.run_optimistic(["a"], build) == [True, 1, "1", True]


@pytest.mark.asyncio
async def test_conflict_is_retried_until_keys_settle(runner: TransactionRunner, redis, other_client):
    await redis.set("balance", 10)
    interference = {"remaining": 2}
    conflicts = []

    def build(batch):
        if interference["remaining"]:
            interference["remaining"] -= 1
            other_client.incr("balance")
        batch.incrby("balance", 100)

    results = await runner.run_optimistic(
        ["balance"], build, 5, on_conflict=lambda attempt, exc: conflicts.append(attempt)
    )

    assert conflicts == [1, 2]
    assert results == [112]
    assert await redis.get("balance") == "112"


@pytest.mark.asyncio
async def test_exhausted_retries_raise_conflict_without_partial_writes(
    runner: TransactionRunner, redis, other_client
):
    conflicts = []

    def build(batch):
        other_client.incr("version")
        batch.set("payload", "stale")
        batch.incr("applied")

    with pytest.raises(TransactionConflictError) as excinfo:
        await runner.run_optimistic(
            ["version"], build, 3, on_conflict=lambda attempt, exc: conflicts.append(attempt)
        )

    assert excinfo.value.watched_keys == ["version"]
    assert excinfo.value.attempts == 3
    assert isinstance(excinfo.value.__cause__, WatchError)
    assert conflicts == [1, 2, 3]
    assert await redis.exists("payload", "applied") == 0
    assert await redis.get("version") == "3"


@pytest.mark.asyncio
async def test_build_error_propagates_without_retry(runner: TransactionRunner, redis):
    calls = []

    def build(batch):
        calls.append(1)
        batch.set("half", "done")
        raise KeyError("missing input")

    with pytest.raises(KeyError):
        await runner.run_optimistic(["half"], build, 5)

    assert calls == [1]
    assert await redis.exists("half") == 0


@pytest.mark.asyncio
async def test_empty_batch_commits_trivially(runner: TransactionRunner):
    assert await runner.run_optimistic(["anything"], lambda batch: None) == []
    assert await runner.run_optimistic([], lambda batch: None) == []


@pytest.mark.asyncio
async def test_no_watched_keys_is_plain_atomic_batch(runner: TransactionRunner, redis, other_client):
    def build(batch):
        other_client.set("x", "outside")
        batch.set("x", "inside")

    assert await runner.run_optimistic([], build) == [True]
    assert await redis.get("x") == "inside"


@pytest.mark.asyncio
async def test_run_batch_executes_native_commands(runner: TransactionRunner, redis):
    results = await runner.run_batch([("set", "k1", "v1"), ("GET", "k1"), ("incr", "hits")])

    assert results == [True, "v1", 1]
    assert await redis.get("hits") == "1"


@pytest.mark.asyncio
async def test_get_and_set_swaps_json_value(runner: TransactionRunner, redis):
    previous, stored = await runner.get_and_set("profile", {"name": "ada"})
    assert previous is None
    assert stored is True

    previous, stored = await runner.get_and_set("profile", [1, 2])
    assert previous == {"name": "ada"}
    assert json.loads(await redis.get("profile")) == [1, 2]


@pytest.mark.asyncio
async def test_default_max_retries_come_from_settings(redis, other_client):
    runner = TransactionRunner(redis, settings=LockSettings(max_retries=2))

    def build(batch):
        other_client.incr("hot")
        batch.get("hot")

    with pytest.raises(TransactionConflictError) as excinfo:
        await runner.run_optimistic(["hot"], build)
    assert excinfo.value.attempts == 2


@pytest.mark.asyncio
async def test_invalid_max_retries(runner: TransactionRunner):
    with pytest.raises(ValueError):
        await runner.run_optimistic(["k"], lambda batch: batch.get("k"), 0)


@pytest.mark.asyncio
async def test_connection_loss_is_not_retried():
    pipe = MagicMock()
    pipe.__aenter__.return_value = pipe
    pipe.watch.side_effect = RedisConnectionError("Connection lost")
    redis = MagicMock()
    redis.pipeline.return_value = pipe
    runner = TransactionRunner(redis)

    with pytest.raises(StoreConnectionError) as excinfo:
        await runner.run_optimistic(["k"], lambda batch: batch.get("k"), 5)

    assert excinfo.value.operation == "watch"
    assert redis.pipeline.call_count == 1


@pytest.mark.asyncio
async def test_connection_drop_during_exec_is_not_a_conflict(runner: TransactionRunner, redis, server):
    await redis.set("counter", 0)
    conflicts = []

    def build(batch):
        batch.incr("counter")
        server.connected = False

    with pytest.raises(StoreConnectionError) as excinfo:
        await runner.run_optimistic(
            ["counter"], build, 3, on_conflict=lambda attempt, exc: conflicts.append(attempt)
        )

    assert excinfo.value.operation == "exec"
    assert isinstance(excinfo.value.__cause__, RedisConnectionError)
    assert conflicts == []

    server.connected = True
    assert await redis.get("counter") == "0"
