from __future__ import annotations

import pytest
from fakeredis import FakeAsyncRedis, FakeRedis, FakeServer

from rediscoord.core.locks_redis import RedisLockManager
from rediscoord.core.transactions import TransactionRunner


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def redis(server: FakeServer) -> FakeAsyncRedis:
    return FakeAsyncRedis(server=server, decode_responses=True)


@pytest.fixture
def other_client(server: FakeServer) -> FakeRedis:
    """Synchronous client on the same server, used to play a concurrent writer."""
    return FakeRedis(server=server, decode_responses=True)


@pytest.fixture
def locks(redis: FakeAsyncRedis) -> RedisLockManager:
    return RedisLockManager(redis)


@pytest.fixture
def runner(redis: FakeAsyncRedis) -> TransactionRunner:
    return TransactionRunner(redis)
