"""Command line access to locks held in the shared store."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from rediscoord.core.client import connect
from rediscoord.core.errors import CoordError, StoreConnectionError
from rediscoord.core.locks_redis import RedisLockManager
from rediscoord.core.settings import CoordSettings
from rediscoord.utils.logging import get_logger


logger = get_logger("LockCLI")

EXIT_OK = 0
EXIT_NOT_HELD = 1
EXIT_USAGE = 2
EXIT_STORE_ERROR = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rediscoord", description="Inspect and manage distributed locks.")
    parser.add_argument("--config", type=Path, default=None, help="Path to settings YAML (defaults to env vars)")
    sub = parser.add_subparsers(dest="command", required=True)

    acquire = sub.add_parser("acquire", help="Take a lock if it is free")
    acquire.add_argument("key")
    acquire.add_argument("--token", default=None)
    acquire.add_argument("--ttl-ms", type=int, default=None)

    release = sub.add_parser("release", help="Release a lock owned by TOKEN")
    release.add_argument("key")
    release.add_argument("token")

    extend = sub.add_parser("extend", help="Reset the expiry of a lock owned by TOKEN")
    extend.add_argument("key")
    extend.add_argument("token")
    extend.add_argument("ttl_ms", type=int)

    status = sub.add_parser("status", help="Show whether a lock is held and by which token")
    status.add_argument("key")

    wait = sub.add_parser("wait", help="Poll until the lock is acquired or the timeout elapses")
    wait.add_argument("key")
    wait.add_argument("--token", default=None)
    wait.add_argument("--ttl-ms", type=int, default=None)
    wait.add_argument("--poll-ms", type=int, default=None)
    wait.add_argument("--timeout-ms", type=int, default=None)
    return parser


def _load_settings(path: Optional[Path]) -> CoordSettings:
    if path is not None:
        return CoordSettings.from_file(path)
    return CoordSettings.from_env()


async def _execute(args: argparse.Namespace, manager: RedisLockManager) -> Dict[str, Any]:
    if args.command == "acquire":
        token = args.token or str(uuid.uuid4())
        ok = await manager.acquire(args.key, token, args.ttl_ms)
        return {"key": args.key, "acquired": ok, "token": token if ok else None}
    if args.command == "release":
        return {"key": args.key, "released": await manager.release(args.key, args.token)}
    if args.command == "extend":
        return {"key": args.key, "extended": await manager.extend(args.key, args.token, args.ttl_ms)}
    if args.command == "status":
        owner = await manager.current_owner_token(args.key)
        return {"key": args.key, "locked": owner is not None, "token": owner}
    if args.command == "wait":
        token = args.token or str(uuid.uuid4())
        ok = await manager.wait_for_lock(args.key, token, args.ttl_ms, args.poll_ms, args.timeout_ms)
        return {"key": args.key, "acquired": ok, "token": token if ok else None}
    raise ValueError(f"Unknown command {args.command!r}")


async def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = _load_settings(args.config)
    except (ValueError, OSError, yaml.YAMLError) as exc:
        logger.error("Cannot load settings: %s", exc)
        print(json.dumps({"error": str(exc)}))
        return EXIT_USAGE
    try:
        redis = await connect(settings.redis)
    except StoreConnectionError as exc:
        print(json.dumps({"error": str(exc)}))
        return EXIT_STORE_ERROR

    manager = RedisLockManager(redis, settings=settings.locks)
    try:
        result = await _execute(args, manager)
    except StoreConnectionError as exc:
        print(json.dumps({"error": str(exc)}))
        return EXIT_STORE_ERROR
    except CoordError as exc:
        logger.error("%s", exc)
        print(json.dumps({"error": str(exc)}))
        return EXIT_USAGE
    finally:
        await redis.aclose()

    print(json.dumps(result))
    outcome = [value for name, value in result.items() if name in ("acquired", "released", "extended", "locked")]
    return EXIT_OK if all(outcome) else EXIT_NOT_HELD


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
