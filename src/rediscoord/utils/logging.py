"""Logging helpers with consistent formatting."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from rediscoord.utils.env import get_bool_env, get_env


def _level_from_env(default: int) -> int:
    name = get_env("REDISCOORD_LOG_LEVEL")
    if name is None:
        return default
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else default


def get_logger(name: str, level: int = logging.INFO, *, rich: Optional[bool] = None) -> logging.Logger:
    """Configure and return a logger under the ``rediscoord`` namespace."""
    if not name.startswith("rediscoord"):
        name = f"rediscoord.{name}"
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    level = _level_from_env(level)
    logger.setLevel(level)
    if rich is None:
        rich = get_bool_env("REDISCOORD_LOG_RICH", default=True)

    if rich:
        handler: logging.Handler = RichHandler(
            level=level,
            console=Console(stderr=True),
            markup=False,
            rich_tracebacks=True,
            tracebacks_show_locals=False,
            show_time=True,
            show_path=False,
        )
        formatter = logging.Formatter("%(name)s: %(message)s")
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(level)
        formatter = logging.Formatter(
            "%(asctime)s %(name)s %(levelname)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    handler.setFormatter(formatter)

    logger.addHandler(handler)
    logger.propagate = False
    return logger
