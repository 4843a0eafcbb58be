"""Helpers for writing tagged token store logs."""

from __future__ import annotations

import logging
import sys
from typing import Dict

from oauth2_pg_store.logging_setup import get_logger, get_tag_for_module

_LEVEL_MAP: Dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def log_message(msg: str, level: str, tag: str, **kwargs) -> None:
    """
    Log a message to the rotating history log under ``tag``.

    Accepts **kwargs for standard logging arguments like exc_info=True.
    """
    logger = get_logger(tag)

    numeric_level = _LEVEL_MAP.get(str(level).upper())
    if numeric_level is None:
        logger.warning(
            "Received unknown log level '%s'; defaulting to INFO. Message: %s",
            level,
            msg,
        )
        numeric_level = logging.INFO

    logger.log(numeric_level, msg, **kwargs)


def debug(msg: str, tag: str | None = None, **kwargs):
    log_message(msg, level="DEBUG", tag=tag or _caller_tag(), **kwargs)


def info(msg: str, tag: str | None = None, **kwargs):
    log_message(msg, level="INFO", tag=tag or _caller_tag(), **kwargs)


def warn(msg: str, tag: str | None = None, **kwargs):
    log_message(msg, level="WARNING", tag=tag or _caller_tag(), **kwargs)


def error(msg: str, tag: str | None = None, **kwargs):
    log_message(msg, level="ERROR", tag=tag or _caller_tag(), **kwargs)


def _caller_tag() -> str:
    # Two frames up: the wrapper's caller.
    module_name = sys._getframe(2).f_globals.get("__name__", "unknown")
    return get_tag_for_module(module_name)
