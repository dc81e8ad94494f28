"""
Loguru configuration for SafePath.

One sink for the whole process: a colourised console line for operators,
or one serialized JSON record per line for log shippers. Standard-library
loggers (uvicorn, aiohttp, asyncio) are redirected into the same sink.
Every record carries `name` and `request_id` extras; the HTTP layer binds
the request id with `with_context` for the duration of a request.
"""

from __future__ import annotations
import logging
import sys
from loguru import logger

STDLIB_LOGGERS = ("uvicorn", "uvicorn.access", "aiohttp", "asyncio")

DEFAULT_EXTRA = {"name": "safepath", "request_id": "-"}

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level:<7}</level> | "
    "<cyan>{extra[name]}</cyan> | "
    "<magenta>{extra[request_id]}</magenta> | "
    "<level>{message}</level>"
)


class InterceptHandler(logging.Handler):
    """Forwards stdlib log records to loguru at the matching level."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(depth=6, exception=record.exc_info).bind(name=record.name).log(level, record.getMessage())


def _redirect_stdlib() -> None:
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in STDLIB_LOGGERS:
        stdlib_logger = logging.getLogger(name)
        stdlib_logger.handlers = [InterceptHandler()]
        stdlib_logger.propagate = False


def setup_logging(log_level: str = "INFO", json_lines: bool = False) -> None:
    """
    Replaces all loguru sinks with the SafePath sink.

    Args:
        log_level: minimum level name
        json_lines: emit serialized JSON records on stdout instead of console text
    """
    logger.remove()
    logger.configure(extra=dict(DEFAULT_EXTRA))
    if json_lines:
        logger.add(sys.stdout, serialize=True, level=log_level.upper(), enqueue=False)
    else:
        logger.add(
            sink=lambda m: print(m, end=""),
            format=CONSOLE_FORMAT,
            colorize=True,
            backtrace=True,
            diagnose=False,
            level=log_level.upper(),
            enqueue=False,
        )
    _redirect_stdlib()


def get_logger(name: str = "safepath", **ctx):
    return logger.bind(name=name, **ctx)


def with_context(**ctx):
    """Context manager adding extras to every record logged inside the block."""
    return logger.contextualize(**ctx)
