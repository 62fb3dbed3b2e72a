"""Logging configuration using loguru.

Local runs get a colorized console; every other environment emits one JSON
object per line so sync runs can be followed by ``sync_id`` in the log
aggregator. Standard library logging (used by the service modules and by
httpx/SQLAlchemy) is routed into loguru.
"""

import json
import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator

from loguru import logger

from pacelab.config import get_settings
from pacelab.core.lifespan import manager


def sink_serializer(message):
    """Write a record as a flat JSON line."""
    record = message.record
    subset = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "logger": record["name"],
        "function": record["function"],
        "line": record["line"],
        "message": record["message"],
    }

    # contextualize()/bind() fields such as sync_id and athlete_id
    for key, value in record["extra"].items():
        if not key.startswith("_"):
            subset[key] = value

    if record["exception"]:
        exc_type, exc_value, _ = record["exception"]
        subset["exception"] = {
            "type": exc_type.__name__ if exc_type else None,
            "value": str(exc_value),
        }

    print(json.dumps(subset, default=str), file=sys.stderr)


class InterceptHandler(logging.Handler):
    """Route standard logging records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find the caller outside of the logging module
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def configure_logging() -> None:
    """Configure loguru for the current environment.

    Removes the default handler, installs the console or JSON sink and
    replaces the standard logging handlers with ``InterceptHandler``.
    """
    settings = get_settings()

    logger.remove()

    if settings.ENVIRONMENT == "local":
        logger.add(
            sys.stderr,
            format=(
                "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
                "<level>{message}</level> | {extra}"
            ),
            level=settings.LOG_LEVEL,
            colorize=True,
        )
    else:
        logger.add(sink_serializer, level=settings.LOG_LEVEL)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


@manager.add
@asynccontextmanager
async def logging_lifespan() -> AsyncIterator[dict]:
    """Log application startup and shutdown."""
    settings = get_settings()

    logger.info(
        "Application starting",
        app_name=settings.APP_NAME,
        environment=settings.ENVIRONMENT,
        log_level=settings.LOG_LEVEL,
    )

    yield {}

    logger.info("Application shutting down")
