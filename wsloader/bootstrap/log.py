"""Loguru setup for the loader CLI.

Records emitted through stdlib ``logging`` (httpx, aiohttp, asyncio) are
re-routed into loguru so a single sink shows everything.
"""

from __future__ import annotations

import logging
import sys

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
    "<level>{message}</level>"
)

# Third-party loggers and the floor they are clamped to.
LIBRARY_LEVELS: dict[str, int] = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "aiohttp.access": logging.WARNING,
    "aiohttp.client": logging.WARNING,
    "asyncio": logging.INFO,
}


class _InterceptHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging's own frames so the record points at the caller.
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "INFO", *, log_file: str | None = None) -> None:
    """Make loguru the only logging backend.

    Console output goes to stderr so stdout stays free for the IDE URL.  When
    ``log_file`` is given, a DEBUG-level rotating file sink is added as well.
    """
    level = level.upper()

    logger.remove()
    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT)
    if log_file:
        logger.add(log_file, level="DEBUG", rotation="10 MB", retention=3, enqueue=True)

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)
    for name, floor in LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(floor)

    logger.debug("Logging initialised (level={}, file={})", level, log_file)
