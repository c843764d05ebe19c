"""
Loguru setup shared by the API process and the Celery worker.

Every module simply does ``from loguru import logger``; each record carries
``extra["component"]`` ("api" or "worker") so both processes can share one
log file.
"""

import logging
import sys

from loguru import logger

from core.config import settings

_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> "
    "| <level>{level: <8}</level> "
    "| {extra[component]: <6} "
    "| <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> "
    "- <level>{message}</level>"
)

# stdlib loggers that are chatty at INFO
_QUIET_LOGGERS = ("googleapiclient.discovery_cache", "urllib3", "httpx")


def configure_logging(component: str = "api") -> None:
    # Uvicorn and Celery install their own handlers first
    logger.remove()
    logger.configure(extra={"component": component})

    logger.add(
        sys.stderr,
        level=settings.LOG_LEVEL,
        diagnose=False,
        backtrace=settings.ENV == "development",
        enqueue=True,  # worker processes fork
        format=_FORMAT,
    )

    if settings.LOG_FILE:
        logger.add(
            settings.LOG_FILE,
            rotation="00:00",
            retention="7 days",
            compression="zip",
            level="DEBUG",
            enqueue=True,
            backtrace=False,
            format=_FORMAT,
        )

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
