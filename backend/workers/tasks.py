"""
Celery app, beat schedule and the briefing task.

Run worker + beat locally after installing Redis:
    celery -A workers.tasks worker --beat --loglevel=info
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict

from celery import Celery
from loguru import logger

from core.config import settings
from core.database import make_engine, make_session_factory
from core.logging import configure_logging
from services.briefing_dispatcher import build_dispatcher

configure_logging("worker")

celery_app = Celery(
    "premeet",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    beat_schedule={
        "send-meeting-briefings": {
            "task": "send_meeting_briefings",
            "schedule": float(settings.BRIEFING_INTERVAL_SECONDS),
            # drop a cycle still queued when the next one is due
            "options": {"expires": float(settings.BRIEFING_INTERVAL_SECONDS)},
        },
    },
)


async def run_briefing_cycle() -> Dict[str, Any]:
    engine = make_engine(pooled=False)
    try:
        async with make_session_factory(engine)() as session:
            summary = await build_dispatcher(session).run_once()
    finally:
        await engine.dispose()
    return summary.to_dict()


@celery_app.task(name="send_meeting_briefings")
def send_meeting_briefings() -> Dict[str, Any]:
    """Beat-driven polling cycle; see services.briefing_dispatcher."""
    result = asyncio.run(run_briefing_cycle())
    logger.info("[Celery] {}", result["message"])
    for error in result["errors"]:
        logger.warning("[Celery] {}", error)
    return result
