"""
Google Calendar API endpoints.
"""

from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from api.deps import get_calendar_client
from core.concurrency import run_blocking
from core.config import settings
from core.database import get_session
from core.security import get_current_user
from models.user import CurrentUser
from services.calendar_client import GoogleCalendarClient
from services.token_store import TokenStore

router = APIRouter(prefix="/calendar", tags=["calendar"])


@router.get("/events")
async def get_calendar_events(
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
) -> dict:
    """
    Upcoming events (next EVENTS_LOOKAHEAD_HOURS) from the user's primary calendar.
    """
    account = await TokenStore(session).get_account(current_user.id)
    if account is None:
        raise HTTPException(status_code=400, detail="Google Calendar not connected")

    now = datetime.now(timezone.utc)
    time_max = now + timedelta(hours=settings.EVENTS_LOOKAHEAD_HOURS)

    try:
        meetings = await run_blocking(calendar.fetch_meetings, account.refresh_token, now, time_max)
    except Exception as e:  # noqa: BLE001
        logger.exception("Error fetching calendar events for user {}: {}", current_user.id, e)
        raise HTTPException(status_code=500, detail="Failed to fetch calendar events")

    logger.info("Retrieved {} calendar events for user {}", len(meetings), current_user.id)
    return {"events": [m.model_dump(by_alias=True) for m in meetings]}
