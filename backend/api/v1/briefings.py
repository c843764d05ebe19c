"""
Briefing endpoints: on-demand preview send and the external scheduled trigger.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from api.deps import get_calendar_client, get_mailer
from core.concurrency import run_blocking
from core.database import get_session
from core.errors import ConfigurationError
from core.security import get_current_user, verify_cron_secret
from models.meeting import Meeting
from models.user import CurrentUser
from services.briefing_dispatcher import BriefingDispatcher
from services.briefing_email import render_briefing
from services.briefing_ledger import BriefingLedger
from services.calendar_client import GoogleCalendarClient
from services.mailer import ResendMailer, resolve_recipient
from services.token_store import TokenStore

router = APIRouter(tags=["Briefings"])


class SendBriefingRequest(BaseModel):
    meeting: Optional[Meeting] = None


@router.post("/send-briefing")
async def send_briefing(
    body: SendBriefingRequest,
    current_user: CurrentUser = Depends(get_current_user),
    mailer: ResendMailer = Depends(get_mailer),
) -> dict:
    """
    Email a briefing for the posted meeting right now. Preview/test path: the
    sent-briefing ledger is neither consulted nor written.
    """
    if body.meeting is None:
        raise HTTPException(status_code=400, detail="Meeting data required")

    recipient = resolve_recipient(current_user.email)
    if not recipient:
        raise HTTPException(status_code=400, detail="No email found")

    briefing = render_briefing(body.meeting)
    try:
        message_id = await run_blocking(mailer.send, recipient, briefing.subject, briefing.html)
    except ConfigurationError as exc:
        raise HTTPException(status_code=500, detail=exc.message)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Send briefing failed for user {}: {}", current_user.id, exc)
        raise HTTPException(status_code=500, detail="Failed to send email")

    return {"success": True, "messageId": message_id}


@router.post("/cron/briefings", dependencies=[Depends(verify_cron_secret)])
async def run_briefings(
    session: AsyncSession = Depends(get_session),
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
    mailer: ResendMailer = Depends(get_mailer),
) -> dict:
    """One dispatcher cycle, for schedulers that call in over HTTP."""
    dispatcher = BriefingDispatcher(TokenStore(session), BriefingLedger(session), calendar, mailer)
    summary = await dispatcher.run_once()
    return summary.to_dict()
