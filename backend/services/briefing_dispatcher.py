"""
Scheduled briefing dispatcher.

One ``run_once`` call is a full polling cycle: for every user with a stored
Google token, fetch the next ``BRIEFING_LOOKAHEAD_MINUTES`` of events, pick
the ones starting within the send window, and email each of them at most
once. A failing user is recorded in ``errors`` and the cycle moves on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Callable, Dict, List, Optional, Protocol

from google.oauth2.credentials import Credentials
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from core.concurrency import run_blocking
from core.config import settings
from core.errors import NotFoundError
from models.meeting import Meeting
from services.briefing_email import display_timezone, render_briefing
from services.briefing_ledger import BriefingLedger
from services.calendar_client import GoogleCalendarClient
from services.mailer import ResendMailer, resolve_recipient
from services.token_store import ConnectedAccount, TokenStore


class CalendarClient(Protocol):
    def refresh_access_token(self, refresh_token: str) -> Credentials: ...

    def list_events(self, creds: Credentials, time_min: datetime, time_max: datetime) -> List[Meeting]: ...


class Mailer(Protocol):
    def send(self, to: str, subject: str, html: str) -> str: ...


@dataclass
class DispatchSummary:
    processed: int = 0
    emails_sent: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        return f"Processed {self.processed} users, sent {self.emails_sent} briefings"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "processed": self.processed,
            "emailsSent": self.emails_sent,
            "errors": self.errors,
        }


def minutes_until(start: datetime, now: datetime) -> float:
    return (start - now).total_seconds() / 60


def is_send_eligible(
    minutes_until_start: float,
    window_min: Optional[float] = None,
    window_max: Optional[float] = None,
) -> bool:
    """Both window edges are inclusive."""
    low = settings.BRIEFING_WINDOW_MIN_MINUTES if window_min is None else window_min
    high = settings.BRIEFING_WINDOW_MAX_MINUTES if window_max is None else window_max
    return low <= minutes_until_start <= high


class BriefingDispatcher:
    def __init__(
        self,
        tokens: TokenStore,
        ledger: BriefingLedger,
        calendar: CalendarClient,
        mailer: Mailer,
        *,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        lookahead: Optional[timedelta] = None,
        display_tz: Optional[tzinfo] = None,
        call_timeout: Optional[float] = None,
    ) -> None:
        self.tokens = tokens
        self.ledger = ledger
        self.calendar = calendar
        self.mailer = mailer
        self.clock = clock
        self.lookahead = lookahead or timedelta(minutes=settings.BRIEFING_LOOKAHEAD_MINUTES)
        self.display_tz = display_tz or display_timezone()
        self.call_timeout = call_timeout

    async def run_once(self, now: Optional[datetime] = None) -> DispatchSummary:
        now = now or self.clock()
        summary = DispatchSummary()

        accounts = await self.tokens.list_connected()
        if not accounts:
            logger.info("No users with connected calendars")
            return summary

        for account in accounts:
            try:
                await self._process_account(account, now, summary)
            except Exception as exc:  # noqa: BLE001
                reason = str(exc) or exc.__class__.__name__
                logger.warning("Briefing run failed for user {}: {}", account.user_id, reason)
                summary.errors.append(f"User {account.user_id}: {reason}")
                continue
            summary.processed += 1

        logger.info("{} ({} errors)", summary.message, len(summary.errors))
        return summary

    async def _process_account(self, account: ConnectedAccount, now: datetime, summary: DispatchSummary) -> None:
        """Each delivered briefing is counted as soon as it is sent, even if a later one fails."""
        creds = await run_blocking(
            self.calendar.refresh_access_token, account.refresh_token, timeout=self.call_timeout
        )
        meetings = await run_blocking(
            self.calendar.list_events, creds, now, now + self.lookahead, timeout=self.call_timeout
        )

        for meeting in meetings:
            if not is_send_eligible(minutes_until(meeting.start_at(), now)):
                continue
            if await self.ledger.has_sent(account.user_id, meeting.id):
                continue
            if await self._send(account, meeting, now):
                summary.emails_sent += 1

    async def _send(self, account: ConnectedAccount, meeting: Meeting, now: datetime) -> bool:
        recipient = resolve_recipient(account.email)
        if not recipient:
            raise NotFoundError("No recipient email on file")

        # Claim first: an overlapping run that loses the insert skips the send.
        if not await self.ledger.mark_sent(account.user_id, meeting.id):
            return False

        briefing = render_briefing(meeting, now=now, tz=self.display_tz)
        try:
            await run_blocking(
                self.mailer.send, recipient, briefing.subject, briefing.html, timeout=self.call_timeout
            )
        except Exception:
            await self.ledger.release(account.user_id, meeting.id)
            raise

        logger.info("Sent briefing for meeting {} to user {}", meeting.id, account.user_id)
        return True


def build_dispatcher(session: AsyncSession) -> BriefingDispatcher:
    """Production wiring: settings-backed Google and Resend clients."""
    return BriefingDispatcher(
        TokenStore(session),
        BriefingLedger(session),
        GoogleCalendarClient.from_settings(),
        ResendMailer.from_settings(),
    )
