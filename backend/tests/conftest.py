"""
Pytest configuration and shared fixtures.

Environment is pinned before any application module is imported, since
``core.config.settings`` is read once at import time.
"""

import os

os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["LOG_FILE"] = ""
os.environ["GOOGLE_CLIENT_ID"] = "test-client-id"
os.environ["GOOGLE_CLIENT_SECRET"] = "test-client-secret"
os.environ["BRIEFING_TIMEZONE"] = "UTC"
os.environ["CRON_SECRET"] = "cron-secret"
os.environ.pop("BRIEFING_RECIPIENT_OVERRIDE", None)

import time
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from api.deps import get_calendar_client, get_enrichment_client, get_mailer
from core.database import create_tables, get_session, make_session_factory
from core.errors import AuthError
from core.security import create_access_token
from models.meeting import Attendee, Meeting
from services.mailer import EmailDeliveryError

USER_ID = "user_123"
USER_EMAIL = "owner@example.com"
NOW = datetime(2026, 10, 19, 15, 0, tzinfo=timezone.utc)


def make_meeting(
    meeting_id: str,
    starts_in: timedelta,
    *,
    now: datetime = NOW,
    summary: str = "Design review",
    attendees: Optional[List[Attendee]] = None,
    duration: timedelta = timedelta(minutes=30),
) -> Meeting:
    start = now + starts_in
    return Meeting(
        id=meeting_id,
        summary=summary,
        start=start.isoformat(),
        end=(start + duration).isoformat(),
        attendees=attendees or [],
    )


class FakeCalendarClient:
    """Keyed by refresh token; the 'credentials' it hands out are the token itself."""

    def __init__(self) -> None:
        self.meetings_by_token: Dict[str, List[Meeting]] = {}
        self.failing_tokens: set = set()
        self.fetch_error: Optional[Exception] = None
        self.delay: float = 0.0
        self.list_calls: list = []

    def refresh_access_token(self, refresh_token: str):
        if refresh_token in self.failing_tokens:
            raise AuthError("Failed to get access token: invalid_grant")
        return refresh_token

    def list_events(self, creds, time_min, time_max, max_results=None) -> List[Meeting]:
        self.list_calls.append((creds, time_min, time_max, max_results))
        if self.delay:
            time.sleep(self.delay)
        if self.fetch_error is not None:
            raise self.fetch_error
        return list(self.meetings_by_token.get(creds, []))

    def fetch_meetings(self, refresh_token, time_min, time_max, max_results=None) -> List[Meeting]:
        creds = self.refresh_access_token(refresh_token)
        return self.list_events(creds, time_min, time_max, max_results=max_results)


class FakeMailer:
    def __init__(self) -> None:
        self.sent: list = []
        self.fail = False
        # fail every send once this many have gone out
        self.fail_after: Optional[int] = None

    def send(self, to: str, subject: str, html: str) -> str:
        if self.fail or (self.fail_after is not None and len(self.sent) >= self.fail_after):
            raise EmailDeliveryError("Failed to send email: HTTP 500")
        self.sent.append({"to": to, "subject": subject, "html": html})
        return f"msg_{len(self.sent)}"


class FakeEnrichmentClient:
    def __init__(self) -> None:
        self.profile = None
        self.error: Optional[Exception] = None
        self.lookups: list = []

    def lookup(self, email: str):
        self.lookups.append(email)
        if self.error is not None:
            raise self.error
        return self.profile


@pytest_asyncio.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def test_session(test_engine):
    async with make_session_factory(test_engine)() as session:
        yield session


@pytest.fixture
def fake_calendar() -> FakeCalendarClient:
    return FakeCalendarClient()


@pytest.fixture
def fake_mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture
def fake_enrichment() -> FakeEnrichmentClient:
    return FakeEnrichmentClient()


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    token = create_access_token({"sub": USER_ID, "email": USER_EMAIL})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def client(test_session, fake_calendar, fake_mailer, fake_enrichment):
    from main import app

    async def _session_override():
        yield test_session

    app.dependency_overrides[get_session] = _session_override
    app.dependency_overrides[get_calendar_client] = lambda: fake_calendar
    app.dependency_overrides[get_mailer] = lambda: fake_mailer
    app.dependency_overrides[get_enrichment_client] = lambda: fake_enrichment

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
