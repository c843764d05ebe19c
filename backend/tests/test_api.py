"""Tests for the HTTP API, with Google, Resend and PDL replaced by fakes."""

from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from core.errors import FetchError, RateLimitError
from models.briefing import SentBriefing
from models.contact import Contact
from models.feedback import Feedback
from models.meeting import Attendee
from services import google_oauth
from services.enrichment import RATE_LIMIT_MESSAGE, PersonProfile
from services.google_oauth import ExchangedTokens
from services.token_store import TokenStore

from conftest import USER_EMAIL, USER_ID, make_meeting

DASHBOARD = "http://localhost:3000/dashboard"


async def _connect(session: AsyncSession, refresh_token: str = "rt-owner") -> None:
    await TokenStore(session).upsert(USER_ID, refresh_token=refresh_token, email=USER_EMAIL)


class TestAuth:
    @pytest.mark.asyncio
    async def test_missing_session_is_rejected(self, client: AsyncClient):
        response = await client.get("/api/v1/google/status")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_invalid_token_is_rejected(self, client: AsyncClient):
        response = await client.get(
            "/api/v1/google/status", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.json() == {"status": "ok"}


class TestGoogleConnection:
    @pytest.mark.asyncio
    async def test_consent_redirect(self, client: AsyncClient, auth_headers):
        response = await client.get("/api/v1/google", headers=auth_headers)

        assert response.status_code == 302
        location = urlparse(response.headers["location"])
        query = parse_qs(location.query)
        assert location.netloc == "accounts.google.com"
        assert query["state"] == [USER_ID]
        assert query["access_type"] == ["offline"]
        assert query["prompt"] == ["consent"]
        assert query["redirect_uri"] == ["http://localhost:8000/api/v1/google/callback"]
        assert "calendar.readonly" in query["scope"][0]

    @pytest.mark.asyncio
    async def test_status(self, client: AsyncClient, auth_headers, test_session):
        response = await client.get("/api/v1/google/status", headers=auth_headers)
        assert response.json() == {"connected": False}

        await _connect(test_session)

        response = await client.get("/api/v1/google/status", headers=auth_headers)
        assert response.json() == {"connected": True}

    @pytest.mark.asyncio
    async def test_callback_stores_token(
        self, client: AsyncClient, auth_headers, test_session, monkeypatch
    ):
        monkeypatch.setattr(
            google_oauth, "exchange_code", lambda code, state: ExchangedTokens("rt-new", "at-new")
        )

        response = await client.get(
            "/api/v1/google/callback",
            params={"code": "auth-code", "state": USER_ID},
            headers=auth_headers,
        )

        assert response.status_code == 302
        assert response.headers["location"] == f"{DASHBOARD}?connected=1"
        account = await TokenStore(test_session).get_account(USER_ID)
        assert account.refresh_token == "rt-new"
        assert account.email == USER_EMAIL
        # stored encrypted
        assert account.refresh_token_enc != "rt-new"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "params, exchanged, error",
        [
            ({"state": USER_ID}, None, "missing_code"),
            ({"code": "auth-code", "state": "someone-else"}, None, "invalid_state"),
            ({"code": "auth-code", "state": USER_ID}, ExchangedTokens(None, "at-new"), "no_refresh_token"),
        ],
    )
    async def test_callback_errors(
        self, client: AsyncClient, auth_headers, test_session, monkeypatch, params, exchanged, error
    ):
        monkeypatch.setattr(google_oauth, "exchange_code", lambda code, state: exchanged)

        response = await client.get("/api/v1/google/callback", params=params, headers=auth_headers)

        assert response.status_code == 302
        assert response.headers["location"] == f"{DASHBOARD}?error={error}"
        assert not await TokenStore(test_session).is_connected(USER_ID)

    @pytest.mark.asyncio
    async def test_callback_exchange_failure(self, client: AsyncClient, auth_headers, monkeypatch):
        def _boom(code, state):
            raise ValueError("invalid_grant")

        monkeypatch.setattr(google_oauth, "exchange_code", _boom)

        response = await client.get(
            "/api/v1/google/callback",
            params={"code": "auth-code", "state": USER_ID},
            headers=auth_headers,
        )

        assert response.headers["location"] == f"{DASHBOARD}?error=exchange_failed"


class TestCalendarEvents:
    @pytest.mark.asyncio
    async def test_not_connected(self, client: AsyncClient, auth_headers):
        response = await client.get("/api/v1/calendar/events", headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "Google Calendar not connected"

    @pytest.mark.asyncio
    async def test_lists_events(self, client: AsyncClient, auth_headers, test_session, fake_calendar):
        await _connect(test_session)
        fake_calendar.meetings_by_token["rt-owner"] = [
            make_meeting(
                "evt-1",
                timedelta(hours=2),
                attendees=[Attendee(email="alice@acme.com", displayName="Alice")],
            )
        ]

        response = await client.get("/api/v1/calendar/events", headers=auth_headers)

        assert response.status_code == 200
        events = response.json()["events"]
        assert len(events) == 1
        assert events[0]["id"] == "evt-1"
        assert events[0]["summary"] == "Design review"
        assert events[0]["attendees"][0]["displayName"] == "Alice"
        _, time_min, time_max, _ = fake_calendar.list_calls[0]
        assert time_max - time_min == timedelta(hours=24)

    @pytest.mark.asyncio
    async def test_upstream_failure(self, client: AsyncClient, auth_headers, test_session, fake_calendar):
        await _connect(test_session)
        fake_calendar.fetch_error = FetchError("Failed to fetch calendar events")

        response = await client.get("/api/v1/calendar/events", headers=auth_headers)

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to fetch calendar events"


class TestSendBriefing:
    @pytest.mark.asyncio
    async def test_sends_to_session_email(
        self, client: AsyncClient, auth_headers, test_session, fake_mailer
    ):
        meeting = make_meeting("evt-1", timedelta(hours=1), now=datetime.now(timezone.utc))

        response = await client.post(
            "/api/v1/send-briefing",
            json={"meeting": meeting.model_dump(by_alias=True)},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "messageId": "msg_1"}
        assert fake_mailer.sent[0]["to"] == USER_EMAIL
        assert fake_mailer.sent[0]["subject"].startswith("Briefing: Design review ")
        # preview sends bypass the ledger
        result = await test_session.execute(select(SentBriefing))
        assert result.scalars().all() == []

    @pytest.mark.asyncio
    async def test_meeting_required(self, client: AsyncClient, auth_headers):
        response = await client.post("/api/v1/send-briefing", json={}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "Meeting data required"

    @pytest.mark.asyncio
    async def test_malformed_meeting_times(self, client: AsyncClient, auth_headers, fake_mailer):
        response = await client.post(
            "/api/v1/send-briefing",
            json={"meeting": {"id": "x", "summary": "s", "start": "not-a-date", "end": "nope"}},
            headers=auth_headers,
        )

        assert response.status_code == 422
        bad_fields = {tuple(error["loc"])[-1] for error in response.json()["detail"]}
        assert bad_fields == {"start", "end"}
        assert fake_mailer.sent == []

    @pytest.mark.asyncio
    async def test_mailer_failure(self, client: AsyncClient, auth_headers, fake_mailer):
        fake_mailer.fail = True
        meeting = make_meeting("evt-1", timedelta(hours=1))

        response = await client.post(
            "/api/v1/send-briefing",
            json={"meeting": meeting.model_dump(by_alias=True)},
            headers=auth_headers,
        )

        assert response.status_code == 500


class TestCronTrigger:
    @pytest.mark.asyncio
    async def test_requires_secret(self, client: AsyncClient):
        response = await client.post("/api/v1/cron/briefings")
        assert response.status_code == 403

        response = await client.post("/api/v1/cron/briefings", headers={"X-Cron-Secret": "wrong"})
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_runs_one_cycle(self, client: AsyncClient, test_session, fake_calendar, fake_mailer):
        await _connect(test_session)
        fake_calendar.meetings_by_token["rt-owner"] = [
            make_meeting("evt-1", timedelta(minutes=5), now=datetime.now(timezone.utc))
        ]

        response = await client.post("/api/v1/cron/briefings", headers={"X-Cron-Secret": "cron-secret"})

        assert response.status_code == 200
        assert response.json() == {
            "message": "Processed 1 users, sent 1 briefings",
            "processed": 1,
            "emailsSent": 1,
            "errors": [],
        }
        assert fake_mailer.sent[0]["to"] == USER_EMAIL

        again = await client.post("/api/v1/cron/briefings", headers={"X-Cron-Secret": "cron-secret"})
        assert again.json()["emailsSent"] == 0
        assert len(fake_mailer.sent) == 1


class TestContacts:
    @pytest.mark.asyncio
    async def test_import_requires_connection(self, client: AsyncClient, auth_headers):
        response = await client.post("/api/v1/contacts/import", headers=auth_headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_import_and_list(self, client: AsyncClient, auth_headers, test_session, fake_calendar):
        await _connect(test_session)
        now = datetime.now(timezone.utc)
        fake_calendar.meetings_by_token["rt-owner"] = [
            make_meeting(
                "evt-1",
                -timedelta(days=20),
                now=now,
                attendees=[
                    Attendee(email=USER_EMAIL),
                    Attendee(email="zoe@globex.com", displayName="Zoe Founder"),
                    Attendee(email="room@resource.calendar.google.com"),
                ],
            ),
            make_meeting(
                "evt-2",
                -timedelta(days=2),
                now=now,
                attendees=[Attendee(email="alice@acme.com", displayName="Alice CEO of Acme")],
            ),
        ]

        response = await client.post("/api/v1/contacts/import", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Imported 2 contacts",
            "totalEvents": 2,
            "uniqueContacts": 2,
        }

        listing = (await client.get("/api/v1/contacts", headers=auth_headers)).json()
        assert [c["email"] for c in listing["contacts"]] == ["alice@acme.com", "zoe@globex.com"]
        assert listing["companies"] == ["Acme", "Globex"]
        assert listing["stats"]["total"] == 2
        assert len(listing["stats"]["recent"]) == 2

        by_company = await client.get(
            "/api/v1/contacts", params={"filter": "company", "company": "glob"}, headers=auth_headers
        )
        assert [c["email"] for c in by_company.json()["contacts"]] == ["zoe@globex.com"]

        searched = await client.get("/api/v1/contacts", params={"search": "alice"}, headers=auth_headers)
        assert [c["title"] for c in searched.json()["contacts"]] == ["CEO"]

    @pytest.mark.asyncio
    async def test_contacts_are_per_user(self, client: AsyncClient, auth_headers, test_session):
        test_session.add(Contact(user_id="someone-else", email="x@acme.com", company="Acme"))
        await test_session.commit()

        listing = (await client.get("/api/v1/contacts", headers=auth_headers)).json()

        assert listing["contacts"] == []
        assert listing["companies"] == []
        assert listing["stats"]["total"] == 0


class TestEnrich:
    async def _contact(self, session: AsyncSession, **fields) -> Contact:
        contact = Contact(user_id=USER_ID, email="alice@acme.com", name="Alice", company="Acme", **fields)
        session.add(contact)
        await session.commit()
        await session.refresh(contact)
        return contact

    @pytest.mark.asyncio
    async def test_contact_id_required(self, client: AsyncClient, auth_headers):
        response = await client.post("/api/v1/contacts/enrich", json={}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "contactId is required"

    @pytest.mark.asyncio
    async def test_unknown_contact(self, client: AsyncClient, auth_headers):
        response = await client.post("/api/v1/contacts/enrich", json={"contactId": 999}, headers=auth_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_enriches_once(self, client: AsyncClient, auth_headers, test_session, fake_enrichment):
        contact = await self._contact(test_session)
        fake_enrichment.profile = PersonProfile(
            full_name="Alice Smith",
            job_title="chief executive officer",
            job_company_name=None,
            linkedin_url="linkedin.com/in/alicesmith",
        )

        response = await client.post(
            "/api/v1/contacts/enrich", json={"contactId": contact.id}, headers=auth_headers
        )

        body = response.json()
        assert response.status_code == 200
        assert body["message"] == "Contact enriched successfully"
        assert body["contact"]["name"] == "Alice Smith"
        assert body["contact"]["title"] == "chief executive officer"
        assert body["contact"]["company"] == "Acme"
        assert body["contact"]["linkedin_url"] == "linkedin.com/in/alicesmith"
        assert body["contact"]["enriched"] is True

        again = await client.post(
            "/api/v1/contacts/enrich", json={"contactId": contact.id}, headers=auth_headers
        )
        assert again.json()["message"] == "Contact already enriched"
        assert fake_enrichment.lookups == ["alice@acme.com"]

    @pytest.mark.asyncio
    async def test_provider_miss_marks_enriched(
        self, client: AsyncClient, auth_headers, test_session, fake_enrichment
    ):
        contact = await self._contact(test_session)

        response = await client.post(
            "/api/v1/contacts/enrich", json={"contactId": contact.id}, headers=auth_headers
        )

        body = response.json()
        assert body["message"] == "No enrichment data found for this contact"
        assert body["contact"]["enriched"] is True
        assert body["contact"]["name"] == "Alice"

    @pytest.mark.asyncio
    async def test_rate_limited(self, client: AsyncClient, auth_headers, test_session, fake_enrichment):
        contact = await self._contact(test_session)
        fake_enrichment.error = RateLimitError(RATE_LIMIT_MESSAGE)

        response = await client.post(
            "/api/v1/contacts/enrich", json={"contactId": contact.id}, headers=auth_headers
        )

        assert response.status_code == 429
        assert response.json()["detail"] == RATE_LIMIT_MESSAGE
        await test_session.refresh(contact)
        assert contact.enriched is False


class TestFeedback:
    @pytest.mark.asyncio
    async def test_invalid_rating(self, client: AsyncClient, auth_headers):
        response = await client.post("/api/v1/feedback", json={"rating": "meh"}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "Rating must be 'thumbs_up' or 'thumbs_down'"

    @pytest.mark.asyncio
    async def test_records_feedback(self, client: AsyncClient, auth_headers, test_session):
        response = await client.post(
            "/api/v1/feedback",
            json={"rating": "thumbs_up", "message": "Handy before standup"},
            headers=auth_headers,
        )

        assert response.json() == {"success": True}
        rows = (await test_session.execute(select(Feedback))).scalars().all()
        assert [(r.user_id, r.rating, r.message) for r in rows] == [
            (USER_ID, "thumbs_up", "Handy before standup")
        ]
