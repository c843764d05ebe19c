"""
Google Calendar adapter: refresh-token exchange plus a normalised events list.

Both calls are blocking (google-auth / googleapiclient); async callers go
through ``core.concurrency.run_blocking``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from loguru import logger

from core.config import settings
from core.errors import AuthError, ConfigurationError, FetchError
from models.meeting import Attendee, Meeting, UNTITLED_MEETING

# events are listed, never written
CALENDAR_SCOPES = [
    "https://www.googleapis.com/auth/calendar.readonly",
    "https://www.googleapis.com/auth/calendar.events.readonly",
]


def to_rfc3339(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def normalize_event(event: Dict[str, Any]) -> Meeting:
    """Map a raw Calendar API event onto the canonical meeting shape."""
    start = event.get("start", {})
    end = event.get("end", {})
    attendees = [
        Attendee(
            email=a.get("email", ""),
            display_name=a.get("displayName") or None,
            response_status=a.get("responseStatus") or "needsAction",
        )
        for a in event.get("attendees") or []
    ]
    return Meeting(
        id=event["id"],
        summary=event.get("summary") or UNTITLED_MEETING,
        # Handle both datetime and date-only (all-day) events
        start=start.get("dateTime") or start.get("date"),
        end=end.get("dateTime") or end.get("date"),
        attendees=attendees,
    )


class GoogleCalendarClient:
    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        token_uri: str = "https://oauth2.googleapis.com/token",
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_uri = token_uri

    @classmethod
    def from_settings(cls) -> "GoogleCalendarClient":
        return cls(settings.GOOGLE_CLIENT_ID, settings.GOOGLE_CLIENT_SECRET, settings.GOOGLE_TOKEN_URI)

    def refresh_access_token(self, refresh_token: str) -> Credentials:
        """Exchange a stored refresh token for credentials holding a fresh access token."""
        if not self.client_id or not self.client_secret:
            raise ConfigurationError("Missing Google OAuth credentials")

        creds = Credentials(
            token=None,
            refresh_token=refresh_token,
            token_uri=self.token_uri,
            client_id=self.client_id,
            client_secret=self.client_secret,
            scopes=CALENDAR_SCOPES,
        )
        try:
            creds.refresh(Request())
        except RefreshError as exc:
            raise AuthError(f"Failed to get access token: {exc}") from exc

        if not creds.token:
            raise AuthError("Failed to get access token")
        return creds

    def list_events(
        self,
        creds: Credentials,
        time_min: datetime,
        time_max: datetime,
        max_results: Optional[int] = None,
    ) -> List[Meeting]:
        """
        Events on the primary calendar overlapping [time_min, time_max], recurring
        series expanded into single instances and ordered by start time.
        """
        service = build("calendar", "v3", credentials=creds, cache_discovery=False)
        params: Dict[str, Any] = {
            "calendarId": "primary",
            "timeMin": to_rfc3339(time_min),
            "timeMax": to_rfc3339(time_max),
            "singleEvents": True,
            "orderBy": "startTime",
        }
        if max_results:
            params["maxResults"] = max_results

        meetings: List[Meeting] = []
        page_token: Optional[str] = None
        try:
            while True:
                response = service.events().list(pageToken=page_token, **params).execute()
                for event in response.get("items", []):
                    if event.get("status") == "cancelled":
                        continue
                    meetings.append(normalize_event(event))

                page_token = response.get("nextPageToken")
                if not page_token:
                    break
        except HttpError as exc:
            logger.error("Google Calendar API error: {}", exc)
            raise FetchError("Failed to fetch calendar events") from exc

        return meetings

    def fetch_meetings(
        self,
        refresh_token: str,
        time_min: datetime,
        time_max: datetime,
        max_results: Optional[int] = None,
    ) -> List[Meeting]:
        creds = self.refresh_access_token(refresh_token)
        return self.list_events(creds, time_min, time_max, max_results=max_results)
