"""
Canonical meeting shape shared by the calendar adapter, the renderer, the
dispatcher and the contacts importer. Never persisted.
"""

from __future__ import annotations

from datetime import datetime, tzinfo, timezone
from typing import List, Optional

from dateutil import parser as dateparse
from pydantic import BaseModel, ConfigDict, Field, field_validator

UNTITLED_MEETING = "(No title)"


class Attendee(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    email: str
    display_name: Optional[str] = Field(default=None, alias="displayName")
    response_status: str = Field(default="needsAction", alias="responseStatus")

    @property
    def label(self) -> str:
        return self.display_name or self.email


class Meeting(BaseModel):
    """
    ``start``/``end`` keep the provider's string: an RFC 3339 timestamp for
    timed events, a bare ``YYYY-MM-DD`` for all-day ones.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    summary: str = UNTITLED_MEETING
    start: str
    end: str
    attendees: List[Attendee] = Field(default_factory=list)

    @field_validator("start", "end")
    @classmethod
    def _check_timestamp(cls, value: str) -> str:
        try:
            parse_event_time(value)
        except (ValueError, OverflowError) as exc:
            raise ValueError(f"not an RFC 3339 timestamp or YYYY-MM-DD date: {value!r}") from exc
        return value

    def start_at(self, default_tz: tzinfo = timezone.utc) -> datetime:
        return parse_event_time(self.start, default_tz)

    def end_at(self, default_tz: tzinfo = timezone.utc) -> datetime:
        return parse_event_time(self.end, default_tz)


def parse_event_time(value: str, default_tz: tzinfo = timezone.utc) -> datetime:
    """Parse a calendar timestamp; date-only and naive values get ``default_tz``."""
    parsed = dateparse.isoparse(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=default_tz)
    return parsed


def ensure_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes even for timezone-aware columns."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
