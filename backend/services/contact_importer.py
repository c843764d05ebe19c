"""
Derives a contact directory from calendar history.

The history window is re-read in full on every import, so the derived
``meeting_count`` is authoritative and importing twice does not double-count.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Pattern, Sequence

from loguru import logger

from core.concurrency import run_blocking
from core.config import settings
from models.meeting import Meeting

if TYPE_CHECKING:
    from services.calendar_client import GoogleCalendarClient
    from services.contact_store import ContactStore


@dataclass
class DerivedContact:
    email: str
    name: Optional[str]
    company: Optional[str]
    title: Optional[str]
    last_meeting_date: datetime
    meeting_count: int = 1


@dataclass(frozen=True)
class ImportResult:
    imported: int
    total_events: int
    unique_contacts: int


def compile_title_patterns(groups: Sequence[Sequence[str]]) -> List[Pattern[str]]:
    return [
        re.compile(r"\b(" + "|".join(re.escape(keyword) for keyword in group) + r")\b", re.IGNORECASE)
        for group in groups
        if group
    ]


def guess_company(email: str, personal_domains: Iterable[str]) -> Optional[str]:
    """'jane@acme.io' -> 'Acme'; personal mailbox domains give None."""
    _, _, domain = email.partition("@")
    if not domain:
        return None
    if domain.lower() in {d.lower() for d in personal_domains}:
        return None
    label = domain.split(".")[0]
    return label[:1].upper() + label[1:] if label else None


def guess_title(name: Optional[str], patterns: Sequence[Pattern[str]]) -> Optional[str]:
    if not name:
        return None
    for pattern in patterns:
        match = pattern.search(name)
        if match:
            return match.group(0)
    return None


def is_excluded(email: str, markers: Iterable[str]) -> bool:
    return any(marker in email for marker in markers)


def extract_contacts(
    meetings: Iterable[Meeting],
    *,
    exclude_emails: Iterable[str] = (),
    personal_domains: Optional[Sequence[str]] = None,
    excluded_markers: Optional[Sequence[str]] = None,
    title_keywords: Optional[Sequence[Sequence[str]]] = None,
) -> Dict[str, DerivedContact]:
    """
    Fold every attendee of every meeting into one record per lower-cased email.

    A contact first seen without a display name takes the first one a later
    meeting supplies, and its title is guessed from that name too.
    """
    personal = personal_domains if personal_domains is not None else settings.PERSONAL_EMAIL_DOMAINS
    markers = excluded_markers if excluded_markers is not None else settings.CONTACT_EXCLUDED_MARKERS
    patterns = compile_title_patterns(
        title_keywords if title_keywords is not None else settings.CONTACT_TITLE_KEYWORDS
    )
    own = {e.lower() for e in exclude_emails if e}

    contacts: Dict[str, DerivedContact] = {}
    for meeting in meetings:
        if not meeting.attendees:
            continue
        met_at = meeting.start_at()

        for attendee in meeting.attendees:
            email = attendee.email.strip().lower()
            if not email or email in own or is_excluded(email, markers):
                continue

            existing = contacts.get(email)
            if existing is None:
                contacts[email] = DerivedContact(
                    email=email,
                    name=attendee.display_name,
                    company=guess_company(email, personal),
                    title=guess_title(attendee.display_name, patterns),
                    last_meeting_date=met_at,
                )
                continue

            existing.meeting_count += 1
            if met_at > existing.last_meeting_date:
                existing.last_meeting_date = met_at
            if attendee.display_name and not existing.name:
                existing.name = attendee.display_name
                existing.title = existing.title or guess_title(attendee.display_name, patterns)

    return contacts


async def import_contacts(
    user_id: str,
    refresh_token: str,
    calendar: "GoogleCalendarClient",
    store: "ContactStore",
    *,
    now: datetime,
    own_email: Optional[str] = None,
    days: Optional[int] = None,
) -> ImportResult:
    """
    Fetch the history window, derive contacts and upsert them.
    Calendar failures propagate; a failing contact row is logged and skipped.
    """
    window = timedelta(days=days if days is not None else settings.CONTACT_IMPORT_DAYS)
    meetings = await run_blocking(
        calendar.fetch_meetings,
        refresh_token,
        now - window,
        now,
        max_results=settings.CONTACT_IMPORT_MAX_RESULTS,
    )
    derived = extract_contacts(meetings, exclude_emails=[own_email] if own_email else [])

    imported = 0
    for contact in derived.values():
        if await store.upsert_derived(user_id, contact):
            imported += 1

    logger.info(
        "Imported {}/{} contacts from {} events for user {}",
        imported,
        len(derived),
        len(meetings),
        user_id,
    )
    return ImportResult(imported=imported, total_events=len(meetings), unique_contacts=len(derived))
