"""
Briefing email renderer: canonical meeting -> (subject, html).

Deterministic for a given ``(meeting, now, tz)``; the only implicit input is
the clock, used to decide between "today", "tomorrow" and a full date.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from html import escape
from typing import Optional

from dateutil import tz as dateutil_tz

from core.config import settings
from models.meeting import Meeting

PRODUCT_NAME = "PreMeet"


@dataclass(frozen=True)
class RenderedBriefing:
    subject: str
    html: str


def display_timezone(name: Optional[str] = None) -> tzinfo:
    zone = dateutil_tz.gettz(name or settings.BRIEFING_TIMEZONE)
    if zone is None:
        raise ValueError(f"Unknown timezone: {name or settings.BRIEFING_TIMEZONE}")
    return zone


def format_time(value: datetime) -> str:
    """12-hour clock, e.g. '9:05 AM'."""
    return value.strftime("%I:%M %p").lstrip("0")


def format_long_date(value: datetime) -> str:
    """e.g. 'Tuesday, October 20'."""
    return f"{value:%A}, {value:%B} {value.day}"


def _relative_day(day: date, today: date) -> Optional[str]:
    if day == today:
        return "today"
    if day == today + timedelta(days=1):
        return "tomorrow"
    return None


def subject_phrase(start: datetime, today: date) -> str:
    time = format_time(start)
    relative = _relative_day(start.date(), today)
    if relative:
        return f"{relative} at {time}"
    return f"on {format_long_date(start)} at {time}"


def _attendee_rows(meeting: Meeting) -> str:
    if not meeting.attendees:
        return (
            '<tr><td colspan="2" style="padding: 16px 0; color: #6b7280; '
            'font-style: italic;">Just you</td></tr>'
        )

    rows = []
    for attendee in meeting.attendees:
        email_suffix = f" ({escape(attendee.email)})" if attendee.display_name else ""
        rows.append(
            "<tr>"
            '<td style="padding: 8px 0; border-bottom: 1px solid #e5e7eb;">'
            f'<span style="color: #374151;">{escape(attendee.label)}</span>'
            f'<span style="color: #6b7280; font-size: 14px;">{email_suffix}</span>'
            "</td>"
            '<td style="padding: 8px 0; border-bottom: 1px solid #e5e7eb; text-align: right;">'
            '<span style="color: #6b7280; font-size: 14px; text-transform: capitalize;">'
            f"{escape(attendee.response_status)}</span>"
            "</td>"
            "</tr>"
        )
    return "\n".join(rows)


_HTML_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Meeting Briefing</title>
</head>
<body style="margin: 0; padding: 0; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; background-color: #f9fafb;">
  <table width="100%" cellpadding="0" cellspacing="0" style="background-color: #f9fafb; padding: 40px 20px;">
    <tr>
      <td align="center">
        <table width="100%" cellpadding="0" cellspacing="0" style="background-color: #ffffff; border-radius: 12px; box-shadow: 0 1px 3px rgba(0,0,0,0.1); max-width: 600px;">
          <tr>
            <td style="padding: 32px 32px 24px; border-bottom: 1px solid #e5e7eb;">
              <h1 style="margin: 0; font-size: 24px; font-weight: 600; color: #111827;">{product}</h1>
              <p style="margin: 4px 0 0; font-size: 14px; color: #6b7280;">Meeting briefing</p>
            </td>
          </tr>
          <tr>
            <td style="padding: 32px;">
              <h2 style="margin: 0 0 8px; font-size: 20px; font-weight: 600; color: #111827;">{title}</h2>
              <p style="margin: 0; font-size: 16px; color: #4b5563;">{when}</p>
            </td>
          </tr>
          <tr>
            <td style="padding: 0 32px 32px;">
              <h3 style="margin: 0 0 16px; font-size: 14px; font-weight: 600; color: #374151; text-transform: uppercase; letter-spacing: 0.05em;">Attendees ({attendee_count})</h3>
              <table width="100%" cellpadding="0" cellspacing="0" style="font-size: 15px;">
{attendee_rows}
              </table>
            </td>
          </tr>
          <tr>
            <td style="padding: 24px 32px; border-top: 1px solid #e5e7eb; text-align: center;">
              <p style="margin: 0; font-size: 13px; color: #9ca3af;">Sent by {product} &middot; Your meeting assistant</p>
            </td>
          </tr>
        </table>
      </td>
    </tr>
  </table>
</body>
</html>
"""


def render_briefing(
    meeting: Meeting,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> RenderedBriefing:
    zone = tz or display_timezone()
    today = (now.astimezone(zone) if now else datetime.now(zone)).date()

    start = meeting.start_at(zone).astimezone(zone)
    end = meeting.end_at(zone).astimezone(zone)

    relative = _relative_day(start.date(), today)
    day_label = relative.capitalize() if relative else format_long_date(start)
    when = f"{day_label} at {format_time(start)} &ndash; {format_time(end)}"

    html = _HTML_TEMPLATE.format(
        product=PRODUCT_NAME,
        title=escape(meeting.summary),
        when=when,
        attendee_count=len(meeting.attendees),
        attendee_rows=_attendee_rows(meeting),
    )
    subject = f"Briefing: {meeting.summary} {subject_phrase(start, today)}"
    return RenderedBriefing(subject=subject, html=html)
