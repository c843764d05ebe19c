from datetime import datetime, timezone
from typing import Optional

from sqlmodel import SQLModel, Field, Column, DateTime, UniqueConstraint


class SentBriefing(SQLModel, table=True):
    """One row per (user, meeting) whose briefing was claimed and sent."""

    __tablename__ = "sent_briefing"
    __table_args__ = (UniqueConstraint("user_id", "meeting_id", name="uq_sent_briefing_user_meeting"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    # Google Calendar event id (recurring instances carry their own id)
    meeting_id: str

    sent_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False),
        default_factory=lambda: datetime.now(timezone.utc),
    )
