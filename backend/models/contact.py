from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlmodel import SQLModel, Field, Column, DateTime, UniqueConstraint


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Contact(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("user_id", "email", name="uq_contact_user_email"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    # always lower-cased
    email: str = Field(index=True)

    name: Optional[str] = None
    company: Optional[str] = Field(default=None, index=True)
    title: Optional[str] = None
    linkedin_url: Optional[str] = None
    enriched: bool = False

    last_meeting_date: Optional[datetime] = Field(
        sa_column=Column(DateTime(timezone=True), index=True), default=None
    )
    meeting_count: int = 0

    created_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False),
        default_factory=_utcnow,
    )
    updated_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False),
        default_factory=_utcnow,
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "company": self.company,
            "title": self.title,
            "linkedin_url": self.linkedin_url,
            "enriched": self.enriched,
            "last_meeting_date": self.last_meeting_date.isoformat() if self.last_meeting_date else None,
            "meeting_count": self.meeting_count,
        }
