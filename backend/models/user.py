from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel
from sqlmodel import SQLModel, Field, Column, DateTime, UniqueConstraint

GOOGLE_PROVIDER = "google"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CurrentUser(BaseModel):
    """The signed-in user as asserted by the identity provider's session token."""

    id: str
    email: Optional[str] = None


class UserToken(SQLModel, table=True):
    __tablename__ = "user_token"
    __table_args__ = (UniqueConstraint("user_id", "provider", name="uq_user_token_user_provider"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    provider: str = Field(default=GOOGLE_PROVIDER, index=True)

    # Fernet-encrypted, see core.crypto
    refresh_token_enc: str
    access_token_enc: Optional[str] = None

    # Briefing recipient, captured from the session when the calendar was connected
    email: Optional[str] = None

    created_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False),
        default_factory=_utcnow,
    )
    updated_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False),
        default_factory=_utcnow,
    )
