"""
Contacts table access: importer upserts, directory queries and enrichment writes.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from loguru import logger
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from core.errors import StorageError
from models.contact import Contact
from models.meeting import ensure_utc
from services.contact_importer import DerivedContact

SORT_FILTERS = ("recent", "company", "alphabetical")


class ContactStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, user_id: str, contact_id: int) -> Optional[Contact]:
        stmt = select(Contact).where(Contact.id == contact_id, Contact.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_email(self, user_id: str, email: str) -> Optional[Contact]:
        stmt = select(Contact).where(Contact.user_id == user_id, Contact.email == email.lower())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert_derived(self, user_id: str, derived: DerivedContact) -> bool:
        """
        Insert or refresh one imported contact. Returns False (after logging)
        when the row could not be written.

        On conflict the count is replaced, the last meeting date only moves
        forward, and name/company/title are only filled from non-null values
        and never over an enriched contact.
        """
        try:
            contact = await self.get_by_email(user_id, derived.email)
            if contact is None:
                contact = Contact(
                    user_id=user_id,
                    email=derived.email,
                    name=derived.name,
                    company=derived.company,
                    title=derived.title,
                    last_meeting_date=derived.last_meeting_date,
                    meeting_count=derived.meeting_count,
                )
                self.session.add(contact)
            else:
                contact.meeting_count = derived.meeting_count
                if contact.last_meeting_date is None or ensure_utc(derived.last_meeting_date) > ensure_utc(
                    contact.last_meeting_date
                ):
                    contact.last_meeting_date = derived.last_meeting_date
                if not contact.enriched:
                    contact.name = derived.name or contact.name
                    contact.company = derived.company or contact.company
                    contact.title = derived.title or contact.title
                contact.updated_at = datetime.now(timezone.utc)
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("Failed to upsert contact {} for user {}: {}", derived.email, user_id, exc)
            return False
        return True

    async def search(
        self,
        user_id: str,
        *,
        search: str = "",
        sort: str = "recent",
        company: str = "",
        limit: Optional[int] = None,
    ) -> List[Contact]:
        stmt = select(Contact).where(Contact.user_id == user_id)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(
                    Contact.name.ilike(pattern),
                    Contact.email.ilike(pattern),
                    Contact.company.ilike(pattern),
                )
            )
        if company:
            stmt = stmt.where(Contact.company.ilike(f"%{company}%"))

        if sort == "company":
            stmt = stmt.order_by(Contact.company.asc(), Contact.email.asc())
        elif sort == "alphabetical":
            stmt = stmt.order_by(Contact.name.asc(), Contact.email.asc())
        else:
            stmt = stmt.order_by(Contact.last_meeting_date.desc(), Contact.id.asc())
        if limit:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def companies(self, user_id: str) -> List[str]:
        stmt = (
            select(Contact.company)
            .where(Contact.user_id == user_id, Contact.company.is_not(None))
            .distinct()
        )
        result = await self.session.execute(stmt)
        return sorted(c for c in result.scalars().all() if c)

    async def count(self, user_id: str) -> int:
        stmt = select(func.count()).select_from(Contact).where(Contact.user_id == user_id)
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def most_recent(self, user_id: str, limit: int = 5) -> List[Contact]:
        return await self.search(user_id, sort="recent", limit=limit)

    async def save(self, contact: Contact) -> Contact:
        contact.updated_at = datetime.now(timezone.utc)
        self.session.add(contact)
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("Failed to save contact {}: {}", contact.id, exc)
            raise StorageError("Failed to save enrichment data") from exc
        await self.session.refresh(contact)
        return contact
