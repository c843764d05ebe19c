"""
Sent-briefing ledger: the idempotency gate in front of every briefing email.

``mark_sent`` is an insert-if-absent backed by the (user_id, meeting_id)
unique constraint, so two overlapping dispatcher runs cannot both win the
same meeting. The dispatcher claims before it sends and calls ``release``
when the send fails.
"""

from __future__ import annotations

from loguru import logger
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from models.briefing import SentBriefing


class BriefingLedger:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def has_sent(self, user_id: str, meeting_id: str) -> bool:
        stmt = select(SentBriefing.id).where(
            SentBriefing.user_id == user_id,
            SentBriefing.meeting_id == meeting_id,
        )
        result = await self.session.execute(stmt)
        return result.first() is not None

    async def mark_sent(self, user_id: str, meeting_id: str) -> bool:
        """Insert the record. False means it already existed."""
        self.session.add(SentBriefing(user_id=user_id, meeting_id=meeting_id))
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            logger.debug("Briefing for user={} meeting={} already recorded", user_id, meeting_id)
            return False
        return True

    async def release(self, user_id: str, meeting_id: str) -> None:
        await self.session.execute(
            delete(SentBriefing).where(
                SentBriefing.user_id == user_id,
                SentBriefing.meeting_id == meeting_id,
            )
        )
        await self.session.commit()
