from __future__ import annotations

from typing import Optional

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import StorageError
from models.feedback import Feedback


class FeedbackStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(self, user_id: str, rating: str, message: Optional[str]) -> Feedback:
        entry = Feedback(user_id=user_id, rating=rating, message=message or None)
        self.session.add(entry)
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("Failed to save feedback for user {}: {}", user_id, exc)
            raise StorageError("Failed to save feedback") from exc
        return entry
