"""
Per-user OAuth tokens, keyed by (user_id, provider).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from core.crypto import decrypt_token, encrypt_token
from core.errors import StorageError
from models.user import GOOGLE_PROVIDER, UserToken


@dataclass(frozen=True)
class ConnectedAccount:
    """Detached snapshot of a token row; survives session rollbacks."""

    user_id: str
    email: Optional[str]
    refresh_token_enc: str

    @property
    def refresh_token(self) -> str:
        return decrypt_token(self.refresh_token_enc)


class TokenStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, user_id: str, provider: str = GOOGLE_PROVIDER) -> Optional[UserToken]:
        stmt = select(UserToken).where(UserToken.user_id == user_id, UserToken.provider == provider)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def is_connected(self, user_id: str, provider: str = GOOGLE_PROVIDER) -> bool:
        return await self.get(user_id, provider) is not None

    async def list_connected(self, provider: str = GOOGLE_PROVIDER) -> List[ConnectedAccount]:
        stmt = select(UserToken).where(UserToken.provider == provider).order_by(UserToken.id)
        result = await self.session.execute(stmt)
        return [
            ConnectedAccount(user_id=row.user_id, email=row.email, refresh_token_enc=row.refresh_token_enc)
            for row in result.scalars().all()
        ]

    async def upsert(
        self,
        user_id: str,
        *,
        refresh_token: str,
        access_token: Optional[str] = None,
        email: Optional[str] = None,
        provider: str = GOOGLE_PROVIDER,
    ) -> UserToken:
        """
        Create or overwrite the token row for (user_id, provider).
        Raises StorageError when the write fails.
        """
        row = await self.get(user_id, provider)
        if row is None:
            row = UserToken(user_id=user_id, provider=provider, refresh_token_enc="")
            self.session.add(row)

        row.refresh_token_enc = encrypt_token(refresh_token)
        row.access_token_enc = encrypt_token(access_token)
        row.email = email or row.email
        row.updated_at = datetime.now(timezone.utc)

        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("Token upsert failed for user {}: {}", user_id, exc)
            raise StorageError("Failed to store calendar token") from exc
        await self.session.refresh(row)
        return row

    async def get_account(self, user_id: str, provider: str = GOOGLE_PROVIDER) -> Optional[ConnectedAccount]:
        row = await self.get(user_id, provider)
        if row is None:
            return None
        return ConnectedAccount(user_id=row.user_id, email=row.email, refresh_token_enc=row.refresh_token_enc)
