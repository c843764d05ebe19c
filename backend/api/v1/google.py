"""
Google Calendar connection: consent redirect, OAuth callback, status.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from core.concurrency import run_blocking
from core.config import settings
from core.database import get_session
from core.errors import ConfigurationError, StorageError
from core.security import get_current_user
from models.user import CurrentUser
from services import google_oauth
from services.token_store import TokenStore

router = APIRouter(prefix="/google", tags=["Google"])


def _dashboard_redirect(query: str) -> RedirectResponse:
    return RedirectResponse(f"{settings.dashboard_url}?{query}", status_code=302)


@router.get("")
async def connect_google(
    current_user: CurrentUser = Depends(get_current_user),
) -> RedirectResponse:
    """
    Start the OAuth consent screen. ``state`` is the caller's user id and is
    checked again on the way back.
    """
    try:
        url = google_oauth.authorization_url(current_user.id)
    except ConfigurationError as exc:
        raise HTTPException(status_code=500, detail=exc.message)
    return RedirectResponse(url, status_code=302)


@router.get("/callback")
async def google_callback(
    code: str | None = None,
    state: str | None = None,
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> RedirectResponse:
    """
    Handles Google's redirect: exchanges ``code`` for tokens and stores the
    refresh token. Always lands back on the dashboard.
    """
    if not code:
        return _dashboard_redirect("error=missing_code")

    if state != current_user.id:
        logger.warning("OAuth state mismatch for user {}", current_user.id)
        return _dashboard_redirect("error=invalid_state")

    try:
        tokens = await run_blocking(google_oauth.exchange_code, code, state)
    except ConfigurationError as exc:
        raise HTTPException(status_code=500, detail=exc.message)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Google OAuth token exchange failed for user {}: {}", current_user.id, exc)
        return _dashboard_redirect("error=exchange_failed")

    if not tokens.refresh_token:
        return _dashboard_redirect("error=no_refresh_token")

    try:
        await TokenStore(session).upsert(
            current_user.id,
            refresh_token=tokens.refresh_token,
            access_token=tokens.access_token,
            email=current_user.email,
        )
    except StorageError:
        return _dashboard_redirect("error=storage_failed")

    logger.info("Google Calendar connected for user {}", current_user.id)
    return _dashboard_redirect("connected=1")


@router.get("/status")
async def connection_status(
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Whether the current user has a stored Google token."""
    try:
        connected = await TokenStore(session).is_connected(current_user.id)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Status check failed for user {}: {}", current_user.id, exc)
        raise HTTPException(status_code=500, detail="Failed to check connection status")
    return {"connected": connected}
