"""
Thin wrapper around google-auth-oauthlib flow utilities for the calendar
connection (consent URL + code exchange).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Any, Optional

from google_auth_oauthlib.flow import Flow

from core.config import settings
from core.errors import ConfigurationError
from services.calendar_client import CALENDAR_SCOPES


@dataclass(frozen=True)
class ExchangedTokens:
    refresh_token: Optional[str]
    access_token: Optional[str]


def _client_config() -> Dict[str, Any]:
    """
    Construct the minimal JSON structure expected by Flow.from_client_config.
    """
    if not settings.GOOGLE_CLIENT_ID or not settings.GOOGLE_CLIENT_SECRET:
        raise ConfigurationError("Missing Google OAuth credentials")
    return {
        "web": {
            "client_id": settings.GOOGLE_CLIENT_ID,
            "client_secret": settings.GOOGLE_CLIENT_SECRET,
            "auth_uri": "https://accounts.google.com/o/oauth2/v2/auth",
            "token_uri": settings.GOOGLE_TOKEN_URI,
            "redirect_uris": [settings.google_redirect_uri],
        }
    }


def build_flow(state: str | None = None) -> Flow:
    # The callback runs on a fresh Flow, so there is nowhere to keep a PKCE verifier.
    return Flow.from_client_config(
        _client_config(),
        scopes=CALENDAR_SCOPES,
        redirect_uri=settings.google_redirect_uri,
        state=state,
        autogenerate_code_verifier=False,
    )


def authorization_url(user_id: str) -> str:
    """
    Consent-screen URL. ``state`` carries the user id so the callback can check
    that the person finishing the flow is the one who started it.
    """
    flow = build_flow(state=user_id)
    url, _state = flow.authorization_url(
        access_type="offline",
        prompt="consent",
    )
    return url


def exchange_code(code: str, state: str) -> ExchangedTokens:
    """Blocking: trades the authorization code for tokens at Google's token endpoint."""
    flow = build_flow(state=state)
    flow.fetch_token(code=code)
    credentials = flow.credentials
    return ExchangedTokens(
        refresh_token=credentials.refresh_token,
        access_token=credentials.token,
    )
