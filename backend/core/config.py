"""
Centralised settings using `pydantic-settings`.

All env-vars are loaded once at import time.
"""

from __future__ import annotations

from pathlib import Path
from typing import List
from pydantic import HttpUrl

from pydantic_settings import BaseSettings, SettingsConfigDict


class _Settings(BaseSettings):
    # environment
    ENV: str = "development"  # development | staging | production

    # CORS
    CORS_ALLOW_ORIGINS: List[str] = ["*"]

    # Session tokens are minted by the identity provider with this secret
    SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"

    # Google OAuth client (calendar connection)
    GOOGLE_CLIENT_ID: str | None = None
    GOOGLE_CLIENT_SECRET: str | None = None
    GOOGLE_TOKEN_URI: str = "https://oauth2.googleapis.com/token"
    # e.g. "http://localhost:8000"  (no trailing slash)
    API_BASE_URL: HttpUrl = "http://localhost:8000"
    # Frontend URL for redirects after OAuth
    FRONTEND_URL: HttpUrl = "http://localhost:3000"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./app.db"

    # Redis for Celery
    REDIS_URL: str = "redis://localhost:6379/0"

    # Log level (DEBUG/INFO/WARNING/ERROR)
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/premeet_{time:YYYY-MM-DD}.log"  # empty string disables

    # Outbound email (Resend)
    RESEND_API_KEY: str | None = None
    RESEND_API_URL: str = "https://api.resend.com/emails"
    FROM_EMAIL: str = "briefings@premeet.app"
    FROM_NAME: str = "PreMeet"
    # Sends every briefing here instead of the real recipient (sandbox accounts)
    BRIEFING_RECIPIENT_OVERRIDE: str | None = None

    # ─── Briefing dispatcher ────────────────────────────────────
    BRIEFING_TIMEZONE: str = "UTC"
    BRIEFING_INTERVAL_SECONDS: int = 60
    BRIEFING_LOOKAHEAD_MINUTES: int = 30
    BRIEFING_WINDOW_MIN_MINUTES: float = 4.0
    BRIEFING_WINDOW_MAX_MINUTES: float = 6.0
    EVENTS_LOOKAHEAD_HOURS: int = 24
    EXTERNAL_CALL_TIMEOUT_SECONDS: float = 30.0
    # Shared secret for an external scheduler hitting /cron/briefings
    CRON_SECRET: str | None = None

    # ─── Contacts ───────────────────────────────────────────────
    PDL_API_KEY: str | None = None
    PDL_API_URL: str = "https://api.peopledatalabs.com/v5/person/enrich"
    CONTACT_IMPORT_DAYS: int = 180
    CONTACT_IMPORT_MAX_RESULTS: int = 2500
    PERSONAL_EMAIL_DOMAINS: List[str] = [
        "gmail.com",
        "yahoo.com",
        "hotmail.com",
        "outlook.com",
        "icloud.com",
        "aol.com",
        "protonmail.com",
    ]
    CONTACT_EXCLUDED_MARKERS: List[str] = [
        "resource.calendar.google.com",
        "no-reply",
        "noreply",
    ]
    # Checked group by group; the first group with a hit wins
    CONTACT_TITLE_KEYWORDS: List[List[str]] = [
        ["CEO", "CTO", "CFO", "COO", "CMO", "CIO", "VP", "VP of"],
        ["Director", "Manager", "Lead", "Head of"],
        ["Engineer", "Developer", "Designer", "Product", "Sales", "Marketing"],
        ["Founder", "Co-founder", "Partner", "Principal"],
    ]

    # --- internal ---
    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parent.parent / ".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    @property
    def google_redirect_uri(self) -> str:
        return f"{str(self.API_BASE_URL).rstrip('/')}/api/v1/google/callback"

    @property
    def dashboard_url(self) -> str:
        return f"{str(self.FRONTEND_URL).rstrip('/')}/dashboard"


settings = _Settings()  # Singleton
