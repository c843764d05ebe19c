"""
Application error taxonomy.

Each error carries the HTTP status an interactive caller should see. The
briefing dispatcher ignores the status and records ``str(exc)`` instead.
"""

from __future__ import annotations


class AppError(Exception):
    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class AuthError(AppError):
    """No session, OAuth state mismatch, or a refresh token that no longer works."""

    status_code = 401


class UpstreamError(AppError):
    """Calendar, mail or enrichment provider answered with a non-success status."""

    status_code = 502


class FetchError(UpstreamError):
    """The calendar events-list call failed."""


class NotFoundError(AppError):
    status_code = 404


class RateLimitError(AppError):
    status_code = 429


class StorageError(AppError):
    status_code = 500


class ConfigurationError(AppError):
    """A provider key or OAuth client setting is missing."""

    status_code = 500
