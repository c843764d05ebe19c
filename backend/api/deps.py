"""
Process-wide provider clients, built once from settings and handed to routes
through FastAPI dependencies (tests swap them via ``app.dependency_overrides``).
"""

from functools import lru_cache

from services.calendar_client import GoogleCalendarClient
from services.enrichment import PeopleDataLabsClient
from services.mailer import ResendMailer


@lru_cache
def get_calendar_client() -> GoogleCalendarClient:
    return GoogleCalendarClient.from_settings()


@lru_cache
def get_mailer() -> ResendMailer:
    return ResendMailer.from_settings()


@lru_cache
def get_enrichment_client() -> PeopleDataLabsClient:
    return PeopleDataLabsClient.from_settings()
