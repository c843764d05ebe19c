"""
Contact enrichment through People Data Labs' person/enrich endpoint.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import requests
from loguru import logger

from core.concurrency import run_blocking
from core.config import settings
from core.errors import ConfigurationError, RateLimitError, UpstreamError
from models.contact import Contact
from services.contact_store import ContactStore

RATE_LIMIT_MESSAGE = "Rate limit reached. Free tier allows 100 enrichments/month."


@dataclass(frozen=True)
class PersonProfile:
    full_name: Optional[str] = None
    job_title: Optional[str] = None
    job_company_name: Optional[str] = None
    linkedin_url: Optional[str] = None


class PeopleDataLabsClient:
    def __init__(self, api_key: Optional[str], api_url: str, timeout: float = 30.0) -> None:
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> "PeopleDataLabsClient":
        return cls(settings.PDL_API_KEY, settings.PDL_API_URL, settings.EXTERNAL_CALL_TIMEOUT_SECONDS)

    def lookup(self, email: str) -> Optional[PersonProfile]:
        """
        Blocking lookup by email. None means the provider knows nobody with that
        address (HTTP 404).
        """
        if not self.api_key:
            raise ConfigurationError("PeopleDataLabs API key not configured")

        try:
            response = requests.get(
                self.api_url,
                params={"email": email, "pretty": "true"},
                headers={"X-Api-Key": self.api_key, "Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise UpstreamError("Enrichment API error") from exc

        if response.status_code == 429:
            raise RateLimitError(RATE_LIMIT_MESSAGE)
        if response.status_code == 404:
            return None
        if not response.ok:
            logger.error("PDL API error {}: {}", response.status_code, response.text[:500])
            raise UpstreamError("Enrichment API error")

        data = response.json().get("data") or {}
        return PersonProfile(
            full_name=data.get("full_name"),
            job_title=data.get("job_title"),
            job_company_name=data.get("job_company_name"),
            linkedin_url=data.get("linkedin_url"),
        )


def apply_profile(contact: Contact, profile: Optional[PersonProfile]) -> None:
    """Only non-null provider values replace what we already have."""
    if profile is not None:
        contact.name = profile.full_name or contact.name
        contact.title = profile.job_title or contact.title
        contact.company = profile.job_company_name or contact.company
        contact.linkedin_url = profile.linkedin_url or contact.linkedin_url
    contact.enriched = True


async def enrich_contact(
    store: ContactStore,
    client: PeopleDataLabsClient,
    contact: Contact,
) -> Tuple[Contact, str]:
    """
    Enrich one contact at most once. A provider miss still marks the contact
    enriched so it is never looked up again.
    """
    if contact.enriched:
        return contact, "Contact already enriched"

    profile = await run_blocking(client.lookup, contact.email)
    apply_profile(contact, profile)
    contact = await store.save(contact)

    if profile is None:
        logger.info("No enrichment data for contact {}", contact.id)
        return contact, "No enrichment data found for this contact"
    logger.info("Enriched contact {}", contact.id)
    return contact, "Contact enriched successfully"
