"""
Contacts directory endpoints: list/search, import from calendar history, enrich.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from api.deps import get_calendar_client, get_enrichment_client
from core.database import get_session
from core.errors import AppError
from core.security import get_current_user
from models.user import CurrentUser
from services.calendar_client import GoogleCalendarClient
from services.contact_importer import import_contacts
from services.contact_store import SORT_FILTERS, ContactStore
from services.enrichment import PeopleDataLabsClient, enrich_contact
from services.token_store import TokenStore

router = APIRouter(prefix="/contacts", tags=["Contacts"])


class EnrichRequest(BaseModel):
    contact_id: Optional[int] = Field(default=None, alias="contactId")


@router.get("")
async def list_contacts(
    search: str = "",
    filter: str = "recent",
    company: str = "",
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Contacts plus the company list for the filter dropdown and headline stats."""
    store = ContactStore(session)
    sort = filter if filter in SORT_FILTERS else "recent"
    try:
        contacts = await store.search(current_user.id, search=search, sort=sort, company=company)
        companies = await store.companies(current_user.id)
        total = await store.count(current_user.id)
        recent = await store.most_recent(current_user.id)
    except Exception as e:  # noqa: BLE001
        logger.exception("Get contacts failed for user {}: {}", current_user.id, e)
        raise HTTPException(status_code=500, detail="Failed to fetch contacts")

    return {
        "contacts": [c.to_dict() for c in contacts],
        "companies": companies,
        "stats": {
            "total": total,
            "recent": [c.to_dict() for c in recent],
        },
    }


@router.post("/import")
async def import_from_calendar(
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
) -> dict:
    """Rebuild the contact list from the last CONTACT_IMPORT_DAYS of meetings."""
    account = await TokenStore(session).get_account(current_user.id)
    if account is None:
        raise HTTPException(status_code=400, detail="Google Calendar not connected")

    try:
        result = await import_contacts(
            current_user.id,
            account.refresh_token,
            calendar,
            ContactStore(session),
            now=datetime.now(timezone.utc),
            own_email=current_user.email or account.email,
        )
    except Exception as e:  # noqa: BLE001
        logger.exception("Import contacts failed for user {}: {}", current_user.id, e)
        raise HTTPException(status_code=500, detail="Failed to fetch calendar events")

    return {
        "success": True,
        "message": f"Imported {result.imported} contacts",
        "totalEvents": result.total_events,
        "uniqueContacts": result.unique_contacts,
    }


@router.post("/enrich")
async def enrich(
    body: EnrichRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    client: PeopleDataLabsClient = Depends(get_enrichment_client),
) -> dict:
    """Look one contact up with the enrichment provider; never twice."""
    if body.contact_id is None:
        raise HTTPException(status_code=400, detail="contactId is required")

    store = ContactStore(session)
    contact = await store.get(current_user.id, body.contact_id)
    if contact is None:
        raise HTTPException(status_code=404, detail="Contact not found")

    try:
        contact, message = await enrich_contact(store, client, contact)
    except AppError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)

    return {"contact": contact.to_dict(), "message": message}
