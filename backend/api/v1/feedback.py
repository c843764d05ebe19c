from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_session
from core.errors import StorageError
from core.security import get_current_user
from models.feedback import RATINGS
from models.user import CurrentUser
from services.feedback_store import FeedbackStore

router = APIRouter(prefix="/feedback", tags=["Feedback"])


class FeedbackRequest(BaseModel):
    rating: Optional[str] = None
    message: Optional[str] = None


@router.post("")
async def submit_feedback(
    body: FeedbackRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    if body.rating not in RATINGS:
        raise HTTPException(status_code=400, detail="Rating must be 'thumbs_up' or 'thumbs_down'")

    try:
        await FeedbackStore(session).add(current_user.id, body.rating, body.message)
    except StorageError as exc:
        raise HTTPException(status_code=500, detail=exc.message)
    return {"success": True}
