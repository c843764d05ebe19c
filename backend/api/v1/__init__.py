from fastapi import APIRouter

from .briefings import router as briefings_router
from .calendar import router as calendar_router
from .contacts import router as contacts_router
from .feedback import router as feedback_router
from .google import router as google_router

router = APIRouter()
router.include_router(google_router)
router.include_router(calendar_router)
router.include_router(briefings_router)
router.include_router(contacts_router)
router.include_router(feedback_router)
