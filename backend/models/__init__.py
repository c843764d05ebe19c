from .briefing import SentBriefing
from .contact import Contact
from .feedback import Feedback
from .meeting import Attendee, Meeting
from .user import CurrentUser, UserToken

__all__ = [
    "Attendee",
    "Contact",
    "CurrentUser",
    "Feedback",
    "Meeting",
    "SentBriefing",
    "UserToken",
]
