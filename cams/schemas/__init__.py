from .camp import Camp
from .enquiry import Enquiry
from .suggestion import Suggestion, SuggestionStatus
from .user import User, UserRole

__all__ = [
    "Camp",
    "Enquiry",
    "Suggestion",
    "SuggestionStatus",
    "User",
    "UserRole",
]
