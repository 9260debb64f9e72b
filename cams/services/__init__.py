"""Service layer for the CAMs data store."""

from .camp_service import CampService, RosterEntry, RosterKind  # noqa: F401
from .data_transfer import ImportReport, TransferService  # noqa: F401
from .enquiry_service import EnquiryService  # noqa: F401
from .resolver import CrossReferenceResolver, Violation  # noqa: F401
from .suggestion_service import SuggestionService  # noqa: F401

__all__ = [
    "CampService",
    "CrossReferenceResolver",
    "EnquiryService",
    "ImportReport",
    "RosterEntry",
    "RosterKind",
    "SuggestionService",
    "TransferService",
    "Violation",
]
