from enum import Enum

from pydantic import BaseModel, Field

from cams.errors import SuggestionStateError


class SuggestionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Suggestion(BaseModel):
    suggestion_id: int = Field(..., ge=1)
    camp_id: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1)
    text: str
    status: SuggestionStatus = SuggestionStatus.PENDING

    @property
    def is_pending(self) -> bool:
        return self.status == SuggestionStatus.PENDING

    def decide(self, status: SuggestionStatus) -> None:
        """Move a pending suggestion to approved or rejected, exactly once."""
        if status == SuggestionStatus.PENDING:
            raise SuggestionStateError("a suggestion cannot be moved back to pending")
        if not self.is_pending:
            raise SuggestionStateError(
                f"suggestion {self.suggestion_id} is already {self.status.value}"
            )
        self.status = status
