from __future__ import annotations

import logging
from typing import Dict, Optional

from cams.config.loader import get_points_settings
from cams.data.repository import Repository
from cams.errors import CampRuleError, SuggestionStateError
from cams.schemas import Suggestion, SuggestionStatus, User

from .field_rules import storable_text

logger = logging.getLogger(__name__)


class SuggestionService:
    """Committee suggestions and their review by the staff in charge."""

    def __init__(self, repository: Repository, *, points: Optional[Dict[str, int]] = None) -> None:
        self.repository = repository
        self.points = dict(points) if points is not None else get_points_settings()

    def _award(self, user: User, key: str) -> None:
        user.points += self.points[key]
        self.repository.users.touch()

    def _own_pending(self, user_id: str, suggestion_id: int) -> Suggestion:
        suggestion = self.repository.suggestions.get(suggestion_id)
        if suggestion.author != user_id:
            raise CampRuleError(f"suggestion {suggestion_id} belongs to {suggestion.author}")
        if not suggestion.is_pending:
            raise SuggestionStateError(
                f"suggestion {suggestion_id} is already {suggestion.status.value}"
            )
        return suggestion

    def create(self, user_id: str, text: str) -> Suggestion:
        user = self.repository.users.get(user_id)
        if not user.is_committee:
            raise CampRuleError(f"{user_id} is not a committee member")
        camp = self.repository.camps.get(user.facilitating_camp)
        storable_text(text, "suggestion")

        suggestion = Suggestion(
            suggestion_id=self.repository.next_suggestion_id(),
            camp_id=camp.camp_id,
            author=user_id,
            text=text,
        )
        self.repository.suggestions.put(suggestion.suggestion_id, suggestion)
        camp.suggestions[suggestion.suggestion_id] = suggestion
        user.suggestions.append(suggestion.suggestion_id)
        self.repository.camps.touch()
        self._award(user, "suggestion_created")
        logger.info("Suggestion %d created by %s", suggestion.suggestion_id, user_id)
        return suggestion

    def edit(self, user_id: str, suggestion_id: int, text: str) -> Suggestion:
        suggestion = self._own_pending(user_id, suggestion_id)
        storable_text(text, "suggestion")
        suggestion.text = text
        self.repository.suggestions.touch()
        return suggestion

    def delete(self, user_id: str, suggestion_id: int) -> Suggestion:
        self._own_pending(user_id, suggestion_id)
        return self.repository.suggestions.delete(suggestion_id)

    def _decide(self, staff_id: str, suggestion_id: int, status: SuggestionStatus) -> Suggestion:
        suggestion = self.repository.suggestions.get(suggestion_id)
        camp = self.repository.camps.get(suggestion.camp_id)
        if camp.staff_in_charge != staff_id:
            raise CampRuleError(f"{staff_id} is not in charge of {camp.camp_id}")
        suggestion.decide(status)
        self.repository.suggestions.touch()
        logger.info("Suggestion %d %s by %s", suggestion_id, status.value, staff_id)
        return suggestion

    def approve(self, staff_id: str, suggestion_id: int) -> Suggestion:
        suggestion = self._decide(staff_id, suggestion_id, SuggestionStatus.APPROVED)
        author = self.repository.users.find(suggestion.author)
        if author is not None and author.is_committee:
            self._award(author, "suggestion_approved")
        return suggestion

    def reject(self, staff_id: str, suggestion_id: int) -> Suggestion:
        return self._decide(staff_id, suggestion_id, SuggestionStatus.REJECTED)
