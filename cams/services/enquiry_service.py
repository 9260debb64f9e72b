from __future__ import annotations

import logging
from typing import List, Optional

from cams.config.loader import get_points_settings
from cams.data.repository import Repository
from cams.errors import CampRuleError
from cams.schemas import Enquiry

from .field_rules import storable_optional_text, storable_text

logger = logging.getLogger(__name__)


class EnquiryService:
    def __init__(self, repository: Repository, *, reply_points: Optional[int] = None) -> None:
        self.repository = repository
        if reply_points is None:
            reply_points = get_points_settings()["enquiry_replied"]
        self.reply_points = reply_points

    def _own_open_enquiry(self, user_id: str, enquiry_id: int) -> Enquiry:
        enquiry = self.repository.enquiries.get(enquiry_id)
        if enquiry.enquirer != user_id:
            raise CampRuleError(f"enquiry {enquiry_id} belongs to {enquiry.enquirer}")
        if enquiry.is_replied:
            raise CampRuleError(f"enquiry {enquiry_id} has been replied to")
        return enquiry

    def create(self, user_id: str, camp_id: str, text: str) -> Enquiry:
        user = self.repository.users.get(user_id)
        camp = self.repository.camps.get(camp_id)
        if not user.is_student:
            raise CampRuleError(f"{user_id} is not a student")
        if user.facilitating_camp == camp_id:
            raise CampRuleError(f"{user_id} facilitates {camp_id} and cannot enquire about it")
        storable_text(text, "enquiry")

        enquiry = Enquiry(
            enquiry_id=self.repository.next_enquiry_id(),
            camp_id=camp_id,
            enquirer=user_id,
            text=text,
        )
        self.repository.enquiries.put(enquiry.enquiry_id, enquiry)
        camp.enquiries[enquiry.enquiry_id] = enquiry
        user.enquiries.setdefault(camp_id, []).append(enquiry.enquiry_id)
        self.repository.camps.touch()
        self.repository.users.touch()
        logger.info("Enquiry %d created by %s for %s", enquiry.enquiry_id, user_id, camp_id)
        return enquiry

    def edit(self, user_id: str, enquiry_id: int, text: str) -> Enquiry:
        enquiry = self._own_open_enquiry(user_id, enquiry_id)
        storable_text(text, "enquiry")
        enquiry.text = text
        self.repository.enquiries.touch()
        return enquiry

    def delete(self, user_id: str, enquiry_id: int) -> Enquiry:
        self._own_open_enquiry(user_id, enquiry_id)
        return self.repository.enquiries.delete(enquiry_id)

    def reply(self, user_id: str, enquiry_id: int, reply: str) -> Enquiry:
        """Answer an enquiry as the camp's staff in charge or one of its committee.

        An enquiry takes a single reply. A committee member earns points for it.
        """
        replier = self.repository.users.get(user_id)
        enquiry = self.repository.enquiries.get(enquiry_id)
        camp = self.repository.camps.get(enquiry.camp_id)
        if user_id != camp.staff_in_charge and user_id not in camp.committee_members:
            raise CampRuleError(f"{user_id} cannot reply to enquiries about {camp.camp_id}")
        if enquiry.is_replied:
            raise CampRuleError(f"enquiry {enquiry_id} has already been replied to by {enquiry.replier}")
        storable_optional_text(reply, "reply")

        enquiry.replier = user_id
        enquiry.reply = reply
        self.repository.enquiries.touch()
        if replier.is_committee:
            replier.points += self.reply_points
            self.repository.users.touch()
        logger.info("Enquiry %d replied by %s", enquiry_id, user_id)
        return enquiry

    def for_camp(self, camp_id: str) -> List[Enquiry]:
        return [e for e in self.repository.enquiries if e.camp_id == camp_id]
