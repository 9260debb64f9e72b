from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional

from cams.config.loader import get_camp_rules, get_data_settings
from cams.data.repository import Repository
from cams.errors import CampRuleError
from cams.schemas import Camp, User, UserRole

from .field_rules import storable_camp_id, storable_optional_text, storable_text

logger = logging.getLogger(__name__)

# Changing these would orphan references held elsewhere.
_FIXED_CAMP_FIELDS = {
    "camp_id",
    "staff_in_charge",
    "attendees",
    "committee_members",
    "suggestions",
    "enquiries",
}


class RosterKind(str, Enum):
    ALL = "all"
    ATTENDEE = "attendee"
    COMMITTEE = "committee"


@dataclass(frozen=True)
class RosterEntry:
    user: User
    role: str
    points: Optional[int] = None


def _check_storable(camp: Camp) -> None:
    storable_camp_id(camp.camp_id)
    storable_text(camp.location, "location")
    storable_text(camp.faculty, "faculty")
    storable_optional_text(camp.description or None, "description")


class CampService:
    """Camp creation, editing and registration on top of the repository."""

    def __init__(
        self,
        repository: Repository,
        *,
        max_committee_slots: Optional[int] = None,
        open_faculty: Optional[str] = None,
    ) -> None:
        self.repository = repository
        if max_committee_slots is None:
            max_committee_slots = get_camp_rules()["max_committee_slots"]
        if open_faculty is None:
            open_faculty = get_data_settings()["open_faculty"]
        self.max_committee_slots = max_committee_slots
        self.open_faculty = open_faculty

    def _staff(self, staff_id: str) -> User:
        staff = self.repository.users.get(staff_id)
        if not staff.is_staff:
            raise CampRuleError(f"{staff_id} is not a staff member")
        return staff

    def _owned_camp(self, staff_id: str, camp_id: str) -> Camp:
        self._staff(staff_id)
        camp = self.repository.camps.get(camp_id)
        if camp.staff_in_charge != staff_id:
            raise CampRuleError(f"{staff_id} is not in charge of {camp_id}")
        return camp

    def create_camp(self, staff_id: str, camp: Camp) -> Camp:
        staff = self._staff(staff_id)
        _check_storable(camp)
        if camp.camp_id in self.repository.camps:
            raise CampRuleError(f"camp {camp.camp_id} already exists")
        if camp.attendees or camp.committee_members or camp.suggestions or camp.enquiries:
            raise CampRuleError("a new camp cannot carry registrations, enquiries or suggestions")
        if camp.committee_slots > self.max_committee_slots:
            raise CampRuleError(
                f"committee slots are limited to {self.max_committee_slots}"
            )
        camp.staff_in_charge = staff_id
        self.repository.camps.put(camp.camp_id, camp)
        staff.created_camps.append(camp.camp_id)
        self.repository.users.touch()
        logger.info("Camp %s created by %s", camp.camp_id, staff_id)
        return camp

    def edit_camp(self, staff_id: str, camp_id: str, **changes: Any) -> Camp:
        camp = self._owned_camp(staff_id, camp_id)
        unknown = set(changes).difference(Camp.model_fields)
        if unknown:
            raise CampRuleError(f"camps have no field {', '.join(sorted(unknown))}")
        fixed = _FIXED_CAMP_FIELDS.intersection(changes)
        if fixed:
            raise CampRuleError(f"cannot edit {', '.join(sorted(fixed))}")

        data: Dict[str, Any] = camp.model_dump(exclude={"suggestions", "enquiries"})
        data.update(changes)
        edited = Camp.model_validate(data)
        _check_storable(edited)
        if edited.total_slots < len(camp.attendees):
            raise CampRuleError(
                f"{camp_id} already has {len(camp.attendees)} attendee(s)"
            )
        if edited.committee_slots < len(camp.committee_members):
            raise CampRuleError(
                f"{camp_id} already has {len(camp.committee_members)} committee member(s)"
            )
        if edited.committee_slots > self.max_committee_slots:
            raise CampRuleError(
                f"committee slots are limited to {self.max_committee_slots}"
            )

        for name in changes:
            setattr(camp, name, getattr(edited, name))
        self.repository.camps.touch()
        logger.info("Camp %s edited: %s", camp_id, ", ".join(sorted(changes)))
        return camp

    def toggle_visibility(self, staff_id: str, camp_id: str) -> bool:
        camp = self._owned_camp(staff_id, camp_id)
        camp.visible = not camp.visible
        self.repository.camps.touch()
        return camp.visible

    def delete_camp(self, staff_id: str, camp_id: str) -> Camp:
        self._owned_camp(staff_id, camp_id)
        return self.repository.camps.delete(camp_id)

    def _check_can_join(self, user: User, camp: Camp, today: date) -> None:
        if not user.is_student:
            raise CampRuleError(f"{user.user_id} is not a student")
        if not camp.visible:
            raise CampRuleError(f"{camp.camp_id} is not open for registration")
        if camp.faculty != self.open_faculty and camp.faculty != user.faculty:
            raise CampRuleError(f"{camp.camp_id} is only open to {camp.faculty}")
        if today > camp.closing_date:
            raise CampRuleError(f"registration for {camp.camp_id} closed on {camp.closing_date}")
        if user.user_id in camp.attendees or user.user_id in camp.committee_members:
            raise CampRuleError(f"{user.user_id} is already registered for {camp.camp_id}")
        for other_id in user.registered_camps:
            other = self.repository.camps.find(other_id)
            if other is not None and other.overlaps(camp):
                raise CampRuleError(f"{camp.camp_id} clashes with {other_id}")

    def register_attendee(
        self, user_id: str, camp_id: str, today: Optional[date] = None
    ) -> Camp:
        user = self.repository.users.get(user_id)
        camp = self.repository.camps.get(camp_id)
        self._check_can_join(user, camp, today or date.today())
        if camp.remaining_slots == 0:
            raise CampRuleError(f"{camp_id} is full")

        camp.attendees.append(user_id)
        user.registered_camps.append(camp_id)
        self.repository.camps.touch()
        self.repository.users.touch()
        logger.info("%s registered for %s", user_id, camp_id)
        return camp

    def withdraw(self, user_id: str, camp_id: str) -> Camp:
        user = self.repository.users.get(user_id)
        camp = self.repository.camps.get(camp_id)
        if user_id in camp.committee_members:
            raise CampRuleError("committee members cannot withdraw from their camp")
        if user_id not in camp.attendees:
            raise CampRuleError(f"{user_id} is not registered for {camp_id}")

        camp.attendees.remove(user_id)
        if camp_id in user.registered_camps:
            user.registered_camps.remove(camp_id)
        self.repository.camps.touch()
        self.repository.users.touch()
        logger.info("%s withdrew from %s", user_id, camp_id)
        return camp

    def register_committee(
        self, user_id: str, camp_id: str, today: Optional[date] = None
    ) -> User:
        """Promote a student to committee member of ``camp_id``.

        The camp is added to the member's registered camps as part of the
        promotion.
        """
        user = self.repository.users.get(user_id)
        camp = self.repository.camps.get(camp_id)
        if user.role == UserRole.COMMITTEE:
            raise CampRuleError(f"{user_id} already facilitates {user.facilitating_camp}")
        self._check_can_join(user, camp, today or date.today())
        if camp.remaining_committee_slots == 0:
            raise CampRuleError(f"{camp_id} has no committee slot left")

        promoted = user.with_role(
            UserRole.COMMITTEE,
            facilitating_camp=camp_id,
            registered_camps=user.registered_camps + [camp_id],
        )
        self.repository.users.put(user_id, promoted)
        camp.committee_members.append(user_id)
        self.repository.camps.touch()
        logger.info("%s joined the committee of %s", user_id, camp_id)
        return promoted

    def roster(self, camp_id: str, kind: RosterKind = RosterKind.ALL) -> List[RosterEntry]:
        """List the people of a camp: attendees, committee members or both.

        Committee entries carry the member's points. Attendees come first,
        each group in registration order.
        """
        camp = self.repository.camps.get(camp_id)
        kind = RosterKind(kind)
        entries: List[RosterEntry] = []
        if kind in (RosterKind.ALL, RosterKind.ATTENDEE):
            for user_id in camp.attendees:
                entries.append(RosterEntry(self.repository.users.get(user_id), "attendee"))
        if kind in (RosterKind.ALL, RosterKind.COMMITTEE):
            for user_id in camp.committee_members:
                member = self.repository.users.get(user_id)
                entries.append(RosterEntry(member, "committee", member.points))
        return entries
