"""Cross-reference validation, linking and cascade deletes across the stores."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

from cams.data.repository import Repository
from cams.errors import ReferentialIntegrityError
from cams.schemas import Camp, Enquiry, Suggestion, User, UserRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Violation:
    entity_type: str
    entity_id: str
    field: str
    reference: str
    message: str
    dangling: bool = False

    def describe(self) -> str:
        return (
            f"{self.entity_type} {self.entity_id}: {self.field} -> "
            f"{self.reference}: {self.message}"
        )


class CrossReferenceResolver:
    """Checks and maintains every ID reference held between the stores.

    Policy for committee members: the facilitating camp must already be one
    of the member's registered camps. A mismatch is reported, never repaired
    silently.
    """

    def __init__(self, repository: Repository) -> None:
        self.repository = repository
        self._attached = False

    # Validation

    def validate(self) -> List[Violation]:
        violations: List[Violation] = []
        for user in self.repository.users:
            violations.extend(self._check_user(user))
        for camp in self.repository.camps:
            violations.extend(self._check_camp(camp))
        for enquiry in self.repository.enquiries:
            violations.extend(self._check_enquiry(enquiry))
        for suggestion in self.repository.suggestions:
            violations.extend(self._check_suggestion(suggestion))
        return violations

    def resolve(self) -> None:
        """Validate everything, then link camps to their enquiries and suggestions."""
        violations = self.validate()
        if violations:
            for violation in violations:
                logger.error("Integrity violation: %s", violation.describe())
            raise ReferentialIntegrityError(violations)
        self.link()

    def link(self) -> None:
        enquiries = self.repository.enquiries
        suggestions = self.repository.suggestions
        for camp in self.repository.camps:
            for enquiry_id in list(camp.enquiries):
                camp.enquiries[enquiry_id] = enquiries.find(enquiry_id)
            for suggestion_id in list(camp.suggestions):
                camp.suggestions[suggestion_id] = suggestions.find(suggestion_id)

    def _check_user(self, user: User) -> List[Violation]:
        camps = self.repository.camps
        found: List[Violation] = []

        def report(field: str, reference: object, message: str, dangling: bool = False) -> None:
            found.append(
                Violation("user", user.user_id, field, str(reference), message, dangling)
            )

        for camp_id in user.registered_camps:
            camp = camps.find(camp_id)
            if camp is None:
                report("registered_camps", camp_id, "camp does not exist", True)
            elif user.user_id not in camp.attendees and user.user_id not in camp.committee_members:
                report("registered_camps", camp_id, "camp does not list this user")
        for camp_id, enquiry_ids in user.enquiries.items():
            if camp_id not in camps:
                report("enquiries", camp_id, "camp does not exist", True)
            for enquiry_id in enquiry_ids:
                enquiry = self.repository.enquiries.find(enquiry_id)
                if enquiry is None:
                    report("enquiries", enquiry_id, "enquiry does not exist", True)
                elif enquiry.enquirer != user.user_id or enquiry.camp_id != camp_id:
                    report("enquiries", enquiry_id, "enquiry belongs to another user or camp")

        if user.role == UserRole.COMMITTEE:
            camp = camps.find(user.facilitating_camp)
            if camp is None:
                report("facilitating_camp", user.facilitating_camp, "camp does not exist", True)
            else:
                if user.facilitating_camp not in user.registered_camps:
                    report("facilitating_camp", camp.camp_id, "facilitating camp is not registered")
                if user.user_id not in camp.committee_members:
                    report("facilitating_camp", camp.camp_id, "camp does not list this committee member")
            for suggestion_id in user.suggestions:
                suggestion = self.repository.suggestions.find(suggestion_id)
                if suggestion is None:
                    report("suggestions", suggestion_id, "suggestion does not exist", True)
                elif suggestion.author != user.user_id:
                    report("suggestions", suggestion_id, "suggestion has another author")

        for camp_id in user.created_camps:
            camp = camps.find(camp_id)
            if camp is None:
                report("created_camps", camp_id, "camp does not exist", True)
            elif camp.staff_in_charge != user.user_id:
                report("created_camps", camp_id, "camp is in charge of another staff member")
        return found

    def _check_camp(self, camp: Camp) -> List[Violation]:
        users = self.repository.users
        found: List[Violation] = []

        def report(field: str, reference: object, message: str, dangling: bool = False) -> None:
            found.append(Violation("camp", camp.camp_id, field, str(reference), message, dangling))

        staff = users.find(camp.staff_in_charge)
        if staff is None:
            report("staff_in_charge", camp.staff_in_charge, "user does not exist", True)
        elif not staff.is_staff:
            report("staff_in_charge", staff.user_id, "user is not staff")
        elif camp.camp_id not in staff.created_camps:
            report("staff_in_charge", staff.user_id, "staff member does not list this camp")

        for user_id in camp.attendees:
            attendee = users.find(user_id)
            if attendee is None:
                report("attendees", user_id, "user does not exist", True)
            elif not attendee.is_student:
                report("attendees", user_id, "user is not a student")
            elif camp.camp_id not in attendee.registered_camps:
                report("attendees", user_id, "attendee has not registered for this camp")
        for user_id in camp.committee_members:
            member = users.find(user_id)
            if member is None:
                report("committee_members", user_id, "user does not exist", True)
            elif member.role != UserRole.COMMITTEE or member.facilitating_camp != camp.camp_id:
                report("committee_members", user_id, "user does not facilitate this camp")

        if len(camp.attendees) > camp.total_slots:
            report(
                "attendees",
                len(camp.attendees),
                f"attendees exceed capacity of {camp.total_slots}",
            )
        if len(camp.committee_members) > camp.committee_slots:
            report(
                "committee_members",
                len(camp.committee_members),
                f"committee exceeds {camp.committee_slots} slot(s)",
            )

        for enquiry_id in camp.enquiries:
            enquiry = self.repository.enquiries.find(enquiry_id)
            if enquiry is None:
                report("enquiries", enquiry_id, "enquiry does not exist", True)
            elif enquiry.camp_id != camp.camp_id:
                report("enquiries", enquiry_id, "enquiry is about another camp")
        for suggestion_id in camp.suggestions:
            suggestion = self.repository.suggestions.find(suggestion_id)
            if suggestion is None:
                report("suggestions", suggestion_id, "suggestion does not exist", True)
            elif suggestion.camp_id != camp.camp_id:
                report("suggestions", suggestion_id, "suggestion is about another camp")
        return found

    def _check_enquiry(self, enquiry: Enquiry) -> List[Violation]:
        found: List[Violation] = []

        def report(field: str, reference: object, message: str, dangling: bool = False) -> None:
            found.append(
                Violation("enquiry", str(enquiry.enquiry_id), field, str(reference), message, dangling)
            )

        camp = self.repository.camps.find(enquiry.camp_id)
        if camp is None:
            report("camp_id", enquiry.camp_id, "camp does not exist", True)
        elif enquiry.enquiry_id not in camp.enquiries:
            report("camp_id", camp.camp_id, "camp does not list this enquiry")
        enquirer = self.repository.users.find(enquiry.enquirer)
        if enquirer is None:
            report("enquirer", enquiry.enquirer, "user does not exist", True)
        elif enquiry.enquiry_id not in enquirer.enquiries.get(enquiry.camp_id, []):
            report("enquirer", enquirer.user_id, "enquirer does not list this enquiry")
        if enquiry.replier is not None and enquiry.replier not in self.repository.users:
            report("replier", enquiry.replier, "user does not exist", True)
        return found

    def _check_suggestion(self, suggestion: Suggestion) -> List[Violation]:
        found: List[Violation] = []

        def report(field: str, reference: object, message: str, dangling: bool = False) -> None:
            found.append(
                Violation(
                    "suggestion", str(suggestion.suggestion_id), field, str(reference), message, dangling
                )
            )

        camp = self.repository.camps.find(suggestion.camp_id)
        if camp is None:
            report("camp_id", suggestion.camp_id, "camp does not exist", True)
        elif suggestion.suggestion_id not in camp.suggestions:
            report("camp_id", camp.camp_id, "camp does not list this suggestion")
        author = self.repository.users.find(suggestion.author)
        if author is None:
            report("author", suggestion.author, "user does not exist", True)
        elif suggestion.suggestion_id not in author.suggestions:
            report("author", author.user_id, "author does not list this suggestion")
        return found

    # Pruning (used when the caller accepts a failed import)

    def prune(self) -> int:
        """Remove dangling references from stores that are still loading.

        Returns the number of references removed. Only dangling IDs are
        touched, except that a camp whose staff in charge is missing is
        dropped together with everything referring to it. Consistency
        problems are left for the caller to review.
        """
        repo = self.repository
        removed = 0

        # Camps whose staff in charge is missing are dropped first, so the
        # passes below clear everything that refers to them.
        for camp in repo.camps.list():
            if camp.staff_in_charge not in repo.users:
                logger.warning(
                    "Dropping camp %s: staff in charge %s does not exist",
                    camp.camp_id,
                    camp.staff_in_charge,
                )
                repo.camps.evict(camp.camp_id)
                removed += 1

        for enquiry in repo.enquiries.list():
            if enquiry.camp_id not in repo.camps or enquiry.enquirer not in repo.users:
                repo.enquiries.evict(enquiry.enquiry_id)
                removed += 1
            elif enquiry.replier is not None and enquiry.replier not in repo.users:
                enquiry.replier = None
                removed += 1
        for suggestion in repo.suggestions.list():
            if suggestion.camp_id not in repo.camps or suggestion.author not in repo.users:
                repo.suggestions.evict(suggestion.suggestion_id)
                removed += 1

        for camp in repo.camps:
            before = len(camp.attendees) + len(camp.committee_members)
            camp.attendees = [uid for uid in camp.attendees if uid in repo.users]
            camp.committee_members = [uid for uid in camp.committee_members if uid in repo.users]
            removed += before - len(camp.attendees) - len(camp.committee_members)
            for enquiry_id in [eid for eid in camp.enquiries if eid not in repo.enquiries]:
                del camp.enquiries[enquiry_id]
                removed += 1
            for suggestion_id in [sid for sid in camp.suggestions if sid not in repo.suggestions]:
                del camp.suggestions[suggestion_id]
                removed += 1

        for user in repo.users.list():
            before = _reference_count(user)
            registered = [cid for cid in user.registered_camps if cid in repo.camps]
            enquiries = {}
            for camp_id, enquiry_ids in user.enquiries.items():
                kept = [eid for eid in enquiry_ids if eid in repo.enquiries]
                if camp_id in repo.camps and kept:
                    enquiries[camp_id] = kept
            created = [cid for cid in user.created_camps if cid in repo.camps]
            if user.role == UserRole.COMMITTEE and user.facilitating_camp not in repo.camps:
                pruned = user.with_role(
                    UserRole.STUDENT,
                    registered_camps=registered,
                    enquiries=enquiries,
                    facilitating_camp=None,
                    suggestions=[],
                    points=0,
                )
            else:
                pruned = user.model_copy(
                    update={
                        "registered_camps": registered,
                        "enquiries": enquiries,
                        "created_camps": created,
                        "suggestions": [
                            sid for sid in user.suggestions if sid in repo.suggestions
                        ],
                    }
                )
            removed += before - _reference_count(pruned)
            repo.users.load(pruned)

        if removed:
            logger.warning("Pruned %d dangling reference(s)", removed)
        return removed

    # Cascade deletes

    def attach(self) -> None:
        """Register the cascade-delete hooks on the repository's stores."""
        if self._attached:
            return
        self.repository.camps.on_delete(self._camp_deleted)
        self.repository.users.on_delete(self._user_deleted)
        self.repository.enquiries.on_delete(self._enquiry_deleted)
        self.repository.suggestions.on_delete(self._suggestion_deleted)
        self._attached = True

    def _camp_deleted(self, camp: Camp) -> None:
        repo = self.repository
        camp_id = camp.camp_id
        for enquiry in repo.enquiries.list():
            if enquiry.camp_id == camp_id:
                repo.enquiries.delete(enquiry.enquiry_id)
        for suggestion in repo.suggestions.list():
            if suggestion.camp_id == camp_id:
                repo.suggestions.delete(suggestion.suggestion_id)

        for user in repo.users.list():
            if camp_id in user.registered_camps:
                user.registered_camps.remove(camp_id)
            user.enquiries.pop(camp_id, None)
            if camp_id in user.created_camps:
                user.created_camps.remove(camp_id)
            if user.role == UserRole.COMMITTEE and user.facilitating_camp == camp_id:
                logger.info("Demoting %s: facilitated camp %s was deleted", user.user_id, camp_id)
                repo.users.put(
                    user.user_id,
                    user.with_role(
                        UserRole.STUDENT,
                        facilitating_camp=None,
                        suggestions=[],
                        points=0,
                    ),
                )
        repo.users.touch()

    def _user_deleted(self, user: User) -> None:
        repo = self.repository
        user_id = user.user_id
        for enquiry in repo.enquiries.list():
            if enquiry.enquirer == user_id:
                repo.enquiries.delete(enquiry.enquiry_id)
            elif enquiry.replier == user_id:
                enquiry.replier = None
                repo.enquiries.touch()
        for suggestion in repo.suggestions.list():
            if suggestion.author == user_id:
                repo.suggestions.delete(suggestion.suggestion_id)
        for camp in repo.camps.list():
            if camp.staff_in_charge == user_id:
                repo.camps.delete(camp.camp_id)
                continue
            if user_id in camp.attendees or user_id in camp.committee_members:
                camp.attendees = [uid for uid in camp.attendees if uid != user_id]
                camp.committee_members = [uid for uid in camp.committee_members if uid != user_id]
                repo.camps.touch()

    def _enquiry_deleted(self, enquiry: Enquiry) -> None:
        camp = self.repository.camps.find(enquiry.camp_id)
        if camp is not None and enquiry.enquiry_id in camp.enquiries:
            del camp.enquiries[enquiry.enquiry_id]
            self.repository.camps.touch()
        enquirer = self.repository.users.find(enquiry.enquirer)
        if enquirer is None:
            return
        enquiry_ids = enquirer.enquiries.get(enquiry.camp_id)
        if enquiry_ids and enquiry.enquiry_id in enquiry_ids:
            enquiry_ids.remove(enquiry.enquiry_id)
            if not enquiry_ids:
                del enquirer.enquiries[enquiry.camp_id]
            self.repository.users.touch()

    def _suggestion_deleted(self, suggestion: Suggestion) -> None:
        camp = self.repository.camps.find(suggestion.camp_id)
        if camp is not None and suggestion.suggestion_id in camp.suggestions:
            del camp.suggestions[suggestion.suggestion_id]
            self.repository.camps.touch()
        author = self.repository.users.find(suggestion.author)
        if author is not None and suggestion.suggestion_id in author.suggestions:
            author.suggestions.remove(suggestion.suggestion_id)
            self.repository.users.touch()


def _reference_count(user: User) -> int:
    return (
        len(user.registered_camps)
        + sum(len(ids) for ids in user.enquiries.values())
        + len(user.created_camps)
        + len(user.suggestions)
        + (1 if user.facilitating_camp else 0)
    )
