"""Exceptions raised by the CAMs data layer."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Sequence

if TYPE_CHECKING:
    from cams.services.resolver import Violation


class CampDataError(Exception):
    """Base class for every error raised by the data layer."""


class FormatError(CampDataError):
    """A data row could not be decoded.

    ``row`` counts data rows from 1; the header line is not a row.
    When an import produced several malformed rows the first one is raised
    and ``errors`` holds all of them.
    """

    def __init__(
        self,
        file_name: str,
        row: int,
        field: Optional[str],
        reason: str,
    ) -> None:
        self.file_name = file_name
        self.row = row
        self.field = field
        self.reason = reason
        self.errors: List["FormatError"] = [self]
        location = f"{file_name} row {row}"
        if field:
            location = f"{location} field {field}"
        super().__init__(f"{location}: {reason}")

    @classmethod
    def collect(cls, errors: Sequence["FormatError"]) -> "FormatError":
        first = errors[0]
        first.errors = list(errors)
        return first


class ReferentialIntegrityError(CampDataError):
    """One or more cross-references are dangling or inconsistent."""

    def __init__(self, violations: Sequence["Violation"]) -> None:
        self.violations = list(violations)
        lines = [violation.describe() for violation in self.violations]
        summary = f"{len(lines)} referential integrity violation(s)"
        super().__init__("\n".join([summary] + lines))


class LoadError(CampDataError):
    """The data directory itself cannot be used."""


class ExportError(CampDataError):
    """Writing or replacing the data files failed."""


class NotFoundError(CampDataError, LookupError):
    def __init__(self, entity_type: str, entity_id: object) -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} {entity_id!r} not found")


class StoreStateError(CampDataError):
    """An operation is not allowed in the store's current lifecycle state."""


class SuggestionStateError(CampDataError):
    """A suggestion was changed after it had been approved or rejected."""


class CampRuleError(CampDataError):
    """A runtime operation broke one of the camp rules."""
