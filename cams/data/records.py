"""Fixed column schemas and row codecs for each data file."""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, Tuple, TypeVar

from pydantic import ValidationError

from cams.errors import FormatError
from cams.schemas import Camp, Enquiry, Suggestion, SuggestionStatus, User, UserRole
from cams.utils.identifiers import email_for_user, user_id_from_email

from .codec import (
    FIELD_DELIMITER,
    check_raw_value,
    decode_bool,
    decode_list,
    decode_map,
    decode_optional,
    encode_bool,
    encode_list,
    encode_map,
    encode_optional,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

STUDENT_COLUMNS = ("Name", "Email", "Faculty", "Password", "RegisteredCamps", "Enquiries")
COMMITTEE_COLUMNS = STUDENT_COLUMNS + ("FacilitatingCamp", "Suggestions", "Points")
STAFF_COLUMNS = ("Name", "Email", "Faculty", "Password", "CreatedCamps")
CAMP_COLUMNS = (
    "Name",
    "StartDate",
    "EndDate",
    "ClosingDate",
    "Location",
    "Faculty",
    "StaffInCharge",
    "TotalSlots",
    "CommitteeSlots",
    "Description",
    "Attendees",
    "CommitteeMembers",
    "Visible",
    "Suggestions",
    "Enquiries",
)
ENQUIRY_COLUMNS = ("EnquiryID", "Camp", "Enquirer", "Enquiry", "Replier", "Reply")
SUGGESTION_COLUMNS = ("SuggestionID", "Camp", "Author", "Suggestion", "Status")


class _FieldError(ValueError):
    def __init__(self, column: Optional[str], reason: str) -> None:
        self.column = column
        self.reason = reason
        super().__init__(reason)


def _parse(column: str, raw: str, parser: Callable[[str], T]) -> T:
    try:
        return parser(raw)
    except ValueError as exc:
        raise _FieldError(column, str(exc)) from exc


def _parse_int(column: str, raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise _FieldError(column, f"{raw!r} is not an integer") from exc


def _parse_date(column: str, raw: str) -> date:
    try:
        return date.fromisoformat(raw.strip())
    except ValueError as exc:
        raise _FieldError(column, f"{raw!r} is not an ISO date") from exc


class RecordCodec(Generic[T]):
    """Encode and decode one entity type against a fixed column schema."""

    name = ""
    columns: Tuple[str, ...] = ()
    # model field -> column, used to point validation errors at a column
    field_columns: Dict[str, str] = {}
    id_column = ""

    @property
    def header(self) -> str:
        return FIELD_DELIMITER.join(self.columns)

    def encode(self, entity: T) -> str:
        values = self.encode_fields(entity)
        if len(values) != len(self.columns):
            raise ValueError(f"{self.name}: encoded {len(values)} fields for {len(self.columns)} columns")
        return FIELD_DELIMITER.join(values)

    def decode_line(self, line: str, row: int, file_name: str) -> T:
        raw = line.rstrip("\r\n").split(FIELD_DELIMITER)
        if len(raw) < len(self.columns):
            missing = self.columns[len(raw)]
            raise FormatError(
                file_name,
                row,
                missing,
                f"expected {len(self.columns)} fields, found {len(raw)}",
            )
        if len(raw) > len(self.columns):
            raise FormatError(
                file_name,
                row,
                None,
                f"expected {len(self.columns)} fields, found {len(raw)}",
            )
        fields = dict(zip(self.columns, raw))
        try:
            return self.decode_fields(fields)
        except _FieldError as exc:
            raise FormatError(file_name, row, exc.column, exc.reason) from exc
        except ValidationError as exc:
            error = exc.errors()[0]
            location = error.get("loc") or ()
            column = self.field_columns.get(str(location[0])) if location else None
            raise FormatError(file_name, row, column, error.get("msg", str(exc))) from exc

    def encode_fields(self, entity: T) -> List[str]:
        raise NotImplementedError

    def decode_fields(self, fields: Dict[str, str]) -> T:
        raise NotImplementedError


class _UserCodec(RecordCodec[User]):
    role = UserRole.STUDENT
    id_column = "Email"
    field_columns = {
        "user_id": "Email",
        "name": "Name",
        "faculty": "Faculty",
        "password": "Password",
        "registered_camps": "RegisteredCamps",
        "enquiries": "Enquiries",
        "facilitating_camp": "FacilitatingCamp",
        "suggestions": "Suggestions",
        "points": "Points",
        "created_camps": "CreatedCamps",
    }

    def __init__(self, email_domain: str) -> None:
        self.email_domain = email_domain

    def _identity(self, user: User) -> List[str]:
        return [
            check_raw_value(user.name),
            email_for_user(check_raw_value(user.user_id), self.email_domain),
            check_raw_value(user.faculty),
            check_raw_value(user.password),
        ]

    def _identity_fields(self, fields: Dict[str, str]) -> Dict[str, Any]:
        user_id = _parse("Email", fields["Email"], user_id_from_email)
        return {
            "user_id": user_id,
            "name": fields["Name"],
            "faculty": fields["Faculty"],
            "password": fields["Password"],
            "role": self.role,
        }


class StudentCodec(_UserCodec):
    name = "student"
    columns = STUDENT_COLUMNS
    role = UserRole.STUDENT

    def encode_fields(self, user: User) -> List[str]:
        return self._identity(user) + [
            encode_list(user.registered_camps),
            encode_map(user.enquiries),
        ]

    def decode_fields(self, fields: Dict[str, str]) -> User:
        data = self._identity_fields(fields)
        data["registered_camps"] = decode_list(fields["RegisteredCamps"])
        data["enquiries"] = _parse("Enquiries", fields["Enquiries"], decode_map)
        return User.model_validate(data)


class CommitteeCodec(StudentCodec):
    name = "committee"
    columns = COMMITTEE_COLUMNS
    role = UserRole.COMMITTEE

    def encode_fields(self, user: User) -> List[str]:
        return super().encode_fields(user) + [
            check_raw_value(user.facilitating_camp or ""),
            encode_list(user.suggestions),
            str(user.points),
        ]

    def decode_fields(self, fields: Dict[str, str]) -> User:
        data = self._identity_fields(fields)
        data["registered_camps"] = decode_list(fields["RegisteredCamps"])
        data["enquiries"] = _parse("Enquiries", fields["Enquiries"], decode_map)
        data["facilitating_camp"] = fields["FacilitatingCamp"]
        data["suggestions"] = _parse(
            "Suggestions", fields["Suggestions"], lambda raw: decode_list(raw, int)
        )
        data["points"] = _parse_int("Points", fields["Points"])
        return User.model_validate(data)


class StaffCodec(_UserCodec):
    name = "staff"
    columns = STAFF_COLUMNS
    role = UserRole.STAFF

    def encode_fields(self, user: User) -> List[str]:
        return self._identity(user) + [encode_list(user.created_camps)]

    def decode_fields(self, fields: Dict[str, str]) -> User:
        data = self._identity_fields(fields)
        data["created_camps"] = decode_list(fields["CreatedCamps"])
        return User.model_validate(data)


class CampCodec(RecordCodec[Camp]):
    name = "camp"
    id_column = "Name"
    columns = CAMP_COLUMNS
    field_columns = {
        "camp_id": "Name",
        "start_date": "StartDate",
        "end_date": "EndDate",
        "closing_date": "ClosingDate",
        "location": "Location",
        "faculty": "Faculty",
        "staff_in_charge": "StaffInCharge",
        "total_slots": "TotalSlots",
        "committee_slots": "CommitteeSlots",
        "description": "Description",
        "attendees": "Attendees",
        "committee_members": "CommitteeMembers",
        "visible": "Visible",
        "suggestions": "Suggestions",
        "enquiries": "Enquiries",
    }

    def encode_fields(self, camp: Camp) -> List[str]:
        return [
            check_raw_value(camp.camp_id),
            camp.start_date.isoformat(),
            camp.end_date.isoformat(),
            camp.closing_date.isoformat(),
            check_raw_value(camp.location),
            check_raw_value(camp.faculty),
            check_raw_value(camp.staff_in_charge),
            str(camp.total_slots),
            str(camp.committee_slots),
            encode_optional(camp.description or None),
            encode_list(camp.attendees),
            encode_list(camp.committee_members),
            encode_bool(camp.visible),
            encode_list(sorted(camp.suggestions)),
            encode_list(sorted(camp.enquiries)),
        ]

    def decode_fields(self, fields: Dict[str, str]) -> Camp:
        suggestion_ids = _parse(
            "Suggestions", fields["Suggestions"], lambda raw: decode_list(raw, int)
        )
        enquiry_ids = _parse(
            "Enquiries", fields["Enquiries"], lambda raw: decode_list(raw, int)
        )
        return Camp.model_validate(
            {
                "camp_id": fields["Name"],
                "start_date": _parse_date("StartDate", fields["StartDate"]),
                "end_date": _parse_date("EndDate", fields["EndDate"]),
                "closing_date": _parse_date("ClosingDate", fields["ClosingDate"]),
                "location": fields["Location"],
                "faculty": fields["Faculty"],
                "staff_in_charge": fields["StaffInCharge"],
                "total_slots": _parse_int("TotalSlots", fields["TotalSlots"]),
                "committee_slots": _parse_int("CommitteeSlots", fields["CommitteeSlots"]),
                "description": decode_optional(fields["Description"]) or "",
                "attendees": decode_list(fields["Attendees"]),
                "committee_members": decode_list(fields["CommitteeMembers"]),
                "visible": _parse("Visible", fields["Visible"], decode_bool),
                "suggestions": dict.fromkeys(suggestion_ids),
                "enquiries": dict.fromkeys(enquiry_ids),
            }
        )


class EnquiryCodec(RecordCodec[Enquiry]):
    name = "enquiry"
    id_column = "EnquiryID"
    columns = ENQUIRY_COLUMNS
    field_columns = {
        "enquiry_id": "EnquiryID",
        "camp_id": "Camp",
        "enquirer": "Enquirer",
        "text": "Enquiry",
        "replier": "Replier",
        "reply": "Reply",
    }

    def encode_fields(self, enquiry: Enquiry) -> List[str]:
        return [
            str(enquiry.enquiry_id),
            check_raw_value(enquiry.camp_id),
            check_raw_value(enquiry.enquirer),
            check_raw_value(enquiry.text),
            encode_optional(enquiry.replier),
            encode_optional(enquiry.reply),
        ]

    def decode_fields(self, fields: Dict[str, str]) -> Enquiry:
        return Enquiry.model_validate(
            {
                "enquiry_id": _parse_int("EnquiryID", fields["EnquiryID"]),
                "camp_id": fields["Camp"],
                "enquirer": fields["Enquirer"],
                "text": fields["Enquiry"],
                "replier": decode_optional(fields["Replier"]),
                "reply": decode_optional(fields["Reply"]),
            }
        )


class SuggestionCodec(RecordCodec[Suggestion]):
    name = "suggestion"
    id_column = "SuggestionID"
    columns = SUGGESTION_COLUMNS
    field_columns = {
        "suggestion_id": "SuggestionID",
        "camp_id": "Camp",
        "author": "Author",
        "text": "Suggestion",
        "status": "Status",
    }

    def encode_fields(self, suggestion: Suggestion) -> List[str]:
        return [
            str(suggestion.suggestion_id),
            check_raw_value(suggestion.camp_id),
            check_raw_value(suggestion.author),
            check_raw_value(suggestion.text),
            suggestion.status.value,
        ]

    def decode_fields(self, fields: Dict[str, str]) -> Suggestion:
        return Suggestion.model_validate(
            {
                "suggestion_id": _parse_int("SuggestionID", fields["SuggestionID"]),
                "camp_id": fields["Camp"],
                "author": fields["Author"],
                "text": fields["Suggestion"],
                "status": _parse("Status", fields["Status"].strip().lower(), SuggestionStatus),
            }
        )


def user_codec_for(role: UserRole, email_domain: str) -> _UserCodec:
    """Pick the row layout for a user record from its role tag."""
    match role:
        case UserRole.STUDENT:
            return StudentCodec(email_domain)
        case UserRole.COMMITTEE:
            return CommitteeCodec(email_domain)
        case UserRole.STAFF:
            return StaffCodec(email_domain)
    raise ValueError(f"unknown role {role!r}")


@dataclass
class TableRead(Generic[T]):
    records: List[Tuple[int, T]] = field(default_factory=list)
    errors: List[FormatError] = field(default_factory=list)


def read_table(path: Path, codec: RecordCodec[T]) -> TableRead[T]:
    """Decode every data row of ``path``, collecting malformed rows.

    The header line is skipped and blank lines are ignored. OSError from
    opening or reading the file propagates to the caller.
    """
    result: TableRead[T] = TableRead()
    file_name = path.name
    with path.open("r", encoding="utf-8", newline="") as handle:
        handle.readline()
        for row, line in enumerate(handle, start=1):
            if not line.strip():
                continue
            try:
                result.records.append((row, codec.decode_line(line, row, file_name)))
            except FormatError as exc:
                logger.warning("Skipping malformed row: %s", exc)
                result.errors.append(exc)
    return result


def write_table(path: Path, codec: RecordCodec[T], entities: Iterable[T]) -> Path:
    """Write ``entities`` to a temporary file beside ``path`` and return it.

    The caller moves the file into place; on any failure the temporary file
    is removed and the exception propagates.
    """
    lines = [codec.header] + [codec.encode(entity) for entity in entities]
    handle, temp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
    )
    temp_path = Path(temp_name)
    try:
        with os.fdopen(handle, "w", encoding="utf-8", newline="") as stream:
            for line in lines:
                stream.write(line)
                stream.write("\n")
            stream.flush()
            os.fsync(stream.fileno())
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise
    return temp_path
