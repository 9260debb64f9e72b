"""Checks that user-supplied values can be written back to the data files.

The record codecs refuse reserved text only at export time; services run
these checks when a value enters the repository instead.
"""

from typing import Optional

from cams.data.codec import check_map_key, check_raw_value, encode_optional
from cams.errors import CampRuleError


def storable_text(value: str, label: str) -> str:
    try:
        return check_raw_value(value)
    except ValueError as exc:
        raise CampRuleError(f"{label} cannot be stored: {exc}") from exc


def storable_optional_text(value: Optional[str], label: str) -> Optional[str]:
    try:
        encode_optional(value)
    except ValueError as exc:
        raise CampRuleError(f"{label} cannot be stored: {exc}") from exc
    return value


def storable_camp_id(value: str) -> str:
    """Camp IDs are also map keys and list items in the user files."""
    try:
        return check_map_key(value)
    except ValueError as exc:
        raise CampRuleError(f"camp name cannot be stored: {exc}") from exc
