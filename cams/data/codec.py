"""Field codec for the delimited data files.

Nested collections are flattened into one field with delimiter tiers:

* ``,`` separates fields of a row,
* ``|`` separates list items,
* ``*`` separates map entries,
* ``=`` separates a map key from its value list.

``#NULL!`` stands for an empty collection. Raw values must not contain a
delimiter of their tier or be the sentinel; values are not escaped, so the
encoders refuse such values instead of writing an ambiguous field.
"""

from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, TypeVar

FIELD_DELIMITER = ","
LIST_DELIMITER = "|"
MAP_ENTRY_DELIMITER = "*"
MAP_KEY_DELIMITER = "="
EMPTY_SENTINEL = "#NULL!"

_LIST_RESERVED = (FIELD_DELIMITER, LIST_DELIMITER)
_MAP_KEY_RESERVED = (FIELD_DELIMITER, LIST_DELIMITER, MAP_ENTRY_DELIMITER, MAP_KEY_DELIMITER)

T = TypeVar("T")


def check_raw_value(value: str, reserved: Iterable[str] = (FIELD_DELIMITER,)) -> str:
    if value == EMPTY_SENTINEL:
        raise ValueError(f"{EMPTY_SENTINEL!r} is reserved for empty collections")
    for delimiter in reserved:
        if delimiter in value:
            raise ValueError(f"value {value!r} contains reserved delimiter {delimiter!r}")
    if "\n" in value or "\r" in value:
        raise ValueError(f"value {value!r} spans several lines")
    return value


def check_map_key(value: str) -> str:
    """A value used as a map key must be free of every delimiter tier."""
    return check_raw_value(value, _MAP_KEY_RESERVED)


def encode_list(items: Sequence[object]) -> str:
    if not items:
        return EMPTY_SENTINEL
    return LIST_DELIMITER.join(check_raw_value(str(item), _LIST_RESERVED) for item in items)


def decode_list(raw: str, cast: Callable[[str], T] = str) -> List[T]:
    if raw == EMPTY_SENTINEL:
        return []
    return [cast(item) for item in raw.split(LIST_DELIMITER)]


def encode_map(mapping: Mapping[str, Sequence[int]]) -> str:
    if not mapping:
        return EMPTY_SENTINEL
    entries = []
    for key, values in mapping.items():
        check_map_key(key)
        entries.append(f"{key}{MAP_KEY_DELIMITER}{encode_list(values)}")
    return MAP_ENTRY_DELIMITER.join(entries)


def decode_map(raw: str) -> Dict[str, List[int]]:
    if raw == EMPTY_SENTINEL:
        return {}
    mapping: Dict[str, List[int]] = {}
    for entry in raw.split(MAP_ENTRY_DELIMITER):
        key, separator, values = entry.partition(MAP_KEY_DELIMITER)
        if not separator:
            raise ValueError(f"map entry {entry!r} has no {MAP_KEY_DELIMITER!r}")
        if key in mapping:
            raise ValueError(f"map key {key!r} appears twice")
        mapping[key] = decode_list(values, int)
    return mapping


def encode_optional(value: Optional[str]) -> str:
    if value is None:
        return ""
    if value == "":
        raise ValueError("empty text is reserved for a missing value")
    return check_raw_value(value)


def decode_optional(raw: str) -> Optional[str]:
    return raw if raw else None


def encode_bool(value: bool) -> str:
    return "true" if value else "false"


def decode_bool(raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in {"true", "yes", "1"}:
        return True
    if lowered in {"false", "no", "0"}:
        return False
    raise ValueError(f"{raw!r} is not a boolean")
