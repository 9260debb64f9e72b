from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict

import yaml

_CONFIG_PATH = Path(__file__).resolve().parent / "config.yaml"

_DEFAULT_DATA_SETTINGS = {
    "directory": "data",
    "email_domain": "e.ntu.edu.sg",
    "open_faculty": "NTU",
    "files": {
        "student": "student.csv",
        "committee": "committee.csv",
        "staff": "staff.csv",
        "camp": "camp.csv",
        "enquiry": "enquiry.csv",
        "suggestion": "suggestion.csv",
    },
}
_DEFAULT_CAMP_RULES = {
    "max_committee_slots": 10,
}
_DEFAULT_POINTS = {
    "suggestion_created": 1,
    "suggestion_approved": 1,
    "enquiry_replied": 1,
}


def load_config() -> Dict[str, Any]:
    """Load the application config from YAML, returning an empty mapping on error."""
    try:
        with _CONFIG_PATH.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
            if isinstance(data, dict):
                return data
            logging.warning(
                "Config file %s is not a mapping; using defaults.", _CONFIG_PATH
            )
            return {}
    except FileNotFoundError:
        logging.warning(
            "Configuration file %s not found; using defaults.", _CONFIG_PATH
        )
        return {}
    except (OSError, yaml.YAMLError) as exc:
        logging.error("Failed to load configuration from %s: %s", _CONFIG_PATH, exc)
        return {}


def _coerce_text(value: Any, fallback: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return fallback


def _coerce_non_negative_int(value: Any, fallback: int) -> int:
    try:
        candidate = int(value)
    except (TypeError, ValueError):
        return fallback
    return candidate if candidate >= 0 else fallback


def get_data_settings() -> Dict[str, Any]:
    """
    Return data file settings.

    Priority for the directory and email domain:
    1) CAMS_DATA_DIR / CAMS_EMAIL_DOMAIN env vars
    2) config.yaml data section
    3) defaults
    """
    config = load_config()
    section = config.get("data") or {}
    defaults = _DEFAULT_DATA_SETTINGS

    raw_files = section.get("files") if isinstance(section.get("files"), dict) else {}
    files = {
        table: _coerce_text(raw_files.get(table), default_name)
        for table, default_name in defaults["files"].items()
    }

    directory = os.getenv("CAMS_DATA_DIR") or section.get("directory")
    email_domain = os.getenv("CAMS_EMAIL_DOMAIN") or section.get("email_domain")
    return {
        "directory": Path(_coerce_text(directory, defaults["directory"])),
        "email_domain": _coerce_text(email_domain, defaults["email_domain"]),
        "open_faculty": _coerce_text(section.get("open_faculty"), defaults["open_faculty"]),
        "files": files,
    }


def get_camp_rules() -> Dict[str, int]:
    config = load_config()
    section = config.get("camps") or {}
    return {
        "max_committee_slots": _coerce_non_negative_int(
            section.get("max_committee_slots"), _DEFAULT_CAMP_RULES["max_committee_slots"]
        ),
    }


def get_points_settings() -> Dict[str, int]:
    """Return the points a committee member earns per action."""
    config = load_config()
    section = config.get("points") or {}
    return {
        key: _coerce_non_negative_int(section.get(key), default)
        for key, default in _DEFAULT_POINTS.items()
    }
