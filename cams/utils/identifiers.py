from typing import Iterable

EMAIL_SEPARATOR = "@"
FIRST_SEQUENCE_ID = 1


def user_id_from_email(email: str) -> str:
    """Return the user ID part of ``userID@domain``."""
    user_id, separator, domain = email.strip().partition(EMAIL_SEPARATOR)
    if not separator or not user_id or not domain:
        raise ValueError(f"{email!r} is not an email address")
    return user_id


def email_for_user(user_id: str, domain: str) -> str:
    if EMAIL_SEPARATOR in user_id:
        raise ValueError(f"user ID {user_id!r} cannot contain {EMAIL_SEPARATOR!r}")
    return f"{user_id}{EMAIL_SEPARATOR}{domain}"


def next_sequence_id(existing: Iterable[int]) -> int:
    """
    Next integer ID after the largest one in use.
    IDs of deleted records are never handed out again while larger ones exist.
    """
    return max(existing, default=FIRST_SEQUENCE_ID - 1) + 1
