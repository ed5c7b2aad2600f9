"""
Phone number normalization (E.164).
"""

import re

_STRIP_CHARS = re.compile(r"[\s\-().]")
_E164 = re.compile(r"^\+[1-9]\d{7,14}$")


def normalize_phone(phone_number: str) -> str:
    """
    Normalize a phone number to E.164.

    Spaces, dashes, dots and parentheses are removed; a leading ``00`` becomes
    ``+``. Numbers without a country code are rejected rather than guessed.

    Raises:
        ValueError: not a valid E.164 number after cleanup.
    """
    if phone_number is None:
        raise ValueError("Phone number is required")

    cleaned = _STRIP_CHARS.sub("", phone_number.strip())
    if cleaned.startswith("00"):
        cleaned = "+" + cleaned[2:]

    if not _E164.match(cleaned):
        raise ValueError("Phone number must be in international format, e.g. +15551234567")
    return cleaned
