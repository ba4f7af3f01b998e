"""Value objects and helpers for the identity domain.

Identifiers are ULID strings: sortable, distribution-friendly and easy to
validate. Lookup keys are normalized copies of display values.
"""

from __future__ import annotations

import unicodedata
from uuid import uuid4

from ulid import ULID

MAX_NAME_LENGTH = 256


def new_identifier() -> str:
    """Generate a new entity identifier using ULID."""
    return str(ULID())


def is_valid_identifier(value: str | None) -> bool:
    """Check whether value parses as a ULID.

    Args:
        value: Candidate identifier

    Returns:
        True if value is a well-formed ULID string
    """
    if not value:
        return False
    try:
        ULID.from_str(value)
    except ValueError:
        return False
    return True


def new_concurrency_stamp() -> str:
    """Generate a fresh opaque concurrency stamp."""
    return str(uuid4())


def normalize_key(value: str | None) -> str | None:
    """Normalize a display value into its lookup form.

    Applies Unicode NFC composition, then upper-cases the result, so that
    "bob", "Bob" and "BOB" share one lookup key.

    Args:
        value: Display value such as a user name, email or role name

    Returns:
        The normalized key, or None when value is None
    """
    if value is None:
        return None
    return unicodedata.normalize("NFC", value).upper()


def is_blank(value: str | None) -> bool:
    """True for None, the empty string and whitespace-only strings."""
    return value is None or not value.strip()
