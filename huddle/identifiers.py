"""Short random identifiers for circles, meetups and chat messages."""
from __future__ import annotations

import secrets
import string

URL_SAFE_ALPHABET = string.ascii_letters + string.digits + "_-"

CIRCLE_ID_LENGTH = 8
MEETUP_ID_LENGTH = 8
MESSAGE_ID_LENGTH = 6


def generate_id(size: int) -> str:
    """Return ``size`` random characters drawn from the URL-safe alphabet."""

    if size < 1:
        raise ValueError("Identifier size must be positive")
    return "".join(secrets.choice(URL_SAFE_ALPHABET) for _ in range(size))


__all__ = [
    "CIRCLE_ID_LENGTH",
    "MEETUP_ID_LENGTH",
    "MESSAGE_ID_LENGTH",
    "URL_SAFE_ALPHABET",
    "generate_id",
]
