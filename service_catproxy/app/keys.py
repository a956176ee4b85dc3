"""
Cache key parsing for proxy request paths.
"""

import re

from shared.errors import InvalidKeyError

# ASCII only: plain \d would also accept other Unicode decimal digits
KEY_PATTERN = re.compile(r"^[0-9]{3}$")


def key_from_path(path: str) -> str:
    """Strip the leading separator from a request path."""
    return path[1:] if path.startswith("/") else path


def parse_key(candidate: str) -> str:
    """Return ``candidate`` if it is a 3-digit code, else raise InvalidKeyError."""
    if not KEY_PATTERN.fullmatch(candidate):
        raise InvalidKeyError(candidate)
    return candidate
