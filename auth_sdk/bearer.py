from __future__ import annotations

from .errors import InvalidTokenFormat

BEARER_SCHEME = "Bearer"


def extract_bearer_token(authorization_header: str) -> str:
    """
    Return the token from an ``Authorization: Bearer <token>`` value.

    The scheme is case-sensitive and must be followed by exactly one space.
    Raises InvalidTokenFormat for any other shape.
    """
    prefix = f"{BEARER_SCHEME} "
    if not isinstance(authorization_header, str) or not authorization_header.startswith(prefix):
        raise InvalidTokenFormat(f"Expected '{BEARER_SCHEME} <token>'")

    remainder = authorization_header[len(prefix) :]
    token = remainder.strip()
    if not token or remainder[0].isspace():
        raise InvalidTokenFormat(f"Missing token after '{BEARER_SCHEME}'")
    return token
