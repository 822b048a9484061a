"""Exceptions for failures that stop validation from completing.

Routine verdicts about a token (expired, bad signature, unknown issuer) are
returned as a ``ValidationOutcome`` and never raised. Do not put tokens,
secrets or key material in exception messages.
"""

from __future__ import annotations

from typing import Any


class AuthError(Exception):
    """Base class for every error raised by this package."""

    pass


class ConfigurationError(AuthError, ValueError):
    """Raised at construction for duplicate issuers, bad URLs or bad secrets."""

    pass


class InvalidTokenFormat(AuthError):
    """Raised when an Authorization header or token cannot be parsed."""

    pass


class JwksFetchError(AuthError):
    """Raised when a JWKS document cannot be turned into a key set."""

    def __init__(self, message: str, *, url: str) -> None:
        super().__init__(f"{message} (url={url})")
        self.url = url


class JwksNetworkError(JwksFetchError):
    """Transport failure or non-success status while fetching a JWKS."""

    pass


class JwksParseError(JwksFetchError):
    """The JWKS document is malformed or holds a key we cannot load."""

    def __init__(self, message: str, *, url: str, kid: str | None = None) -> None:
        if kid is not None:
            message = f"{message} kid={kid}"
        super().__init__(message, url=url)
        self.kid = kid


class ValidationError(AuthError):
    """Raised by ``get_user_from_token`` when the token did not validate."""

    def __init__(self, outcome: Any) -> None:
        super().__init__(f"Token not accepted: {outcome.describe()}")
        self.outcome = outcome
