"""Map a token's issuer id to the trust used to verify it."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union

from .config import JwksTrust, SymmetricTrust, TokenValidationConfig
from .models import UnknownIssuer

logger = logging.getLogger(__name__)

TEST_ISSUER_MARKER = "test"


@dataclass(frozen=True)
class PermissiveTrust:
    """Development-only trust for test issuers: no signature check."""

    issuer: str


TrustDescriptor = Union[JwksTrust, SymmetricTrust, PermissiveTrust]


class IssuerRegistry:
    """Read-only after construction; safe to share without locking."""

    def __init__(self, config: TokenValidationConfig) -> None:
        self._trust: dict[str, JwksTrust | SymmetricTrust] = {
            issuer_config.issuer: issuer_config.trust for issuer_config in config.issuers()
        }
        self._allow_test_tokens = config.allow_test_tokens
        if self._allow_test_tokens:
            logger.warning("Test tokens are accepted without signature verification")

    @property
    def issuers(self) -> tuple[str, ...]:
        return tuple(self._trust)

    def __contains__(self, issuer: object) -> bool:
        return issuer in self._trust

    def resolve(self, issuer: str) -> TrustDescriptor | UnknownIssuer:
        trust = self._trust.get(issuer)
        if trust is not None:
            return trust
        if self._allow_test_tokens and TEST_ISSUER_MARKER in issuer:
            return PermissiveTrust(issuer)
        return UnknownIssuer(issuer)
