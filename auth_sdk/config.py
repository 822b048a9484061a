"""Immutable validator configuration, checked eagerly at construction."""

from __future__ import annotations

import base64
import binascii
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from urllib.parse import urlparse

from .errors import ConfigurationError
from .logging_config import configure_logging
from .settings import AuthSettings, get_settings


@dataclass(frozen=True)
class JwksTrust:
    """Asymmetric trust: keys are published at ``jwks_url`` and rotate."""

    jwks_url: str


@dataclass(frozen=True)
class SymmetricTrust:
    """Shared-secret trust: tokens are HMAC-signed with ``secret``."""

    secret: bytes = field(repr=False)


@dataclass(frozen=True)
class IssuerConfig:
    issuer: str
    trust: JwksTrust | SymmetricTrust


@dataclass(frozen=True)
class TokenValidationConfig:
    """
    Everything a ``TokenValidator`` needs, fixed for the validator's lifetime.

    Inputs:
        jwks_issuers: ``{issuer: jwks_url}`` mapping or ``(issuer, jwks_url)``
            pairs. Issuer ids must be unique; URLs absolute http(s).
        ship_symmetric_key: Base64 secret of the local SHIP issuer, if any.
        allow_test_tokens: Accept issuers containing ``"test"`` without
            signature verification. Development only.

    Tuning:
        ship_issuer: Issuer id the SHIP secret is registered under (default "ship").
        role_client: ``resource_access`` client whose roles take precedence.
        jwks_cache_ttl_seconds: How long fetched key sets stay fresh (default 3600).
        jwks_cache_max_issuers: Key sets kept before LRU eviction (default 10).
        jwks_min_refresh_interval_seconds: Minimum gap between two fetches of
            one endpoint (default 10); unknown kids inside it stay misses.
        http_timeout_seconds: Timeout of one JWKS request (default 10).
        clock_skew_seconds: Tolerance applied to exp/nbf (default 0).
    """

    jwks_issuers: Mapping[str, str] | Iterable[tuple[str, str]] = ()
    ship_symmetric_key: str | None = field(default=None, repr=False)
    allow_test_tokens: bool = False
    ship_issuer: str = "ship"
    role_client: str | None = None
    jwks_cache_ttl_seconds: int = 3600
    jwks_cache_max_issuers: int = 10
    jwks_min_refresh_interval_seconds: float = 10.0
    http_timeout_seconds: float = 10.0
    clock_skew_seconds: int = 0

    def __post_init__(self) -> None:
        pairs = _issuer_pairs(self.jwks_issuers)
        object.__setattr__(self, "jwks_issuers", pairs)

        seen: set[str] = set()
        for issuer, url in pairs:
            if not isinstance(issuer, str) or not issuer.strip():
                raise ConfigurationError("JWKS issuer id must be a non-empty string")
            if issuer in seen:
                raise ConfigurationError(f"Duplicate issuer: {issuer}")
            seen.add(issuer)
            _check_jwks_url(issuer, url)

        if self.ship_symmetric_key is not None:
            if not self.ship_issuer:
                raise ConfigurationError("ship_issuer must be set when a SHIP key is configured")
            if self.ship_issuer in seen:
                raise ConfigurationError(f"Duplicate issuer: {self.ship_issuer}")
            decode_secret(self.ship_symmetric_key)

        if self.jwks_cache_ttl_seconds <= 0:
            raise ConfigurationError("jwks_cache_ttl_seconds must be positive")
        if self.jwks_cache_max_issuers <= 0:
            raise ConfigurationError("jwks_cache_max_issuers must be positive")
        if not 0 <= self.jwks_min_refresh_interval_seconds <= self.jwks_cache_ttl_seconds:
            raise ConfigurationError("jwks_min_refresh_interval_seconds must be between 0 and the cache TTL")
        if self.http_timeout_seconds <= 0:
            raise ConfigurationError("http_timeout_seconds must be positive")
        if self.clock_skew_seconds < 0:
            raise ConfigurationError("clock_skew_seconds must not be negative")

    def issuers(self) -> tuple[IssuerConfig, ...]:
        """Every configured issuer with its trust kind."""
        configs = [IssuerConfig(issuer, JwksTrust(url)) for issuer, url in self.jwks_issuers]
        if self.ship_symmetric_key is not None:
            configs.append(
                IssuerConfig(self.ship_issuer, SymmetricTrust(decode_secret(self.ship_symmetric_key)))
            )
        return tuple(configs)

    @classmethod
    def from_settings(cls, settings: AuthSettings) -> TokenValidationConfig:
        return cls(
            jwks_issuers=dict(settings.jwks_issuers),
            ship_symmetric_key=settings.ship_symmetric_key,
            allow_test_tokens=settings.allow_test_tokens,
            ship_issuer=settings.ship_issuer,
            role_client=settings.role_client,
            jwks_cache_ttl_seconds=settings.jwks_cache_ttl_seconds,
            jwks_cache_max_issuers=settings.jwks_cache_max_issuers,
            jwks_min_refresh_interval_seconds=settings.jwks_min_refresh_interval_seconds,
            http_timeout_seconds=settings.http_timeout_seconds,
            clock_skew_seconds=settings.clock_skew_seconds,
        )

    @classmethod
    def from_environ(cls) -> TokenValidationConfig:
        """Build from ``AUTH_SDK_*`` variables and apply ``AUTH_SDK_LOG_LEVEL``."""
        settings = get_settings()
        try:
            configure_logging(settings.log_level)
        except ValueError as e:
            raise ConfigurationError(f"Unknown log level: {settings.log_level}") from e
        return cls.from_settings(settings)


def decode_secret(value: str) -> bytes:
    """Decode a base64 secret (standard or url-safe alphabet, padding optional)."""
    text = value.strip().replace("-", "+").replace("_", "/")
    text += "=" * (-len(text) % 4)
    try:
        secret = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ConfigurationError("SHIP symmetric key is not valid base64") from e
    if not secret:
        raise ConfigurationError("SHIP symmetric key is empty")
    return secret


def _issuer_pairs(value: Mapping[str, str] | Iterable[tuple[str, str]]) -> tuple[tuple[str, str], ...]:
    items = value.items() if isinstance(value, Mapping) else value
    pairs = []
    for item in items:
        try:
            issuer, url = item
        except (TypeError, ValueError) as e:
            raise ConfigurationError("jwks_issuers entries must be (issuer, jwks_url) pairs") from e
        pairs.append((issuer, url))
    return tuple(pairs)


def _check_jwks_url(issuer: str, url: str) -> None:
    if not isinstance(url, str):
        raise ConfigurationError(f"JWKS URL for {issuer} must be a string")
    parsed = urlparse(url)
    if parsed.scheme not in ("https", "http") or not parsed.netloc:
        raise ConfigurationError(f"JWKS URL for {issuer} must be an absolute http(s) URL: {url!r}")
