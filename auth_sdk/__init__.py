"""
Validate bearer tokens from JWKS identity providers and a shared-secret issuer.

Build a ``TokenValidator`` once from a ``TokenValidationConfig`` and share it;
``await validator.validate_token(token)`` returns a ``ValidationOutcome``.
"""

from .bearer import extract_bearer_token
from .config import IssuerConfig, JwksTrust, SymmetricTrust, TokenValidationConfig
from .errors import (
    AuthError,
    ConfigurationError,
    InvalidTokenFormat,
    JwksFetchError,
    JwksNetworkError,
    JwksParseError,
    ValidationError,
)
from .jwks_cache import JWKSCache
from .jwks_fetcher import JWKSFetcher
from .models import Claims, Expired, Invalid, UnknownIssuer, Valid, ValidationOutcome
from .registry import IssuerRegistry, PermissiveTrust
from .user import User, project_user
from .validator import TokenValidator, validate_token

__all__ = [
    "AuthError",
    "Claims",
    "ConfigurationError",
    "Expired",
    "Invalid",
    "InvalidTokenFormat",
    "IssuerConfig",
    "IssuerRegistry",
    "JWKSCache",
    "JWKSFetcher",
    "JwksFetchError",
    "JwksNetworkError",
    "JwksParseError",
    "JwksTrust",
    "PermissiveTrust",
    "SymmetricTrust",
    "TokenValidationConfig",
    "TokenValidator",
    "UnknownIssuer",
    "User",
    "Valid",
    "ValidationError",
    "ValidationOutcome",
    "extract_bearer_token",
    "project_user",
    "validate_token",
]
