"""
Validate bearer tokens from several issuers and report a single verdict.

Background for newcomers:
    A token is three base64url segments: header, payload, signature. Nothing
    in the header or payload can be trusted until the signature checks out,
    yet we must read the payload's ``iss`` first to know *which* key to check
    the signature with. So validation is one linear pass:

    1. Parse the segments (bad shape -> ``Invalid("format")``, no network).
    2. Expiry (``exp``) -> ``Expired``. Reported on its own because callers
       branch on it to start a refresh flow.
    3. Resolve the issuer -> ``UnknownIssuer`` if nobody trusts it.
    4. Get the key and verify the signature:
       * JWKS issuers: look the ``kid`` up in the key cache, refresh once on
         a miss (at most one fetch per endpoint every
         ``jwks_min_refresh_interval_seconds``). A refresh that cannot
         reach the provider raises ``JwksFetchError``: "the identity provider
         is down" is not the same answer as "this token is bad".
       * The SHIP issuer: HMAC with the shared secret. No I/O.
    5. Not-before (``nbf``) -> ``Invalid("not yet valid")``.
    6. ``Valid(claims)``.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable

import jwt

from .bearer import extract_bearer_token
from .config import JwksTrust, SymmetricTrust, TokenValidationConfig
from .errors import InvalidTokenFormat, ValidationError
from .jwks_cache import JWKSCache
from .jwks_fetcher import JWKSFetcher
from .models import (
    REASON_FORMAT,
    REASON_MISSING_ISSUER,
    REASON_MISSING_KEY_ID,
    REASON_NOT_YET_VALID,
    REASON_SIGNATURE,
    REASON_UNKNOWN_KEY_ID,
    Claims,
    Expired,
    Invalid,
    UnknownIssuer,
    Valid,
    ValidationOutcome,
)
from .registry import IssuerRegistry
from .user import User, project_user

logger = logging.getLogger(__name__)

SYMMETRIC_ALGORITHMS = ("HS256", "HS384", "HS512")

_jws = jwt.PyJWS()


def _decode_unverified(token: str) -> tuple[dict[str, Any], Claims]:
    """
    Read header and claims **without** verifying the signature.

    Only used to pick the issuer and key; nothing returned here is trusted
    until ``_signature_ok`` passes.
    """
    if not isinstance(token, str) or token.count(".") != 2:
        raise InvalidTokenFormat("Token must have three segments")
    try:
        header = jwt.get_unverified_header(token)
        payload = json.loads(_jws.decode(token, options={"verify_signature": False}))
    except (jwt.PyJWTError, ValueError) as e:
        raise InvalidTokenFormat(f"Undecodable token ({type(e).__name__})") from e
    return header, Claims.from_payload(payload)


def _signature_ok(token: str, key: Any, algorithms: list[str]) -> bool:
    """Check the signature only; time claims are handled by the validator."""
    try:
        _jws.decode(token, key, algorithms=algorithms)
    except jwt.PyJWTError as e:
        logger.info("Token signature rejected: %s", type(e).__name__)
        return False
    return True


class TokenValidator:
    """
    Validates tokens from every issuer in a ``TokenValidationConfig``.

    One instance is meant to be shared by all requests: the only mutable
    state is the JWKS key cache, which synchronizes itself. Use it from a
    single event loop.
    """

    def __init__(
        self,
        config: TokenValidationConfig | None = None,
        *,
        cache: JWKSCache | None = None,
        fetcher: JWKSFetcher | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config if config is not None else TokenValidationConfig.from_environ()
        self._registry = IssuerRegistry(self._config)
        if cache is None:
            cache = JWKSCache(
                fetcher if fetcher is not None else JWKSFetcher(self._config.http_timeout_seconds),
                ttl_seconds=self._config.jwks_cache_ttl_seconds,
                max_issuers=self._config.jwks_cache_max_issuers,
                min_refresh_interval=self._config.jwks_min_refresh_interval_seconds,
            )
        self._cache = cache
        self._clock = clock
        self._leeway = self._config.clock_skew_seconds

    @property
    def config(self) -> TokenValidationConfig:
        return self._config

    @property
    def registry(self) -> IssuerRegistry:
        return self._registry

    @staticmethod
    def extract_token_from_header(authorization_header: str) -> str:
        return extract_bearer_token(authorization_header)

    async def validate_token(self, token: str) -> ValidationOutcome:
        """
        Validate ``token`` and return exactly one outcome.

        Raises JwksFetchError only when a JWKS refresh was needed and failed.
        """
        try:
            header, claims = _decode_unverified(token)
        except InvalidTokenFormat:
            logger.info("Token rejected: malformed")
            return Invalid(REASON_FORMAT)

        now = self._clock()
        if claims.exp is not None and now >= claims.exp + self._leeway:
            logger.info("Token expired")
            return Expired()

        issuer = self._issuer_of(claims)
        if issuer is None:
            logger.info("Token rejected: no issuer")
            return Invalid(REASON_MISSING_ISSUER)

        trust = self._registry.resolve(issuer)
        if isinstance(trust, UnknownIssuer):
            logger.info("Token rejected: unknown issuer=%s", issuer)
            return trust

        if isinstance(trust, JwksTrust):
            kid = header.get("kid")
            if not kid:
                logger.info("Token rejected: missing kid issuer=%s", issuer)
                return Invalid(REASON_MISSING_KEY_ID)
            signing_key = await self._jwks_key(trust.jwks_url, kid)
            if signing_key is None:
                logger.info("Token rejected: unknown kid issuer=%s", issuer)
                return Invalid(REASON_UNKNOWN_KEY_ID)
            verified = _signature_ok(token, signing_key.key, [signing_key.algorithm_name])
        elif isinstance(trust, SymmetricTrust):
            verified = _signature_ok(token, trust.secret, list(SYMMETRIC_ALGORITHMS))
        else:
            logger.warning("Accepting test token without signature check issuer=%s", issuer)
            verified = True

        if not verified:
            return Invalid(REASON_SIGNATURE)

        if claims.nbf is not None and now < claims.nbf - self._leeway:
            logger.info("Token rejected: not yet valid issuer=%s", issuer)
            return Invalid(REASON_NOT_YET_VALID)

        logger.debug("Token valid issuer=%s", issuer)
        return Valid(claims)

    async def get_user_from_token(self, token: str) -> User:
        """Validate ``token`` and project its claims; raises ValidationError otherwise."""
        outcome = await self.validate_token(token)
        if not isinstance(outcome, Valid):
            raise ValidationError(outcome)
        user = project_user(outcome.claims, self._config.role_client)
        if isinstance(user, Invalid):
            raise ValidationError(user)
        return user

    def _issuer_of(self, claims: Claims) -> str | None:
        # SHIP tokens may omit iss; their own claims identify them.
        if claims.iss:
            return claims.iss
        if claims.is_ship_token and self._config.ship_symmetric_key is not None:
            return self._config.ship_issuer
        return None

    async def _jwks_key(self, jwks_url: str, kid: str) -> jwt.PyJWK | None:
        signing_key = self._cache.get_key(jwks_url, kid)
        if signing_key is not None:
            return signing_key
        # Unknown kid or stale key set: the provider may have rotated. Refresh once.
        logger.info("kid not in cached JWKS; refreshing url=%s", jwks_url)
        await self._cache.refresh(jwks_url)
        return self._cache.get_key(jwks_url, kid)


async def validate_token(token: str, config: TokenValidationConfig | None = None) -> ValidationOutcome:
    """
    Convenience coroutine: validate one token with a throwaway validator.

    Loads config from the environment when ``config`` is None. Each call
    starts with an empty key cache; keep a ``TokenValidator`` around when
    validating more than one token.
    """
    validator = TokenValidator(config=config)
    return await validator.validate_token(token)
