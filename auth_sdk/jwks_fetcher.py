"""
Fetch a JWKS document and turn it into verification keys.

One request per call. Retrying and caching belong to ``JWKSCache``; this
module only talks to the network and parses what comes back.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import jwt
import requests
from jwt import PyJWK

from .errors import JwksNetworkError, JwksParseError

logger = logging.getLogger(__name__)


class JWKSFetcher:
    """Retrieves key sets with ``requests`` in a worker thread."""

    def __init__(self, timeout_seconds: float = 10.0) -> None:
        self._timeout = timeout_seconds

    async def fetch(self, url: str) -> dict[str, PyJWK]:
        """Return ``{kid: PyJWK}`` for the signing keys published at ``url``."""
        document = await asyncio.to_thread(self._get, url)
        keys = parse_jwks(document, url)
        logger.debug("JWKS fetched url=%s keys=%d", url, len(keys))
        return keys

    def _get(self, url: str) -> Any:
        try:
            resp = requests.get(url, timeout=self._timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.warning("JWKS request failed url=%s error=%s", url, type(e).__name__)
            raise JwksNetworkError(f"JWKS request failed: {type(e).__name__}", url=url) from e
        try:
            return resp.json()
        except ValueError as e:
            raise JwksParseError("JWKS response is not JSON", url=url) from e


def parse_jwks(document: Any, url: str) -> dict[str, PyJWK]:
    """
    Parse a JWKS document.

    Encryption keys (``"use": "enc"``) are skipped. Anything else that cannot
    be loaded as an asymmetric signing key fails the whole document, so a
    half-understood key set never reaches the cache.
    """
    if not isinstance(document, dict) or not isinstance(document.get("keys"), list):
        raise JwksParseError("JWKS document must be an object with a 'keys' array", url=url)

    keys: dict[str, PyJWK] = {}
    for key_dict in document["keys"]:
        if not isinstance(key_dict, dict):
            raise JwksParseError("JWKS entry is not an object", url=url)
        if key_dict.get("use") == "enc":
            continue
        kid = key_dict.get("kid")
        if not isinstance(kid, str) or not kid:
            raise JwksParseError("JWKS entry without a key id", url=url)
        if key_dict.get("kty") == "oct":
            raise JwksParseError("Symmetric key in JWKS is not accepted", url=url, kid=kid)
        try:
            keys[kid] = PyJWK.from_dict(key_dict)
        except (jwt.PyJWTError, KeyError, TypeError, ValueError) as e:
            # Only the error type; the message may echo key material.
            raise JwksParseError(f"Unusable JWKS key ({type(e).__name__})", url=url, kid=kid) from e
    return keys
