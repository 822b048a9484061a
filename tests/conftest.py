"""
Pytest fixtures for the test suite.

Tokens are minted with PyJWT against a real RSA key generated once per
session. JWKS fetches go through ``FakeFetcher``, which parses documents the
same way ``JWKSFetcher`` does but never touches the network.
"""
from __future__ import annotations

import base64
import time

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import RSAAlgorithm

from auth_sdk.config import TokenValidationConfig
from auth_sdk.jwks_fetcher import parse_jwks


ISSUER = "https://idp.example.com"
JWKS_URL = "https://idp.example.com/protocol/openid-connect/certs"
SHIP_SECRET = b"ship-shared-secret-0123456789abcdef"
SHIP_KEY_B64 = base64.b64encode(SHIP_SECRET).decode()


class FakeFetcher:
    """Serves JWKS documents from a dict and counts fetches."""

    def __init__(self, documents: dict[str, dict] | None = None) -> None:
        self.documents = documents or {}
        self.calls: list[str] = []
        self.error: Exception | None = None

    async def fetch(self, url: str):
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return parse_jwks(self.documents[url], url)


@pytest.fixture(scope="session")
def private_key():
    """RSA signing key standing in for the identity provider's."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def public_jwk(private_key) -> dict:
    jwk = RSAAlgorithm.to_jwk(private_key.public_key(), as_dict=True)
    jwk.update({"kid": "k1", "alg": "RS256", "use": "sig"})
    return jwk


@pytest.fixture
def fetcher(public_jwk) -> FakeFetcher:
    return FakeFetcher({JWKS_URL: {"keys": [public_jwk]}})


@pytest.fixture
def config() -> TokenValidationConfig:
    return TokenValidationConfig(
        jwks_issuers={ISSUER: JWKS_URL},
        ship_symmetric_key=SHIP_KEY_B64,
    )


@pytest.fixture
def make_token(private_key):
    """Return a factory minting RS256 tokens for ``ISSUER`` (override anything)."""

    def _make(
        *,
        kid: str | None = "k1",
        key=None,
        algorithm: str = "RS256",
        exp_in: float | None = 3600,
        **claims,
    ) -> str:
        now = int(time.time())
        payload = {"iss": ISSUER, "sub": "user-1", "iat": now}
        if exp_in is not None:
            payload["exp"] = now + exp_in
        payload.update(claims)
        # Passing a claim as None drops it from the token.
        payload = {k: v for k, v in payload.items() if v is not None}
        headers = {"kid": kid} if kid is not None else None
        return jwt.encode(payload, key if key is not None else private_key, algorithm=algorithm, headers=headers)

    return _make
