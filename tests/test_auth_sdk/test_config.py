"""Tests for TokenValidationConfig and environment settings."""

import logging

import pytest

from auth_sdk.config import JwksTrust, SymmetricTrust, TokenValidationConfig, decode_secret
from auth_sdk.errors import ConfigurationError
from auth_sdk.settings import get_settings

from conftest import ISSUER, JWKS_URL, SHIP_KEY_B64, SHIP_SECRET


def test_config_defaults():
    cfg = TokenValidationConfig()
    assert cfg.jwks_issuers == ()
    assert cfg.ship_symmetric_key is None
    assert cfg.allow_test_tokens is False
    assert cfg.ship_issuer == "ship"
    assert cfg.jwks_cache_ttl_seconds == 3600
    assert cfg.jwks_cache_max_issuers == 10
    assert cfg.jwks_min_refresh_interval_seconds == 10.0
    assert cfg.clock_skew_seconds == 0
    assert cfg.issuers() == ()


def test_config_accepts_mapping_or_pairs():
    from_mapping = TokenValidationConfig(jwks_issuers={ISSUER: JWKS_URL})
    from_pairs = TokenValidationConfig(jwks_issuers=[(ISSUER, JWKS_URL)])
    assert from_mapping.jwks_issuers == ((ISSUER, JWKS_URL),)
    assert from_mapping == from_pairs


def test_config_issuers_carry_trust_kind():
    cfg = TokenValidationConfig(jwks_issuers={ISSUER: JWKS_URL}, ship_symmetric_key=SHIP_KEY_B64)
    issuers = {c.issuer: c.trust for c in cfg.issuers()}
    assert issuers[ISSUER] == JwksTrust(JWKS_URL)
    assert issuers["ship"] == SymmetricTrust(SHIP_SECRET)


def test_config_rejects_duplicate_issuers():
    with pytest.raises(ConfigurationError, match="Duplicate issuer"):
        TokenValidationConfig(jwks_issuers=[(ISSUER, JWKS_URL), (ISSUER, "https://other.example.com/certs")])


def test_config_rejects_ship_issuer_clash():
    with pytest.raises(ConfigurationError, match="Duplicate issuer: ship"):
        TokenValidationConfig(jwks_issuers={"ship": JWKS_URL}, ship_symmetric_key=SHIP_KEY_B64)


@pytest.mark.parametrize("url", ["/certs", "idp.example.com/certs", "ftp://idp.example.com/certs", "https://"])
def test_config_rejects_malformed_jwks_url(url):
    with pytest.raises(ConfigurationError, match="absolute http"):
        TokenValidationConfig(jwks_issuers={ISSUER: url})


def test_configuration_error_is_value_error():
    with pytest.raises(ValueError):
        TokenValidationConfig(jwks_issuers={"": JWKS_URL})


def test_config_rejects_bad_ship_key():
    with pytest.raises(ConfigurationError, match="base64"):
        TokenValidationConfig(ship_symmetric_key="not base64 !!")


def test_ship_key_not_in_repr():
    cfg = TokenValidationConfig(ship_symmetric_key=SHIP_KEY_B64)
    assert SHIP_KEY_B64 not in repr(cfg)
    assert "ship-shared-secret" not in repr(cfg.issuers())


def test_decode_secret_accepts_urlsafe_without_padding():
    assert decode_secret("-_8") == b"\xfb\xff"


def test_config_rejects_non_positive_cache_settings():
    with pytest.raises(ConfigurationError):
        TokenValidationConfig(jwks_cache_ttl_seconds=0)
    with pytest.raises(ConfigurationError):
        TokenValidationConfig(jwks_cache_max_issuers=0)


@pytest.mark.parametrize("interval", [-1, 3601])
def test_config_rejects_min_refresh_interval_out_of_range(interval):
    with pytest.raises(ConfigurationError, match="jwks_min_refresh_interval_seconds"):
        TokenValidationConfig(jwks_min_refresh_interval_seconds=interval)


def test_config_from_environ(monkeypatch):
    monkeypatch.setenv("AUTH_SDK_JWKS_ISSUERS", f'{{"{ISSUER}": "{JWKS_URL}"}}')
    monkeypatch.setenv("AUTH_SDK_SHIP_SYMMETRIC_KEY", SHIP_KEY_B64)
    monkeypatch.setenv("AUTH_SDK_ALLOW_TEST_TOKENS", "true")
    monkeypatch.setenv("AUTH_SDK_JWKS_CACHE_TTL_SECONDS", "60")
    get_settings.cache_clear()
    try:
        cfg = TokenValidationConfig.from_environ()
    finally:
        get_settings.cache_clear()
    assert cfg.jwks_issuers == ((ISSUER, JWKS_URL),)
    assert cfg.allow_test_tokens is True
    assert cfg.jwks_cache_ttl_seconds == 60
    assert {c.issuer for c in cfg.issuers()} == {ISSUER, "ship"}


@pytest.fixture
def package_logger():
    logger = logging.getLogger("auth_sdk")
    previous = logger.level
    yield logger
    logger.setLevel(previous)


def test_config_from_environ_applies_log_level(monkeypatch, package_logger):
    monkeypatch.setenv("AUTH_SDK_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("AUTH_SDK_JWKS_MIN_REFRESH_INTERVAL_SECONDS", "0")
    get_settings.cache_clear()
    try:
        cfg = TokenValidationConfig.from_environ()
    finally:
        get_settings.cache_clear()
    assert package_logger.level == logging.DEBUG
    assert logging.getLogger("auth_sdk.jwks_cache").isEnabledFor(logging.DEBUG)
    assert cfg.jwks_min_refresh_interval_seconds == 0


def test_config_from_environ_rejects_unknown_log_level(monkeypatch, package_logger):
    monkeypatch.setenv("AUTH_SDK_LOG_LEVEL", "chatty")
    get_settings.cache_clear()
    try:
        with pytest.raises(ConfigurationError, match="Unknown log level: chatty"):
            TokenValidationConfig.from_environ()
    finally:
        get_settings.cache_clear()
