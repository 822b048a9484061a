from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class AuthSettings(BaseSettings):
    """
    Environment overrides for building a ``TokenValidationConfig``.

    Notes:
    - Nothing here is required; defaults match ``TokenValidationConfig``.
    - ``AUTH_SDK_LOG_LEVEL`` is applied by ``TokenValidationConfig.from_environ``.
    - ``AUTH_SDK_JWKS_ISSUERS`` is a JSON object, e.g.
      ``{"https://idp.example.com": "https://idp.example.com/certs"}``.
    - The SHIP key is provisioned by the deployment, never committed.
    """

    model_config = SettingsConfigDict(env_prefix="AUTH_SDK_", extra="ignore")

    jwks_issuers: dict[str, str] = {}
    ship_symmetric_key: str | None = None
    ship_issuer: str = "ship"
    allow_test_tokens: bool = False
    role_client: str | None = None
    jwks_cache_ttl_seconds: int = 3600
    jwks_cache_max_issuers: int = 10
    jwks_min_refresh_interval_seconds: float = 10.0
    http_timeout_seconds: float = 10.0
    clock_skew_seconds: int = 0
    log_level: str = "INFO"


@lru_cache
def get_settings() -> AuthSettings:
    return AuthSettings()
