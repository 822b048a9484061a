"""Project verified claims onto the identity the host application uses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .models import REASON_MISSING_SUBJECT, Claims, Invalid


@dataclass(frozen=True)
class User:
    """Small, serializable identity built from validated claims."""

    id: str
    """``userId`` for SHIP tokens, otherwise ``sub``."""

    roles: tuple[str, ...]
    """Client roles from ``resource_access``, de-duplicated, first occurrence wins."""

    email: str | None = None
    name: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serializable dict."""
        return {
            "id": self.id,
            "roles": list(self.roles),
            "email": self.email,
            "name": self.name,
        }


def _client_roles(client_data: Any) -> list[str]:
    if not isinstance(client_data, dict):
        return []
    roles = client_data.get("roles")
    if not isinstance(roles, list):
        return []
    return [r for r in roles if isinstance(r, str)]


def extract_roles(resource_access: Any, role_client: str | None = None) -> tuple[str, ...]:
    """
    Flatten ``resource_access.<client>.roles`` into one ordered tuple.

    Example claim (Keycloak)::

        "resource_access": {
            "tms": {"roles": ["dispatcher"]},
            "account": {"roles": ["view-profile"]}
        }

    When ``role_client`` names a client that lists roles, only those are
    returned; otherwise every client's roles are merged in document order.
    """
    if not isinstance(resource_access, dict):
        return ()

    if role_client is not None:
        preferred = _client_roles(resource_access.get(role_client))
        if preferred:
            return tuple(dict.fromkeys(preferred))

    roles: list[str] = []
    for client_data in resource_access.values():
        roles.extend(_client_roles(client_data))
    return tuple(dict.fromkeys(roles))


def project_user(claims: Claims, role_client: str | None = None) -> User | Invalid:
    user_id = claims.user_id or claims.sub
    if not user_id:
        return Invalid(REASON_MISSING_SUBJECT)
    return User(
        id=user_id,
        roles=extract_roles(claims.resource_access, role_client),
        email=claims.email,
        name=claims.name,
    )
