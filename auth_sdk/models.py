"""Decoded claims and the per-call validation outcome."""

from __future__ import annotations

import copy
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Union

from .errors import InvalidTokenFormat

REASON_FORMAT = "format"
REASON_MISSING_ISSUER = "missing issuer"
REASON_MISSING_KEY_ID = "missing key id"
REASON_UNKNOWN_KEY_ID = "unknown key id"
REASON_SIGNATURE = "signature"
REASON_NOT_YET_VALID = "not yet valid"
REASON_MISSING_SUBJECT = "missing subject"

# Claims that mark a token minted by the local shared-secret (SHIP) issuer.
SHIP_MARKER_CLAIMS = ("customerId", "userId", "tokenRequestedFrom")


def _timestamp(payload: Mapping[str, Any], name: str) -> int | None:
    value = payload.get(name)
    if value is None:
        return None
    # bool is an int subclass; "exp": true is not a timestamp.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidTokenFormat(f"{name} claim must be numeric")
    if not math.isfinite(value):
        raise InvalidTokenFormat(f"{name} claim must be finite")
    return int(value)


def _optional_str(value: Any) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        # json.loads lets NaN and Infinity through.
        if not math.isfinite(value):
            raise InvalidTokenFormat("numeric claim must be finite")
        return str(int(value))
    if isinstance(value, str):
        return value
    return None


@dataclass(frozen=True)
class Claims:
    """
    Claims decoded from a token payload. Immutable.

    Only the fields the validator and user projection read are broken out;
    ``to_dict()`` returns the complete payload as it was in the token.
    """

    iss: str | None
    sub: str | None
    aud: Any
    azp: str | None
    exp: int | None
    iat: int | None
    nbf: int | None
    email: str | None
    name: str | None
    resource_access: Any
    customer_id: str | None
    user_id: str | None
    token_requested_from: str | None
    raw: Mapping[str, Any] = field(repr=False)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Claims:
        """Build claims from a decoded payload; raises InvalidTokenFormat on bad types."""
        if not isinstance(payload, Mapping):
            raise InvalidTokenFormat("payload must be a JSON object")
        iss = payload.get("iss")
        if iss is not None and not isinstance(iss, str):
            raise InvalidTokenFormat("iss claim must be a string")
        data = copy.deepcopy(dict(payload))
        return cls(
            iss=iss,
            sub=_optional_str(payload.get("sub")),
            aud=copy.deepcopy(payload.get("aud")),
            azp=_optional_str(payload.get("azp")),
            exp=_timestamp(payload, "exp"),
            iat=_timestamp(payload, "iat"),
            nbf=_timestamp(payload, "nbf"),
            email=_optional_str(payload.get("email")),
            name=_optional_str(payload.get("name")),
            resource_access=copy.deepcopy(payload.get("resource_access")),
            customer_id=_optional_str(payload.get("customerId")),
            user_id=_optional_str(payload.get("userId")),
            token_requested_from=_optional_str(payload.get("tokenRequestedFrom")),
            raw=MappingProxyType(data),
        )

    @property
    def is_ship_token(self) -> bool:
        """True when the payload carries any SHIP-specific claim."""
        return any(self.raw.get(name) is not None for name in SHIP_MARKER_CLAIMS)

    def get(self, name: str, default: Any = None) -> Any:
        """Return a copy of any claim by its wire name."""
        return copy.deepcopy(self.raw.get(name, default))

    def to_dict(self) -> dict[str, Any]:
        """Return the original payload as a new dict."""
        return copy.deepcopy(dict(self.raw))


@dataclass(frozen=True)
class Valid:
    claims: Claims

    def describe(self) -> str:
        return "valid"


@dataclass(frozen=True)
class Expired:
    def describe(self) -> str:
        return "expired"


@dataclass(frozen=True)
class Invalid:
    reason: str

    def describe(self) -> str:
        return f"invalid ({self.reason})"


@dataclass(frozen=True)
class UnknownIssuer:
    issuer: str

    def describe(self) -> str:
        return f"unknown issuer {self.issuer!r}"


ValidationOutcome = Union[Valid, Expired, Invalid, UnknownIssuer]
