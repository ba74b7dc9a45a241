"""
Authentication Models

Claims, decode results and authorization outcomes.

DESIGN DECISION: Decoding a token never raises for the expected failure
paths. The codec returns a tagged DecodedToken (valid / expired / invalid)
and the gate branches on the tag, so "expired" is never confused with
"bad signature" by an over-broad except clause.
"""

from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"


class Role(str, Enum):
    """User roles carried in token claims."""
    REGULAR = "Regular"
    ADMIN = "Admin"


class AuthMode(str, Enum):
    """
    Authorization policies a protected operation can ask for.

    USER   - caller must be the user whose data is requested
    ADMIN  - caller must hold the Admin role
    GROUP  - caller's email must belong to the requested group
    SIMPLE - any caller with a valid, consistent session
    """
    USER = "User"
    ADMIN = "Admin"
    GROUP = "Group"
    SIMPLE = "Simple"


class TokenClaims(BaseModel):
    """
    Decoded token payload.

    All fields are optional at parse time: a correctly signed token can still
    be missing information, and that is reported as its own failure.
    """
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    username: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    id: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        """True when username, email and role are all present and non-empty."""
        return bool(self.username and self.email and self.role)

    def identity(self) -> tuple[Optional[str], Optional[str], Optional[str]]:
        """The fields both tokens of a pair must agree on."""
        return (self.username, self.email, self.role)

    def to_payload(self) -> dict[str, Any]:
        """Claims to embed when signing a token."""
        payload = {
            "username": self.username,
            "email": self.email,
            "role": self.role,
        }
        if self.id is not None:
            payload["id"] = self.id
        return payload


class DecodeStatus(str, Enum):
    """Outcome tag of a token decode."""
    VALID = "valid"
    EXPIRED = "expired"
    INVALID = "invalid"


class DecodedToken(BaseModel):
    """Tagged result of TokenCodec.decode."""

    status: DecodeStatus
    claims: Optional[TokenClaims] = None
    reason: Optional[str] = Field(
        default=None,
        description="Error identifier when status is INVALID"
    )

    @classmethod
    def valid(cls, claims: TokenClaims) -> "DecodedToken":
        return cls(status=DecodeStatus.VALID, claims=claims)

    @classmethod
    def expired(cls) -> "DecodedToken":
        return cls(status=DecodeStatus.EXPIRED, reason="TokenExpiredError")

    @classmethod
    def invalid(cls, reason: str) -> "DecodedToken":
        return cls(status=DecodeStatus.INVALID, reason=reason)


class TokenPair(BaseModel):
    """The access/refresh tokens presented with a request."""

    access: Optional[str] = None
    refresh: Optional[str] = None

    @classmethod
    def from_cookies(cls, cookies: Mapping[str, str]) -> "TokenPair":
        """Build a pair from request cookies; empty values count as absent."""
        return cls(
            access=cookies.get(ACCESS_TOKEN_COOKIE) or None,
            refresh=cookies.get(REFRESH_TOKEN_COOKIE) or None,
        )

    @property
    def is_complete(self) -> bool:
        return bool(self.access and self.refresh)


class AuthResult(BaseModel):
    """
    Outcome of AuthGate.authorize.

    Callers translate authorized=False into HTTP 401 with {"error": reason}.
    """

    authorized: bool
    reason: Optional[str] = None
    claims: Optional[TokenClaims] = None
    renewed_access_token: Optional[str] = Field(
        default=None,
        description="Set only when an expired access token was renewed"
    )

    @classmethod
    def allow(cls, claims: TokenClaims) -> "AuthResult":
        return cls(authorized=True, claims=claims)

    @classmethod
    def deny(cls, reason: str, claims: Optional[TokenClaims] = None) -> "AuthResult":
        return cls(authorized=False, reason=reason, claims=claims)

    @property
    def actor(self) -> Optional[str]:
        return self.claims.username if self.claims else None
