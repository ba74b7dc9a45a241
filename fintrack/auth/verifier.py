"""
Token Verifier

Turns the access/refresh pair presented with a request into a single set of
trusted claims, renewing the access token when it has expired but the
refresh token is still good.

State machine:

    presence check
        |
    decode access ---- invalid ----> fail(error identifier)
        |         \
      valid      expired
        |           \
    decode refresh   decode refresh
    complete?          expired  -> fail("Perform login again")
    matching?          invalid  -> fail(error identifier)
        |              complete? -> sign new access token
      claims                |
                      claims + renewed token
"""

from typing import Optional

from pydantic import BaseModel

from fintrack.auth.codec import TokenCodec
from fintrack.models.auth import DecodeStatus, TokenClaims, TokenPair


TOKEN_MISSING = "One of the tokens is missing"
TOKEN_INCOMPLETE = "Token is missing information"
TOKENS_MISMATCHED = "Mismatched tokens"
SESSION_EXPIRED = "Perform login again"


class SessionCheck(BaseModel):
    """Outcome of TokenVerifier.verify."""

    claims: Optional[TokenClaims] = None
    failure: Optional[str] = None
    renewed_access_token: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failure is None and self.claims is not None

    @classmethod
    def failed(cls, reason: str) -> "SessionCheck":
        return cls(failure=reason)


class TokenVerifier:
    """
    Validates a token pair and renews expired access tokens.

    Args:
        codec: Signs and decodes tokens
        access_token_ttl_seconds: Lifetime of a renewed access token
    """

    def __init__(self, codec: TokenCodec, access_token_ttl_seconds: int = 60 * 60):
        self._codec = codec
        self._access_ttl = access_token_ttl_seconds

    @property
    def access_token_ttl_seconds(self) -> int:
        return self._access_ttl

    def verify(self, tokens: TokenPair) -> SessionCheck:
        if not tokens.is_complete:
            return SessionCheck.failed(TOKEN_MISSING)

        access = self._codec.decode(tokens.access)
        if access.status is DecodeStatus.VALID:
            return self._verify_pair(access.claims, tokens.refresh)
        if access.status is DecodeStatus.EXPIRED:
            return self._renew(tokens.refresh)
        return SessionCheck.failed(access.reason)

    def _decode_refresh(self, refresh_token: str) -> SessionCheck:
        refresh = self._codec.decode(refresh_token)
        if refresh.status is DecodeStatus.EXPIRED:
            return SessionCheck.failed(SESSION_EXPIRED)
        if refresh.status is DecodeStatus.INVALID:
            return SessionCheck.failed(refresh.reason)
        if not refresh.claims.is_complete:
            return SessionCheck.failed(TOKEN_INCOMPLETE)
        return SessionCheck(claims=refresh.claims)

    def _verify_pair(self, access_claims: TokenClaims, refresh_token: str) -> SessionCheck:
        """Both tokens decode; they must be complete and describe the same user."""
        refresh = self._decode_refresh(refresh_token)
        if not refresh.ok:
            return refresh
        if not access_claims.is_complete:
            return SessionCheck.failed(TOKEN_INCOMPLETE)
        if access_claims.identity() != refresh.claims.identity():
            return SessionCheck.failed(TOKENS_MISMATCHED)
        return SessionCheck(claims=refresh.claims)

    def _renew(self, refresh_token: str) -> SessionCheck:
        """Access token expired: mint a new one from the refresh token's claims."""
        refresh = self._decode_refresh(refresh_token)
        if not refresh.ok:
            return refresh
        renewed = self._codec.sign(refresh.claims, self._access_ttl)
        return SessionCheck(claims=refresh.claims, renewed_access_token=renewed)
