"""
Token Codec

Thin wrapper over python-jose. Signs claim sets with an expiry and decodes
tokens into a tagged DecodedToken instead of letting jose's exceptions
leak into the gate.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTError
from pydantic import ValidationError

from fintrack.config import AuthSettings
from fintrack.models.auth import DecodedToken, TokenClaims


class TokenCodec:
    """
    Signs and verifies HMAC tokens.

    The secret is injected at construction; nothing here reads process
    configuration.
    """

    def __init__(self, secret: str, algorithm: str = "HS256"):
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret = secret
        self._algorithm = algorithm

    @classmethod
    def from_settings(cls, settings: AuthSettings) -> "TokenCodec":
        return cls(secret=settings.access_key, algorithm=settings.algorithm)

    def sign(
        self,
        claims: TokenClaims,
        ttl_seconds: int,
        now: Optional[datetime] = None,
    ) -> str:
        """
        Sign the claims with an expiry ttl_seconds from now.

        A negative ttl produces an already-expired token.
        """
        issued_at = now or datetime.now(timezone.utc)
        payload = claims.to_payload()
        payload["iat"] = issued_at
        payload["exp"] = issued_at + timedelta(seconds=ttl_seconds)
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def decode(self, token: str) -> DecodedToken:
        """
        Verify signature and expiry.

        Returns:
            DecodedToken tagged VALID (with claims), EXPIRED, or INVALID
            (with the error identifier as reason)
        """
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except ExpiredSignatureError:
            return DecodedToken.expired()
        except JWTError as e:
            return DecodedToken.invalid(type(e).__name__)

        try:
            claims = TokenClaims.model_validate(payload)
        except ValidationError:
            # Signed by us but with claims of the wrong shape
            return DecodedToken.invalid("MalformedClaimsError")
        return DecodedToken.valid(claims)
