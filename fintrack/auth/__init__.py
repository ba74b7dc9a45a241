"""
Authentication Package

TokenCodec signs and decodes JWTs, TokenVerifier checks a token pair and
renews an expired access token, AuthorizationPolicy applies the per-mode
rules, and AuthGate ties the three together for each protected request.
"""

from fintrack.auth.codec import TokenCodec
from fintrack.auth.gate import AuthGate
from fintrack.auth.passwords import PasswordHasher
from fintrack.auth.policy import (
    NOT_ADMIN,
    NOT_GROUP_MEMBER,
    NOT_SAME_USER,
    AuthorizationPolicy,
    resolve_mode,
)
from fintrack.auth.verifier import (
    SESSION_EXPIRED,
    TOKEN_INCOMPLETE,
    TOKEN_MISSING,
    TOKENS_MISMATCHED,
    SessionCheck,
    TokenVerifier,
)

__all__ = [
    "AuthGate",
    "AuthorizationPolicy",
    "PasswordHasher",
    "SessionCheck",
    "TokenCodec",
    "TokenVerifier",
    "resolve_mode",
    # Rejection reasons
    "NOT_ADMIN",
    "NOT_GROUP_MEMBER",
    "NOT_SAME_USER",
    "SESSION_EXPIRED",
    "TOKEN_INCOMPLETE",
    "TOKEN_MISSING",
    "TOKENS_MISMATCHED",
]
