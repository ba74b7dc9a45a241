"""
Authorization Policy

One mode check over already-resolved claims, used for both the fresh-token
and the renewed-token paths.
"""

from typing import Iterable, Optional, Union

from fintrack.models.auth import AuthMode, AuthResult, Role, TokenClaims


NOT_SAME_USER = "You are not authorized to access this user's data"
NOT_ADMIN = "You are not an admin"
NOT_GROUP_MEMBER = "You are not member of this group"


def resolve_mode(mode: Union[AuthMode, str]) -> AuthMode:
    """Unrecognized modes fall back to SIMPLE."""
    try:
        return AuthMode(mode)
    except ValueError:
        return AuthMode.SIMPLE


class AuthorizationPolicy:
    """Evaluates an AuthMode against validated claims."""

    def check(
        self,
        claims: TokenClaims,
        mode: Union[AuthMode, str],
        username: Optional[str] = None,
        emails: Optional[Iterable[str]] = None,
    ) -> AuthResult:
        mode = resolve_mode(mode)

        if mode is AuthMode.USER:
            if claims.username != username:
                return AuthResult.deny(NOT_SAME_USER, claims)
        elif mode is AuthMode.ADMIN:
            if claims.role != Role.ADMIN.value:
                return AuthResult.deny(NOT_ADMIN, claims)
        elif mode is AuthMode.GROUP:
            if claims.email not in set(emails or ()):
                return AuthResult.deny(NOT_GROUP_MEMBER, claims)

        return AuthResult.allow(claims)
