"""
Auth Gate

The single entry point every protected operation calls before touching
data. Composes the TokenVerifier (is this a live, consistent session?) with
the AuthorizationPolicy (may this session do what it asks?).

DESIGN DECISION: Renewal happens before the mode check. A user whose
session is valid but who lacks the privilege for this particular call still
gets a fresh access token; the denial is about authorization, not about
the session.
"""

from typing import Iterable, Optional, Union

import structlog

from fintrack.auth.policy import AuthorizationPolicy, resolve_mode
from fintrack.auth.verifier import TokenVerifier
from fintrack.models.api import ResponseContext
from fintrack.models.auth import AuthMode, AuthResult, TokenPair


class AuthGate:
    """
    Verifies the token pair and applies an authorization mode.

    authorize() never raises for expected failures; it returns an AuthResult
    that callers map to 401.
    """

    def __init__(
        self,
        verifier: TokenVerifier,
        policy: Optional[AuthorizationPolicy] = None,
    ):
        self._verifier = verifier
        self._policy = policy or AuthorizationPolicy()
        self._logger = structlog.get_logger("fintrack.auth")

    def authorize(
        self,
        tokens: TokenPair,
        mode: Union[AuthMode, str],
        username: Optional[str] = None,
        emails: Optional[Iterable[str]] = None,
        context: Optional[ResponseContext] = None,
    ) -> AuthResult:
        """
        Args:
            tokens: Access and refresh tokens from the request cookies
            mode: USER, ADMIN, GROUP or SIMPLE
            username: Owner of the requested data (USER mode)
            emails: Member emails of the requested group (GROUP mode)
            context: Receives the renewed access cookie and advisory message

        Returns:
            AuthResult; renewed_access_token is set whenever the access token
            was renewed, whether or not the mode check then passed
        """
        mode = resolve_mode(mode)
        session = self._verifier.verify(tokens)

        if not session.ok:
            self._logger.warning(
                "session_rejected",
                mode=mode.value,
                reason=session.failure,
            )
            return AuthResult.deny(session.failure)

        if session.renewed_access_token:
            self._logger.info(
                "access_token_refreshed",
                username=session.claims.username,
            )
            if context is not None:
                context.record_token_refresh(
                    session.renewed_access_token,
                    max_age_seconds=self._verifier.access_token_ttl_seconds,
                )

        result = self._policy.check(session.claims, mode, username=username, emails=emails)
        result.renewed_access_token = session.renewed_access_token

        if not result.authorized:
            self._logger.warning(
                "authorization_denied",
                mode=mode.value,
                reason=result.reason,
                username=session.claims.username,
            )
        return result
