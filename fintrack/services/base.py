"""
Shared plumbing for protected service operations.

Every operation follows the same shape:
1. authorize through the AuthGate (401 on failure)
2. validate the request (400)
3. do the work (200), or map an unexpected failure to 500

The ResponseContext created for the request carries a renewed access token
and its advisory message into every response of that request.
"""

import re
from typing import Iterable, Optional, Union

from fintrack.audit import AuditLogger
from fintrack.auth.gate import AuthGate
from fintrack.auth.policy import NOT_ADMIN, resolve_mode
from fintrack.models.api import ApiRequest, ApiResponse, ResponseContext
from fintrack.models.auth import AuthMode, AuthResult, Role


EMAIL_PATTERN = re.compile(r"^\w+@\w+\.\w+$")


def is_valid_email(value) -> bool:
    return isinstance(value, str) and EMAIL_PATTERN.match(value) is not None


class ProtectedService:

    def __init__(
        self,
        gate: AuthGate,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._gate = gate
        self._audit_logger = audit_logger

    async def _authorize(
        self,
        request: ApiRequest,
        context: ResponseContext,
        mode: Union[AuthMode, str],
        username: Optional[str] = None,
        emails: Optional[Iterable[str]] = None,
        admin_fallback: bool = False,
    ) -> AuthResult:
        """
        Run the gate for one mode.

        With admin_fallback, a valid session that fails the mode check is
        still authorized when it belongs to an admin; otherwise the denial
        reports NOT_ADMIN. Session failures are never overridden.
        """
        result = self._gate.authorize(
            request.tokens,
            mode,
            username=username,
            emails=emails,
            context=context,
        )

        if admin_fallback and not result.authorized and result.claims is not None:
            if result.claims.role == Role.ADMIN.value:
                result = result.model_copy(update={"authorized": True, "reason": None})
            else:
                result = result.model_copy(update={"reason": NOT_ADMIN})

        if self._audit_logger:
            if result.renewed_access_token:
                await self._audit_logger.log_token_refreshed(
                    username=result.actor,
                    correlation_id=request.correlation_id,
                )
            if not result.authorized:
                await self._audit_logger.log_authorization_denied(
                    mode=resolve_mode(mode).value,
                    reason=result.reason or "",
                    actor=result.actor,
                    correlation_id=request.correlation_id,
                )
        return result

    @staticmethod
    def _unauthorized(result: AuthResult, context: ResponseContext) -> ApiResponse:
        return ApiResponse.failure(401, result.reason or "Unauthorized", context)

    @staticmethod
    def _bad_request(error: str, context: ResponseContext) -> ApiResponse:
        return ApiResponse.failure(400, error, context)

    async def _server_error(
        self,
        error: Exception,
        request: ApiRequest,
        context: ResponseContext,
    ) -> ApiResponse:
        if self._audit_logger:
            await self._audit_logger.log_error(
                error_type=type(error).__name__,
                error_message=str(error),
                correlation_id=request.correlation_id,
            )
        return ApiResponse.failure(500, str(error), context)
