"""
Session Service

Registration, login and logout: the operations that create and destroy
the access/refresh token pair the AuthGate later verifies.

Login signs both tokens with the same claims {email, id, username, role},
persists the refresh token on the user record and emits both cookies.
Logout nulls the persisted refresh token and clears both cookies.
"""

from typing import Optional

from fintrack.audit import AuditLogger
from fintrack.auth.codec import TokenCodec
from fintrack.auth.passwords import PasswordHasher
from fintrack.models.api import ApiRequest, ApiResponse, CookieDirective, ResponseContext
from fintrack.models.auth import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    Role,
    TokenClaims,
)
from fintrack.models.ledger import User
from fintrack.services.storage import DuplicateError, UserStorageInterface


INCOMPLETE_REGISTRATION = (
    "Request's body is incomplete: it should contain non-empty "
    "`username`, `email` and `password`"
)
INCOMPLETE_LOGIN = (
    "Request's body is incomplete: it should contain non-empty "
    "`email` and `password`"
)
ALREADY_REGISTERED = "Another account with the same username/email is already registered"
UNKNOWN_EMAIL = "This email is not associated with any account"
WRONG_PASSWORD = "Wrong password"
REFRESH_TOKEN_NOT_FOUND = "Refresh token not found"
USER_NOT_FOUND = "User not found"


class SessionService:
    """
    Issues and revokes token pairs.

    Args:
        users: User storage
        codec: Token codec (holds the signing secret)
        hasher: Password hasher
        access_token_ttl_seconds: Access token lifetime
        refresh_token_ttl_seconds: Refresh token lifetime
        audit_logger: Optional audit logger
    """

    def __init__(
        self,
        users: UserStorageInterface,
        codec: TokenCodec,
        hasher: Optional[PasswordHasher] = None,
        access_token_ttl_seconds: int = 60 * 60,
        refresh_token_ttl_seconds: int = 7 * 24 * 60 * 60,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._users = users
        self._codec = codec
        self._hasher = hasher or PasswordHasher()
        self._access_ttl = access_token_ttl_seconds
        self._refresh_ttl = refresh_token_ttl_seconds
        self._audit_logger = audit_logger

    async def register(
        self,
        request: ApiRequest,
        username: Optional[str],
        email: Optional[str],
        password: Optional[str],
    ) -> ApiResponse:
        """Register a Regular user."""
        return await self._register(request, username, email, password, Role.REGULAR)

    async def register_admin(
        self,
        request: ApiRequest,
        username: Optional[str],
        email: Optional[str],
        password: Optional[str],
    ) -> ApiResponse:
        """Register a user with the Admin role."""
        return await self._register(request, username, email, password, Role.ADMIN)

    async def _register(
        self,
        request: ApiRequest,
        username: Optional[str],
        email: Optional[str],
        password: Optional[str],
        role: Role,
    ) -> ApiResponse:
        if not username or not email or not password:
            return ApiResponse.failure(400, INCOMPLETE_REGISTRATION)

        try:
            if (
                await self._users.get_user_by_username(username)
                or await self._users.get_user_by_email(email)
            ):
                return ApiResponse.failure(400, ALREADY_REGISTERED)

            user = User(
                username=username,
                email=email,
                password_hash=self._hasher.hash(password),
                role=role,
            )
            try:
                await self._users.insert_user(user)
            except DuplicateError:
                # Lost a race with a concurrent registration
                return ApiResponse.failure(400, ALREADY_REGISTERED)

            if self._audit_logger:
                await self._audit_logger.log_user_registered(
                    username=username,
                    role=role.value,
                    correlation_id=request.correlation_id,
                )

            noun = "Admin" if role is Role.ADMIN else "User"
            return ApiResponse.success({"message": f"{noun} added successfully"})
        except Exception as e:
            return await self._server_error(e, request)

    async def login(
        self,
        request: ApiRequest,
        email: Optional[str],
        password: Optional[str],
    ) -> ApiResponse:
        """
        Verify credentials and issue a fresh token pair.

        Response data: {"accessToken": ..., "refreshToken": ...}
        """
        if not email or not password:
            return ApiResponse.failure(400, INCOMPLETE_LOGIN)

        try:
            user = await self._users.get_user_by_email(email)
            if user is None:
                await self._log_login_failed(email, UNKNOWN_EMAIL, request)
                return ApiResponse.failure(400, UNKNOWN_EMAIL)

            if not self._hasher.verify(password, user.password_hash):
                await self._log_login_failed(email, WRONG_PASSWORD, request)
                return ApiResponse.failure(400, WRONG_PASSWORD)

            claims = TokenClaims(
                username=user.username,
                email=user.email,
                role=user.role.value,
                id=user.id,
            )
            access_token = self._codec.sign(claims, self._access_ttl)
            refresh_token = self._codec.sign(claims, self._refresh_ttl)

            await self._users.set_refresh_token(user.username, refresh_token)

            context = ResponseContext()
            context.set_cookie(CookieDirective(
                name=ACCESS_TOKEN_COOKIE,
                value=access_token,
                max_age_seconds=self._access_ttl,
            ))
            context.set_cookie(CookieDirective(
                name=REFRESH_TOKEN_COOKIE,
                value=refresh_token,
                max_age_seconds=self._refresh_ttl,
            ))

            if self._audit_logger:
                await self._audit_logger.log_login_succeeded(
                    username=user.username,
                    correlation_id=request.correlation_id,
                )

            return ApiResponse.success(
                {"accessToken": access_token, "refreshToken": refresh_token},
                context,
            )
        except Exception as e:
            return await self._server_error(e, request)

    async def logout(self, request: ApiRequest) -> ApiResponse:
        """Revoke the persisted refresh token and clear both cookies."""
        refresh_token = request.tokens.refresh
        if not refresh_token:
            return ApiResponse.failure(400, REFRESH_TOKEN_NOT_FOUND)

        try:
            user = await self._users.get_user_by_refresh_token(refresh_token)
            if user is None:
                return ApiResponse.failure(400, USER_NOT_FOUND)

            await self._users.set_refresh_token(user.username, None)

            context = ResponseContext()
            context.set_cookie(CookieDirective.clear(ACCESS_TOKEN_COOKIE))
            context.set_cookie(CookieDirective.clear(REFRESH_TOKEN_COOKIE))

            if self._audit_logger:
                await self._audit_logger.log_logout(
                    username=user.username,
                    correlation_id=request.correlation_id,
                )

            return ApiResponse.success({"message": "User logged out"}, context)
        except Exception as e:
            return await self._server_error(e, request)

    async def _log_login_failed(self, email: str, reason: str, request: ApiRequest) -> None:
        if self._audit_logger:
            await self._audit_logger.log_login_failed(
                email=email,
                reason=reason,
                correlation_id=request.correlation_id,
            )

    async def _server_error(self, error: Exception, request: ApiRequest) -> ApiResponse:
        if self._audit_logger:
            await self._audit_logger.log_error(
                error_type=type(error).__name__,
                error_message=str(error),
                correlation_id=request.correlation_id,
            )
        return ApiResponse.failure(500, str(error))
