"""
User Service

Admin views of the user base, a user's own profile, and user deletion.
Deleting a user also deletes their transactions and takes them out of their
group; a group left without members is deleted with them.
"""

from typing import Optional

from fintrack.audit import AuditLogger
from fintrack.auth.gate import AuthGate
from fintrack.models.api import ApiRequest, ApiResponse, ResponseContext
from fintrack.models.auth import AuthMode, Role
from fintrack.models.ledger import User
from fintrack.services.base import ProtectedService, is_valid_email
from fintrack.services.storage import (
    GroupStorageInterface,
    TransactionStorageInterface,
    UserStorageInterface,
)


USER_NOT_FOUND = "User not found"
INCOMPLETE_EMAIL = (
    "Request's body is incomplete: it should contain a non-empty, valid `email`"
)
USER_MISSING = "The requested user doesn't exist"
ADMIN_NOT_DELETABLE = "The requested user is an admin and cannot be deleted"


def _public(user: User) -> dict:
    return {"username": user.username, "email": user.email, "role": user.role.value}


class UserService(ProtectedService):

    def __init__(
        self,
        gate: AuthGate,
        users: UserStorageInterface,
        transactions: TransactionStorageInterface,
        groups: GroupStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(gate, audit_logger)
        self._users = users
        self._transactions = transactions
        self._groups = groups

    async def list_users(self, request: ApiRequest) -> ApiResponse:
        """Admin only. Response data: [{username, email, role}]."""
        context = ResponseContext()
        try:
            auth = await self._authorize(request, context, AuthMode.ADMIN)
            if not auth.authorized:
                return self._unauthorized(auth, context)

            users = await self._users.list_users()
            return ApiResponse.success([_public(user) for user in users], context)
        except Exception as e:
            return await self._server_error(e, request, context)

    async def get_user(self, request: ApiRequest, username: str) -> ApiResponse:
        """The user themselves, or an admin. Response data: {username, email, role}."""
        context = ResponseContext()
        try:
            auth = await self._authorize(
                request,
                context,
                AuthMode.USER,
                username=username,
                admin_fallback=True,
            )
            if not auth.authorized:
                return self._unauthorized(auth, context)

            user = await self._users.get_user_by_username(username)
            if user is None:
                return self._bad_request(USER_NOT_FOUND, context)
            return ApiResponse.success(_public(user), context)
        except Exception as e:
            return await self._server_error(e, request, context)

    async def delete_user(self, request: ApiRequest, email: Optional[str]) -> ApiResponse:
        """
        Admin only. Admins themselves cannot be deleted.

        The user's transactions and group membership go first and the user
        record last, so an interrupted deletion can simply be repeated.

        Response data: {deletedTransactions, deletedFromGroup}.
        """
        context = ResponseContext()
        try:
            auth = await self._authorize(request, context, AuthMode.ADMIN)
            if not auth.authorized:
                return self._unauthorized(auth, context)

            email = email.strip() if isinstance(email, str) else email
            if not is_valid_email(email):
                return self._bad_request(INCOMPLETE_EMAIL, context)

            user = await self._users.get_user_by_email(email)
            if user is None:
                return self._bad_request(USER_MISSING, context)
            if user.role == Role.ADMIN:
                return self._bad_request(ADMIN_NOT_DELETABLE, context)

            deleted = await self._transactions.delete_transactions_by_username(user.username)

            group = await self._groups.get_group_by_member_email(email)
            group_deleted = False
            if group is not None:
                remaining = [m for m in group.members if m.email != email]
                if remaining:
                    await self._groups.set_members(group.name, remaining)
                else:
                    await self._groups.delete_group(group.name)
                    group_deleted = True

            await self._users.delete_user(user.username)

            if self._audit_logger:
                await self._audit_logger.log_user_deleted(
                    username=user.username,
                    transaction_count=deleted,
                    group_name=group.name if group else None,
                    group_deleted=group_deleted,
                    actor=auth.actor,
                    correlation_id=request.correlation_id,
                )
            return ApiResponse.success(
                {
                    "deletedTransactions": deleted,
                    "deletedFromGroup": group is not None,
                },
                context,
            )
        except Exception as e:
            return await self._server_error(e, request, context)
