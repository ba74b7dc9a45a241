"""
Transaction Service

Protected transaction operations. Every listing joins transactions with the
color of their category; a transaction whose category no longer exists is
left out of the result rather than shown without a color.

Listings come in two flavours, selected by admin_view:
- the owner's view (User or Group mode), where query filters apply
- the admin view (Admin mode), which ignores query filters

Owners delete their own transactions one at a time; admins delete any set
of transactions, and only when every requested id exists.
"""

from typing import Iterable, Optional, Union

from fintrack.audit import AuditLogger
from fintrack.auth.gate import AuthGate
from fintrack.models.api import ApiRequest, ApiResponse, ResponseContext
from fintrack.models.auth import AuthMode
from fintrack.models.ledger import (
    Transaction,
    TransactionFilter,
    TransactionView,
    clean_key,
)
from fintrack.services.base import ProtectedService
from fintrack.services.filters import FilterError, parse_amount_filter, parse_date_filter
from fintrack.services.storage import (
    CategoryStorageInterface,
    GroupStorageInterface,
    TransactionStorageInterface,
    UserStorageInterface,
)


INCOMPLETE_TRANSACTION = (
    "Request's body is incomplete: it should contain non-empty `username` and "
    "`type`, while `amount` should be an integer or float"
)
BODY_USER_MISSING = "The requested user in the body doesn't exist"
ROUTE_USER_MISSING = "The requested user in the parameters doesn't exist"
USERNAME_MISMATCH = "The username in the URL and that in the request's body don't match"
CATEGORY_TYPE_MISSING = "The requested category type doesn't exist"
USER_MISSING = "The requested user doesn't exist"
CATEGORY_MISSING = "The requested category doesn't exist"
GROUP_MISSING = "The requested group doesn't exist"
INCOMPLETE_ID = "Request's body is incomplete: it should contain a non-empty `_id`"
INCOMPLETE_IDS = "Request's body is incomplete: it should contain a non-empty array `_ids`"
EMPTY_ID_IN_IDS = (
    "Request's body is incomplete: every element of `_ids` should not be an empty string"
)
TRANSACTION_MISSING = "The requested transaction doesn't exist"
TRANSACTIONS_MISSING = "One or more of the requested transactions don't exist"
NOT_YOUR_TRANSACTION = "The requested transaction doesn't belong to you"


def _parse_amount(amount: Union[float, int, str, None]) -> Optional[float]:
    """A non-zero finite number, or None."""
    if amount is None or isinstance(amount, bool):
        return None
    try:
        value = float(amount)
    except (TypeError, ValueError):
        return None
    if value != value or value in (float("inf"), float("-inf")) or value == 0:
        return None
    return value


class TransactionService(ProtectedService):
    """
    Args:
        gate: AuthGate for every operation
        transactions: Transaction storage
        categories: Category storage (existence checks and colors)
        users: User storage
        groups: Group storage
        audit_logger: Optional audit logger
    """

    def __init__(
        self,
        gate: AuthGate,
        transactions: TransactionStorageInterface,
        categories: CategoryStorageInterface,
        users: UserStorageInterface,
        groups: GroupStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(gate, audit_logger)
        self._transactions = transactions
        self._categories = categories
        self._users = users
        self._groups = groups

    async def create_transaction(
        self,
        request: ApiRequest,
        route_username: str,
        username: Optional[str],
        type: Optional[str],
        amount: Union[float, int, str, None],
    ) -> ApiResponse:
        """
        Record a transaction for the user named in the route.

        Response data: {username, type, amount, date}.
        """
        context = ResponseContext()
        try:
            auth = await self._authorize(
                request, context, AuthMode.USER, username=route_username
            )
            if not auth.authorized:
                return self._unauthorized(auth, context)

            value = _parse_amount(amount)
            type = clean_key(type)
            if not username or not type or value is None:
                return self._bad_request(INCOMPLETE_TRANSACTION, context)

            if await self._users.get_user_by_username(username) is None:
                return self._bad_request(BODY_USER_MISSING, context)
            if await self._users.get_user_by_username(route_username) is None:
                return self._bad_request(ROUTE_USER_MISSING, context)
            if username != route_username:
                return self._bad_request(USERNAME_MISMATCH, context)
            if await self._categories.get_category(type) is None:
                return self._bad_request(CATEGORY_TYPE_MISSING, context)

            transaction = Transaction(username=username, type=type, amount=value)
            await self._transactions.insert_transaction(transaction)

            if self._audit_logger:
                await self._audit_logger.log_transaction_created(
                    username=username,
                    category_type=type,
                    amount=value,
                    correlation_id=request.correlation_id,
                )

            return ApiResponse.success(
                {
                    "_id": transaction.id,
                    "username": transaction.username,
                    "type": transaction.type,
                    "amount": transaction.amount,
                    "date": transaction.date.isoformat(),
                },
                context,
            )
        except Exception as e:
            return await self._server_error(e, request, context)

    async def list_all_transactions(self, request: ApiRequest) -> ApiResponse:
        """Admin only. Every transaction of every user."""
        context = ResponseContext()
        try:
            auth = await self._authorize(request, context, AuthMode.ADMIN)
            if not auth.authorized:
                return self._unauthorized(auth, context)

            rows = await self._joined(TransactionFilter())
            return ApiResponse.success(rows, context)
        except Exception as e:
            return await self._server_error(e, request, context)

    async def list_transactions_by_user(
        self,
        request: ApiRequest,
        username: str,
        admin_view: bool = False,
    ) -> ApiResponse:
        """
        Transactions of one user.

        The owner's view honours the date (`date`, `from`, `upTo`) and
        amount (`min`, `max`) query filters; a malformed filter is a 400.
        """
        context = ResponseContext()
        try:
            if admin_view:
                auth = await self._authorize(request, context, AuthMode.ADMIN)
            else:
                auth = await self._authorize(
                    request, context, AuthMode.USER, username=username
                )
            if not auth.authorized:
                return self._unauthorized(auth, context)

            bounds = {}
            if not admin_view:
                try:
                    bounds.update(parse_date_filter(request.query))
                    bounds.update(parse_amount_filter(request.query))
                except FilterError as e:
                    return self._bad_request(str(e), context)

            if await self._users.get_user_by_username(username) is None:
                return self._bad_request(USER_MISSING, context)

            rows = await self._joined(TransactionFilter(usernames=[username], **bounds))
            return ApiResponse.success(rows, context)
        except Exception as e:
            return await self._server_error(e, request, context)

    async def list_transactions_by_user_and_category(
        self,
        request: ApiRequest,
        username: str,
        category: str,
        admin_view: bool = False,
    ) -> ApiResponse:
        """Transactions of one user in one category."""
        context = ResponseContext()
        try:
            if admin_view:
                auth = await self._authorize(request, context, AuthMode.ADMIN)
            else:
                auth = await self._authorize(
                    request, context, AuthMode.USER, username=username
                )
            if not auth.authorized:
                return self._unauthorized(auth, context)

            if await self._users.get_user_by_username(username) is None:
                return self._bad_request(USER_MISSING, context)
            if await self._categories.get_category(category) is None:
                return self._bad_request(CATEGORY_MISSING, context)

            rows = await self._joined(
                TransactionFilter(usernames=[username], type=category)
            )
            return ApiResponse.success(rows, context)
        except Exception as e:
            return await self._server_error(e, request, context)

    async def list_transactions_by_group(
        self,
        request: ApiRequest,
        name: str,
        admin_view: bool = False,
    ) -> ApiResponse:
        """Transactions of every member of a group."""
        return await self._list_group(request, name, None, admin_view)

    async def list_transactions_by_group_and_category(
        self,
        request: ApiRequest,
        name: str,
        category: str,
        admin_view: bool = False,
    ) -> ApiResponse:
        """Transactions of every member of a group in one category."""
        return await self._list_group(request, name, category, admin_view)

    async def _list_group(
        self,
        request: ApiRequest,
        name: str,
        category: Optional[str],
        admin_view: bool,
    ) -> ApiResponse:
        context = ResponseContext()
        try:
            # Membership is checked against the group's emails, so the group
            # is resolved before authorization.
            group = await self._groups.get_group(name)
            if group is None:
                return self._bad_request(GROUP_MISSING, context)

            emails = group.member_emails
            if admin_view:
                auth = await self._authorize(request, context, AuthMode.ADMIN)
            else:
                auth = await self._authorize(
                    request, context, AuthMode.GROUP, emails=emails
                )
            if not auth.authorized:
                return self._unauthorized(auth, context)

            if category is not None and await self._categories.get_category(category) is None:
                return self._bad_request(CATEGORY_MISSING, context)

            members = await self._users.list_users_by_emails(emails)
            usernames = [member.username for member in members]

            rows = await self._joined(
                TransactionFilter(usernames=usernames, type=category)
            )
            return ApiResponse.success(rows, context)
        except Exception as e:
            return await self._server_error(e, request, context)

    async def delete_transaction(
        self,
        request: ApiRequest,
        username: str,
        transaction_id: Optional[str],
    ) -> ApiResponse:
        """
        Delete one of the caller's own transactions.

        Response data: {message}.
        """
        context = ResponseContext()
        try:
            auth = await self._authorize(
                request, context, AuthMode.USER, username=username
            )
            if not auth.authorized:
                return self._unauthorized(auth, context)

            transaction_id = clean_key(transaction_id)
            if transaction_id is None:
                return self._bad_request(INCOMPLETE_ID, context)

            if await self._users.get_user_by_username(username) is None:
                return self._bad_request(USER_MISSING, context)

            found = await self._transactions.get_transactions_by_ids([transaction_id])
            if not found:
                return self._bad_request(TRANSACTION_MISSING, context)
            if found[0].username != username:
                return self._bad_request(NOT_YOUR_TRANSACTION, context)

            await self._transactions.delete_transactions([transaction_id])
            if self._audit_logger:
                await self._audit_logger.log_transactions_deleted(
                    transaction_ids=[transaction_id],
                    actor=auth.actor,
                    correlation_id=request.correlation_id,
                )
            return ApiResponse.success({"message": "Transaction deleted"}, context)
        except Exception as e:
            return await self._server_error(e, request, context)

    async def delete_transactions(
        self,
        request: ApiRequest,
        ids: Optional[list[str]],
    ) -> ApiResponse:
        """
        Admin only. Delete several transactions of any user.

        Nothing is deleted unless every id exists. Response data: {message}.
        """
        context = ResponseContext()
        try:
            auth = await self._authorize(request, context, AuthMode.ADMIN)
            if not auth.authorized:
                return self._unauthorized(auth, context)

            if not ids or not isinstance(ids, list):
                return self._bad_request(INCOMPLETE_IDS, context)
            ids = [clean_key(transaction_id) for transaction_id in ids]
            if any(transaction_id is None for transaction_id in ids):
                return self._bad_request(EMPTY_ID_IN_IDS, context)
            ids = list(dict.fromkeys(ids))

            found = await self._transactions.get_transactions_by_ids(ids)
            if len(found) != len(ids):
                return self._bad_request(TRANSACTIONS_MISSING, context)

            await self._transactions.delete_transactions(ids)
            if self._audit_logger:
                await self._audit_logger.log_transactions_deleted(
                    transaction_ids=ids,
                    actor=auth.actor,
                    correlation_id=request.correlation_id,
                )
            return ApiResponse.success({"message": "Transactions deleted"}, context)
        except Exception as e:
            return await self._server_error(e, request, context)

    async def _joined(self, filters: TransactionFilter) -> list[dict]:
        """Inner join of the matching transactions with category colors."""
        colors = {
            category.type: category.color
            for category in await self._categories.list_categories()
        }
        transactions = await self._transactions.list_transactions(filters)
        return [row.to_public_dict() for row in self._views(transactions, colors)]

    @staticmethod
    def _views(
        transactions: Iterable[Transaction],
        colors: dict[str, str],
    ) -> list[TransactionView]:
        return [
            TransactionView(
                id=transaction.id,
                username=transaction.username,
                type=transaction.type,
                amount=transaction.amount,
                date=transaction.date,
                color=colors[transaction.type],
            )
            for transaction in transactions
            if transaction.type in colors
        ]
