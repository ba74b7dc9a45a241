"""
Category Service

Protected category operations. Creation and listing talk to the category
store directly; rename and delete go through CategoryConsistencyEngine so
that transactions always reference an existing category.
"""

from typing import Optional

from fintrack.audit import AuditLogger
from fintrack.auth.gate import AuthGate
from fintrack.consistency import CategoryConsistencyEngine, CategoryConsistencyError
from fintrack.models.api import ApiRequest, ApiResponse, ResponseContext
from fintrack.models.auth import AuthMode
from fintrack.models.ledger import Category, clean_key
from fintrack.services.base import ProtectedService
from fintrack.services.storage import CategoryStorageInterface, DuplicateError


INCOMPLETE_CATEGORY = (
    "Request's body is incomplete: it should contain non-empty `type` and `color`"
)
INCOMPLETE_TYPES = (
    "Request's body is incomplete: it should contain a non-empty array `types`"
)
EMPTY_TYPE_IN_TYPES = (
    "Request's body is incomplete: every element of `types` should not be an empty string"
)
CATEGORY_EXISTS = "A category of this type already exists"


class CategoryService(ProtectedService):
    """
    Args:
        gate: AuthGate for every operation
        categories: Category storage
        engine: The only path that renames or deletes categories
        audit_logger: Optional audit logger
    """

    def __init__(
        self,
        gate: AuthGate,
        categories: CategoryStorageInterface,
        engine: CategoryConsistencyEngine,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(gate, audit_logger)
        self._categories = categories
        self._engine = engine

    async def create_category(
        self,
        request: ApiRequest,
        type: Optional[str],
        color: Optional[str],
    ) -> ApiResponse:
        """Admin only. Response data: {type, color}."""
        context = ResponseContext()
        try:
            auth = await self._authorize(request, context, AuthMode.ADMIN)
            if not auth.authorized:
                return self._unauthorized(auth, context)

            type, color = clean_key(type), clean_key(color)
            if not type or not color:
                return self._bad_request(INCOMPLETE_CATEGORY, context)

            if await self._categories.get_category(type) is not None:
                return self._bad_request(CATEGORY_EXISTS, context)

            category = Category(type=type, color=color)
            try:
                await self._categories.insert_category(category)
            except DuplicateError:
                return self._bad_request(CATEGORY_EXISTS, context)

            if self._audit_logger:
                await self._audit_logger.log_category_created(
                    category_type=category.type,
                    color=category.color,
                    actor=auth.actor,
                    correlation_id=request.correlation_id,
                )
            return ApiResponse.success(category.to_public_dict(), context)
        except Exception as e:
            return await self._server_error(e, request, context)

    async def list_categories(self, request: ApiRequest) -> ApiResponse:
        """Any authenticated user. Response data: [{type, color}]."""
        context = ResponseContext()
        try:
            auth = await self._authorize(request, context, AuthMode.SIMPLE)
            if not auth.authorized:
                return self._unauthorized(auth, context)

            categories = await self._categories.list_categories()
            return ApiResponse.success(
                [category.to_public_dict() for category in categories],
                context,
            )
        except Exception as e:
            return await self._server_error(e, request, context)

    async def update_category(
        self,
        request: ApiRequest,
        current_type: str,
        type: Optional[str],
        color: Optional[str],
    ) -> ApiResponse:
        """
        Admin only. Rename and/or recolor the category at current_type.

        Response data: {message, count} where count is the number of
        transactions moved to the new type.
        """
        context = ResponseContext()
        try:
            auth = await self._authorize(request, context, AuthMode.ADMIN)
            if not auth.authorized:
                return self._unauthorized(auth, context)

            type, color = clean_key(type), clean_key(color)
            if not type or not color:
                return self._bad_request(INCOMPLETE_CATEGORY, context)

            try:
                outcome = await self._engine.rename(
                    current_type,
                    color,
                    type,
                    actor=auth.actor,
                    correlation_id=request.correlation_id,
                )
            except CategoryConsistencyError as e:
                return self._bad_request(str(e), context)

            return ApiResponse.success(
                {
                    "message": "Category updated successfully",
                    "count": outcome.updated_transaction_count,
                },
                context,
            )
        except Exception as e:
            return await self._server_error(e, request, context)

    async def delete_categories(
        self,
        request: ApiRequest,
        types: Optional[list[str]],
    ) -> ApiResponse:
        """
        Admin only. Delete the listed categories; their transactions move to
        the oldest surviving category.

        Response data: {count, message}.
        """
        context = ResponseContext()
        try:
            auth = await self._authorize(request, context, AuthMode.ADMIN)
            if not auth.authorized:
                return self._unauthorized(auth, context)

            if not types:
                return self._bad_request(INCOMPLETE_TYPES, context)
            types = [clean_key(category_type) for category_type in types]
            if any(category_type is None for category_type in types):
                return self._bad_request(EMPTY_TYPE_IN_TYPES, context)

            try:
                outcome = await self._engine.delete_many(
                    types,
                    actor=auth.actor,
                    correlation_id=request.correlation_id,
                )
            except CategoryConsistencyError as e:
                return self._bad_request(str(e), context)

            return ApiResponse.success(
                {
                    "count": outcome.reassigned_transaction_count,
                    "message": "Categories deleted",
                },
                context,
            )
        except Exception as e:
            return await self._server_error(e, request, context)
