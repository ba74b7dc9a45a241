"""
Category Consistency Engine

Transaction.type is a weak, natural-key reference to Category.type: the
store does not cascade anything. This engine is the only code that renames
or deletes categories, and it keeps every transaction pointing at a
category that exists.

ORDERING (no multi-document transactions are available):
- Rename retargets transactions first and renames the category second.
  An interruption leaves transactions under the new name while the
  category still carries the old one; re-running the rename finishes it.
- Delete removes one category, then moves its transactions to the
  fallback, one type at a time. An interruption leaves transactions
  under a type that no longer exists; re-running the delete for the
  remaining types finishes it.

All preconditions are checked before the first write, so a rejected
request never leaves a partial mutation behind.
"""

from typing import Optional
from uuid import UUID

from fintrack.audit import AuditLogger
from fintrack.models.ledger import Category, DeleteOutcome, RenameOutcome
from fintrack.services.storage import (
    CategoryStorageInterface,
    TransactionStorageInterface,
)


class CategoryConsistencyError(Exception):
    """A category mutation was rejected; nothing was changed."""
    pass


class CategoryNotFoundError(CategoryConsistencyError):
    pass


class DuplicateCategoryError(CategoryConsistencyError):
    pass


class LastCategoryError(CategoryConsistencyError):
    pass


CATEGORY_MISSING = "The requested category doesn't exist"
TYPE_TAKEN = "The new category type already belongs to another category"
ONLY_ONE_CATEGORY = "There is only one category in the database and it cannot be deleted"


def category_type_missing(category_type: str) -> str:
    return f"The category of type {category_type} doesn't exist"


def oldest(categories: list[Category]) -> Optional[Category]:
    """Earliest created_at; ties go to the lexicographically smallest type."""
    if not categories:
        return None
    return min(categories, key=lambda c: (c.created_at, c.type))


class CategoryConsistencyEngine:
    """
    Rename-cascade and delete-with-reassignment over the category and
    transaction stores.
    """

    def __init__(
        self,
        categories: CategoryStorageInterface,
        transactions: TransactionStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._categories = categories
        self._transactions = transactions
        self._audit_logger = audit_logger

    async def rename(
        self,
        old_type: str,
        new_color: str,
        new_type: str,
        actor: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> RenameOutcome:
        """
        Change a category's type and color, retargeting its transactions.

        When new_type equals old_type only the color changes and no
        transaction is touched.

        Raises:
            CategoryNotFoundError: old_type does not exist
            DuplicateCategoryError: another category already owns new_type
        """
        category = await self._categories.get_category(old_type)
        if category is None:
            await self._reject("rename", CATEGORY_MISSING, actor, correlation_id)
            raise CategoryNotFoundError(CATEGORY_MISSING)

        if new_type == old_type:
            await self._categories.update_category(old_type, old_type, new_color)
            outcome = RenameOutcome(old_type=old_type, new_type=old_type)
        else:
            if await self._categories.get_category(new_type) is not None:
                await self._reject("rename", TYPE_TAKEN, actor, correlation_id)
                raise DuplicateCategoryError(TYPE_TAKEN)

            count = await self._transactions.retarget_transactions(old_type, new_type)
            await self._categories.update_category(old_type, new_type, new_color)
            outcome = RenameOutcome(
                old_type=old_type,
                new_type=new_type,
                updated_transaction_count=count,
            )

        if self._audit_logger:
            await self._audit_logger.log_category_renamed(
                old_type=outcome.old_type,
                new_type=outcome.new_type,
                transaction_count=outcome.updated_transaction_count,
                actor=actor,
                correlation_id=correlation_id,
            )
        return outcome

    async def delete_many(
        self,
        types_to_delete: list[str],
        actor: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> DeleteOutcome:
        """
        Delete a batch of categories, moving their transactions to the
        oldest surviving category.

        If the batch names every category, the oldest one is spared so at
        least one category always survives.

        Raises:
            LastCategoryError: the store holds exactly one category
            CategoryNotFoundError: a requested type does not exist (the
                first offending type in request order is reported)
        """
        if await self._categories.count_categories() == 1:
            await self._reject("delete", ONLY_ONE_CATEGORY, actor, correlation_id)
            raise LastCategoryError(ONLY_ONE_CATEGORY)

        # Duplicates in the request must not count toward "every category"
        requested = list(dict.fromkeys(types_to_delete))

        for category_type in requested:
            if await self._categories.get_category(category_type) is None:
                reason = category_type_missing(category_type)
                await self._reject("delete", reason, actor, correlation_id)
                raise CategoryNotFoundError(reason)

        all_categories = await self._categories.list_categories()
        deletion_set = set(requested)

        retained_type = None
        if deletion_set and deletion_set == {c.type for c in all_categories}:
            retained_type = oldest(all_categories).type
            deletion_set.discard(retained_type)
            requested = [t for t in requested if t != retained_type]

        fallback = oldest([c for c in all_categories if c.type not in deletion_set])
        outcome = DeleteOutcome(
            retained_type=retained_type,
            fallback_type=fallback.type if fallback and requested else None,
        )

        for category_type in requested:
            await self._categories.delete_category(category_type)
            moved = await self._transactions.retarget_transactions(category_type, fallback.type)
            outcome.deleted_types.append(category_type)
            outcome.reassigned_transaction_count += moved

            if self._audit_logger and moved:
                await self._audit_logger.log_transactions_retargeted(
                    from_type=category_type,
                    to_type=fallback.type,
                    count=moved,
                    correlation_id=correlation_id,
                )

        if self._audit_logger:
            await self._audit_logger.log_categories_deleted(
                deleted_types=outcome.deleted_types,
                fallback_type=outcome.fallback_type,
                retained_type=outcome.retained_type,
                transaction_count=outcome.reassigned_transaction_count,
                actor=actor,
                correlation_id=correlation_id,
            )
        return outcome

    async def _reject(
        self,
        operation: str,
        reason: str,
        actor: Optional[str],
        correlation_id: Optional[UUID],
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_category_mutation_rejected(
                operation=operation,
                reason=reason,
                actor=actor,
                correlation_id=correlation_id,
            )
