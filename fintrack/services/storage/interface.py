"""
Abstract Storage Interface

DESIGN DECISION: We define abstract interfaces for the document store.
This allows us to:
1. Run against MongoDB in production
2. Use in-memory storage for tests and local runs
3. Keep the auth gate and consistency engine decoupled from the driver

The interfaces are intentionally narrow: find-one, find, create, update and
delete by natural key, plus a few bulk operations: retargeting transactions
from one category type to another for the consistency engine, and deleting
transactions by id or by owner.

Category update/delete are part of the storage contract but are only called
by CategoryConsistencyEngine; nothing else in the package renames or removes
categories.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from fintrack.models.audit import AuditEvent
from fintrack.models.ledger import (
    Category,
    Group,
    GroupMember,
    Transaction,
    TransactionFilter,
    User,
)


class CategoryStorageInterface(ABC):
    """Document CRUD for categories, keyed by type."""

    @abstractmethod
    async def get_category(self, category_type: str) -> Optional[Category]:
        """Return the category with this type, or None."""
        pass

    @abstractmethod
    async def list_categories(self) -> list[Category]:
        """
        Return every category, oldest first.

        Ordering is by created_at ascending, ties broken by type ascending,
        so "oldest" is deterministic regardless of the backend.
        """
        pass

    @abstractmethod
    async def count_categories(self) -> int:
        pass

    @abstractmethod
    async def insert_category(self, category: Category) -> bool:
        """
        Raises:
            DuplicateError: If a category with the same type exists
        """
        pass

    @abstractmethod
    async def update_category(
        self,
        current_type: str,
        new_type: str,
        color: str,
    ) -> bool:
        """
        Overwrite the type and color of an existing category.

        Raises:
            NotFoundError: If no category has current_type
        """
        pass

    @abstractmethod
    async def delete_category(self, category_type: str) -> bool:
        """Delete by type. Returns False if nothing was deleted."""
        pass


class TransactionStorageInterface(ABC):
    """Document CRUD for transactions."""

    @abstractmethod
    async def insert_transaction(self, transaction: Transaction) -> bool:
        pass

    @abstractmethod
    async def list_transactions(
        self,
        filters: Optional[TransactionFilter] = None,
    ) -> list[Transaction]:
        """
        List transactions matching the filters, oldest first.

        Args:
            filters: Optional filter; None returns everything
        """
        pass

    @abstractmethod
    async def retarget_transactions(self, from_type: str, to_type: str) -> int:
        """
        Bulk-update every transaction with type == from_type to to_type.

        Returns:
            Number of transactions modified
        """
        pass

    @abstractmethod
    async def get_transactions_by_ids(self, ids: list[str]) -> list[Transaction]:
        """Return the transactions whose id is in ids; unknown ids are skipped."""
        pass

    @abstractmethod
    async def delete_transactions(self, ids: list[str]) -> int:
        """Delete by id. Returns the number of transactions removed."""
        pass

    @abstractmethod
    async def delete_transactions_by_username(self, username: str) -> int:
        pass


class UserStorageInterface(ABC):
    """Document CRUD for users."""

    @abstractmethod
    async def get_user_by_username(self, username: str) -> Optional[User]:
        pass

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[User]:
        pass

    @abstractmethod
    async def get_user_by_refresh_token(self, refresh_token: str) -> Optional[User]:
        pass

    @abstractmethod
    async def list_users_by_emails(self, emails: list[str]) -> list[User]:
        pass

    @abstractmethod
    async def insert_user(self, user: User) -> bool:
        """
        Raises:
            DuplicateError: If the username or email is already taken
        """
        pass

    @abstractmethod
    async def set_refresh_token(
        self,
        username: str,
        refresh_token: Optional[str],
    ) -> bool:
        """
        Persist (or clear, with None) the user's refresh token.

        Raises:
            NotFoundError: If the user doesn't exist
        """
        pass

    @abstractmethod
    async def list_users(self) -> list[User]:
        pass

    @abstractmethod
    async def delete_user(self, username: str) -> bool:
        """Delete by username. Returns False if nothing was deleted."""
        pass


class GroupStorageInterface(ABC):
    """Document CRUD for groups."""

    @abstractmethod
    async def get_group(self, name: str) -> Optional[Group]:
        pass

    @abstractmethod
    async def insert_group(self, group: Group) -> bool:
        """
        Raises:
            DuplicateError: If a group with the same name exists
        """
        pass

    @abstractmethod
    async def list_groups(self) -> list[Group]:
        pass

    @abstractmethod
    async def get_group_by_member_email(self, email: str) -> Optional[Group]:
        """Return the group that lists email among its members, or None."""
        pass

    @abstractmethod
    async def set_members(self, name: str, members: list[GroupMember]) -> bool:
        """
        Replace the member list of a group.

        Raises:
            NotFoundError: If no group has this name
        """
        pass

    @abstractmethod
    async def delete_group(self, name: str) -> bool:
        """Delete by name. Returns False if nothing was deleted."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Events of one request, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Most recent events, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
