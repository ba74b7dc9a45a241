"""
In-Memory Storage Implementation

Dict-backed implementations of every storage interface. Used by the test
suite and for local runs without a database.

Every read returns a copy, so callers can never mutate stored documents
behind the store's back - the same guarantee a real document store gives.
"""

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
from fintrack.services.storage.interface import (
    AuditStorageInterface,
    CategoryStorageInterface,
    DuplicateError,
    GroupStorageInterface,
    NotFoundError,
    TransactionStorageInterface,
    UserStorageInterface,
)


def oldest_first(category: Category) -> tuple:
    return (category.created_at, category.type)


class InMemoryCategoryStorage(CategoryStorageInterface):

    def __init__(self, categories: Optional[list[Category]] = None):
        self._categories: dict[str, Category] = {}
        for category in categories or []:
            self._categories[category.type] = category.model_copy()

    async def get_category(self, category_type: str) -> Optional[Category]:
        category = self._categories.get(category_type)
        return category.model_copy() if category else None

    async def list_categories(self) -> list[Category]:
        ordered = sorted(self._categories.values(), key=oldest_first)
        return [category.model_copy() for category in ordered]

    async def count_categories(self) -> int:
        return len(self._categories)

    async def insert_category(self, category: Category) -> bool:
        if category.type in self._categories:
            raise DuplicateError(f"Category already exists: {category.type}")
        self._categories[category.type] = category.model_copy()
        return True

    async def update_category(
        self,
        current_type: str,
        new_type: str,
        color: str,
    ) -> bool:
        category = self._categories.get(current_type)
        if category is None:
            raise NotFoundError(f"Category not found: {current_type}")
        if new_type != current_type and new_type in self._categories:
            raise DuplicateError(f"Category already exists: {new_type}")

        del self._categories[current_type]
        self._categories[new_type] = category.model_copy(
            update={"type": new_type, "color": color}
        )
        return True

    async def delete_category(self, category_type: str) -> bool:
        return self._categories.pop(category_type, None) is not None


class InMemoryTransactionStorage(TransactionStorageInterface):

    def __init__(self, transactions: Optional[list[Transaction]] = None):
        self._transactions: list[Transaction] = [
            transaction.model_copy() for transaction in transactions or []
        ]

    async def insert_transaction(self, transaction: Transaction) -> bool:
        self._transactions.append(transaction.model_copy())
        return True

    async def list_transactions(
        self,
        filters: Optional[TransactionFilter] = None,
    ) -> list[Transaction]:
        matching = [
            transaction.model_copy()
            for transaction in self._transactions
            if filters is None or filters.matches(transaction)
        ]
        matching.sort(key=lambda t: t.date)
        return matching

    async def retarget_transactions(self, from_type: str, to_type: str) -> int:
        if from_type == to_type:
            return 0
        count = 0
        for index, transaction in enumerate(self._transactions):
            if transaction.type == from_type:
                self._transactions[index] = transaction.model_copy(update={"type": to_type})
                count += 1
        return count

    async def get_transactions_by_ids(self, ids: list[str]) -> list[Transaction]:
        wanted = set(ids)
        return [t.model_copy() for t in self._transactions if t.id in wanted]

    async def delete_transactions(self, ids: list[str]) -> int:
        wanted = set(ids)
        kept = [t for t in self._transactions if t.id not in wanted]
        count = len(self._transactions) - len(kept)
        self._transactions = kept
        return count

    async def delete_transactions_by_username(self, username: str) -> int:
        kept = [t for t in self._transactions if t.username != username]
        count = len(self._transactions) - len(kept)
        self._transactions = kept
        return count


class InMemoryUserStorage(UserStorageInterface):

    def __init__(self, users: Optional[list[User]] = None):
        self._users: dict[str, User] = {}
        for user in users or []:
            self._users[user.username] = user.model_copy()

    def _find(self, predicate) -> Optional[User]:
        for user in self._users.values():
            if predicate(user):
                return user.model_copy()
        return None

    async def get_user_by_username(self, username: str) -> Optional[User]:
        user = self._users.get(username)
        return user.model_copy() if user else None

    async def get_user_by_email(self, email: str) -> Optional[User]:
        return self._find(lambda u: u.email == email)

    async def get_user_by_refresh_token(self, refresh_token: str) -> Optional[User]:
        return self._find(lambda u: u.refresh_token == refresh_token)

    async def list_users_by_emails(self, emails: list[str]) -> list[User]:
        wanted = set(emails)
        return [user.model_copy() for user in self._users.values() if user.email in wanted]

    async def insert_user(self, user: User) -> bool:
        if user.username in self._users:
            raise DuplicateError(f"Username already taken: {user.username}")
        if any(existing.email == user.email for existing in self._users.values()):
            raise DuplicateError(f"Email already registered: {user.email}")
        self._users[user.username] = user.model_copy()
        return True

    async def set_refresh_token(
        self,
        username: str,
        refresh_token: Optional[str],
    ) -> bool:
        user = self._users.get(username)
        if user is None:
            raise NotFoundError(f"User not found: {username}")
        self._users[username] = user.model_copy(update={"refresh_token": refresh_token})
        return True

    async def list_users(self) -> list[User]:
        return [user.model_copy() for user in self._users.values()]

    async def delete_user(self, username: str) -> bool:
        return self._users.pop(username, None) is not None


class InMemoryGroupStorage(GroupStorageInterface):

    def __init__(self, groups: Optional[list[Group]] = None):
        self._groups: dict[str, Group] = {}
        for group in groups or []:
            self._groups[group.name] = group.model_copy(deep=True)

    async def get_group(self, name: str) -> Optional[Group]:
        group = self._groups.get(name)
        return group.model_copy(deep=True) if group else None

    async def insert_group(self, group: Group) -> bool:
        if group.name in self._groups:
            raise DuplicateError(f"Group already exists: {group.name}")
        self._groups[group.name] = group.model_copy(deep=True)
        return True

    async def list_groups(self) -> list[Group]:
        return [group.model_copy(deep=True) for group in self._groups.values()]

    async def get_group_by_member_email(self, email: str) -> Optional[Group]:
        for group in self._groups.values():
            if email in group.member_emails:
                return group.model_copy(deep=True)
        return None

    async def set_members(self, name: str, members: list[GroupMember]) -> bool:
        group = self._groups.get(name)
        if group is None:
            raise NotFoundError(f"Group not found: {name}")
        self._groups[name] = Group(
            name=name,
            members=[member.model_copy() for member in members],
        )
        return True

    async def delete_group(self, name: str) -> bool:
        return self._groups.pop(name, None) is not None


class InMemoryAuditStorage(AuditStorageInterface):

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event.model_copy(deep=True))
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
