"""
MongoDB Storage Implementation

DESIGN DECISION: MongoDB is the production document store because the
ledger is naturally document-shaped:
1. Categories and transactions are flat documents keyed by natural keys
2. Filters map directly onto query predicates ($in, $gte, $lte)
3. Retargeting transactions is a single update_many

TRADEOFFS:
- No multi-document transactions are used; the consistency engine orders
  its writes so an interruption leaves a recoverable state
- Category.type uniqueness is enforced by a unique index as well as by
  the engine's own checks

The implementation follows the abstract interface, so business logic never
imports pymongo.
"""

from typing import Any, Optional
from uuid import UUID

from pymongo import ASCENDING, AsyncMongoClient, DESCENDING
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError
from tenacity import retry, stop_after_attempt, wait_exponential

from fintrack.config import MongoSettings, get_settings
from fintrack.models.audit import AuditEvent, AuditEventType, AuditSeverity
from fintrack.models.auth import Role
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
    ConnectionError,
    DuplicateError,
    GroupStorageInterface,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
    UserStorageInterface,
)


class MongoClientWrapper:
    """
    Low-level MongoDB client wrapper.

    Owns the connection and provides retry logic for establishing it.
    """

    def __init__(self, settings: Optional[MongoSettings] = None):
        self._settings = settings or get_settings().mongo
        self._client: Optional[AsyncMongoClient] = None
        self._database: Optional[AsyncDatabase] = None

    @property
    def settings(self) -> MongoSettings:
        return self._settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def connect(self) -> AsyncDatabase:
        """
        Establish the connection and make sure indexes exist.

        The driver connects lazily; the ping forces a round trip so a bad
        URI fails here rather than on the first query. Once the ping and
        index setup succeed the database handle is cached and returned
        without further round trips.
        """
        if self._database is not None:
            return self._database

        if self._client is None:
            self._client = AsyncMongoClient(
                self._settings.uri,
                serverSelectionTimeoutMS=self._settings.server_selection_timeout_ms,
                tz_aware=True,
            )
        database = self._client[self._settings.database]
        try:
            await database.command("ping")
            await self._ensure_indexes(database)
        except PyMongoError as e:
            raise ConnectionError(f"Failed to connect to MongoDB: {e}")

        self._database = database
        return database

    async def _ensure_indexes(self, database: AsyncDatabase) -> None:
        s = self._settings
        await database[s.categories_collection].create_index("type", unique=True)
        await database[s.categories_collection].create_index(
            [("createdAt", ASCENDING), ("type", ASCENDING)]
        )
        await database[s.transactions_collection].create_index("type")
        await database[s.transactions_collection].create_index("username")
        await database[s.users_collection].create_index("username", unique=True)
        await database[s.users_collection].create_index("email", unique=True)
        await database[s.groups_collection].create_index("name", unique=True)
        await database[s.groups_collection].create_index("members.email")

    async def collection(self, name: str) -> AsyncCollection:
        database = await self.connect()
        return database[name]

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
            self._database = None


class MongoCategoryStorage(CategoryStorageInterface):
    """Categories stored as {type, color, createdAt} documents."""

    def __init__(self, client: Optional[MongoClientWrapper] = None):
        self._client = client or MongoClientWrapper()

    async def _collection(self) -> AsyncCollection:
        return await self._client.collection(self._client.settings.categories_collection)

    @staticmethod
    def _to_document(category: Category) -> dict:
        return {
            "type": category.type,
            "color": category.color,
            "createdAt": category.created_at,
        }

    @staticmethod
    def _from_document(doc: dict) -> Category:
        return Category(
            type=doc["type"],
            color=doc["color"],
            created_at=doc["createdAt"],
        )

    async def get_category(self, category_type: str) -> Optional[Category]:
        try:
            collection = await self._collection()
            doc = await collection.find_one({"type": category_type})
            return self._from_document(doc) if doc else None
        except PyMongoError as e:
            raise StorageError(f"Failed to get category: {e}")

    async def list_categories(self) -> list[Category]:
        try:
            collection = await self._collection()
            cursor = collection.find({}).sort([("createdAt", ASCENDING), ("type", ASCENDING)])
            return [self._from_document(doc) async for doc in cursor]
        except PyMongoError as e:
            raise StorageError(f"Failed to list categories: {e}")

    async def count_categories(self) -> int:
        try:
            collection = await self._collection()
            return await collection.count_documents({})
        except PyMongoError as e:
            raise StorageError(f"Failed to count categories: {e}")

    async def insert_category(self, category: Category) -> bool:
        try:
            collection = await self._collection()
            await collection.insert_one(self._to_document(category))
            return True
        except DuplicateKeyError:
            raise DuplicateError(f"Category already exists: {category.type}")
        except PyMongoError as e:
            raise StorageError(f"Failed to save category: {e}")

    async def update_category(
        self,
        current_type: str,
        new_type: str,
        color: str,
    ) -> bool:
        try:
            collection = await self._collection()
            result = await collection.update_one(
                {"type": current_type},
                {"$set": {"type": new_type, "color": color}},
            )
        except DuplicateKeyError:
            raise DuplicateError(f"Category already exists: {new_type}")
        except PyMongoError as e:
            raise StorageError(f"Failed to update category: {e}")

        if result.matched_count == 0:
            raise NotFoundError(f"Category not found: {current_type}")
        return True

    async def delete_category(self, category_type: str) -> bool:
        try:
            collection = await self._collection()
            result = await collection.delete_one({"type": category_type})
            return result.deleted_count > 0
        except PyMongoError as e:
            raise StorageError(f"Failed to delete category: {e}")


class MongoTransactionStorage(TransactionStorageInterface):
    """Transactions stored with their id as _id."""

    def __init__(self, client: Optional[MongoClientWrapper] = None):
        self._client = client or MongoClientWrapper()

    async def _collection(self) -> AsyncCollection:
        return await self._client.collection(self._client.settings.transactions_collection)

    @staticmethod
    def _to_document(transaction: Transaction) -> dict:
        return {
            "_id": transaction.id,
            "username": transaction.username,
            "type": transaction.type,
            "amount": transaction.amount,
            "date": transaction.date,
        }

    @staticmethod
    def _from_document(doc: dict) -> Transaction:
        return Transaction(
            id=str(doc["_id"]),
            username=doc["username"],
            type=doc["type"],
            amount=doc["amount"],
            date=doc["date"],
        )

    @staticmethod
    def _build_query(filters: Optional[TransactionFilter]) -> dict[str, Any]:
        """Translate a TransactionFilter into a MongoDB query document."""
        if filters is None:
            return {}

        query: dict[str, Any] = {}
        if filters.usernames is not None:
            query["username"] = {"$in": filters.usernames}
        if filters.type is not None:
            query["type"] = filters.type

        date_range = {}
        if filters.date_from:
            date_range["$gte"] = filters.date_from
        if filters.date_to:
            date_range["$lte"] = filters.date_to
        if date_range:
            query["date"] = date_range

        amount_range = {}
        if filters.min_amount is not None:
            amount_range["$gte"] = filters.min_amount
        if filters.max_amount is not None:
            amount_range["$lte"] = filters.max_amount
        if amount_range:
            query["amount"] = amount_range

        return query

    async def insert_transaction(self, transaction: Transaction) -> bool:
        try:
            collection = await self._collection()
            await collection.insert_one(self._to_document(transaction))
            return True
        except PyMongoError as e:
            raise StorageError(f"Failed to save transaction: {e}")

    async def list_transactions(
        self,
        filters: Optional[TransactionFilter] = None,
    ) -> list[Transaction]:
        try:
            collection = await self._collection()
            cursor = collection.find(self._build_query(filters)).sort("date", ASCENDING)
            return [self._from_document(doc) async for doc in cursor]
        except PyMongoError as e:
            raise StorageError(f"Failed to list transactions: {e}")

    async def retarget_transactions(self, from_type: str, to_type: str) -> int:
        try:
            collection = await self._collection()
            result = await collection.update_many(
                {"type": from_type},
                {"$set": {"type": to_type}},
            )
            return result.modified_count
        except PyMongoError as e:
            raise StorageError(f"Failed to retarget transactions: {e}")

    async def get_transactions_by_ids(self, ids: list[str]) -> list[Transaction]:
        try:
            collection = await self._collection()
            cursor = collection.find({"_id": {"$in": ids}})
            return [self._from_document(doc) async for doc in cursor]
        except PyMongoError as e:
            raise StorageError(f"Failed to get transactions: {e}")

    async def delete_transactions(self, ids: list[str]) -> int:
        try:
            collection = await self._collection()
            result = await collection.delete_many({"_id": {"$in": ids}})
            return result.deleted_count
        except PyMongoError as e:
            raise StorageError(f"Failed to delete transactions: {e}")

    async def delete_transactions_by_username(self, username: str) -> int:
        try:
            collection = await self._collection()
            result = await collection.delete_many({"username": username})
            return result.deleted_count
        except PyMongoError as e:
            raise StorageError(f"Failed to delete transactions: {e}")


class MongoUserStorage(UserStorageInterface):

    def __init__(self, client: Optional[MongoClientWrapper] = None):
        self._client = client or MongoClientWrapper()

    async def _collection(self) -> AsyncCollection:
        return await self._client.collection(self._client.settings.users_collection)

    @staticmethod
    def _to_document(user: User) -> dict:
        return {
            "_id": user.id,
            "username": user.username,
            "email": user.email,
            "password": user.password_hash,
            "role": user.role.value,
            "refreshToken": user.refresh_token,
        }

    @staticmethod
    def _from_document(doc: dict) -> User:
        return User(
            id=str(doc["_id"]),
            username=doc["username"],
            email=doc["email"],
            password_hash=doc["password"],
            role=Role(doc.get("role", Role.REGULAR.value)),
            refresh_token=doc.get("refreshToken"),
        )

    async def _find_one(self, query: dict) -> Optional[User]:
        try:
            collection = await self._collection()
            doc = await collection.find_one(query)
            return self._from_document(doc) if doc else None
        except PyMongoError as e:
            raise StorageError(f"Failed to get user: {e}")

    async def get_user_by_username(self, username: str) -> Optional[User]:
        return await self._find_one({"username": username})

    async def get_user_by_email(self, email: str) -> Optional[User]:
        return await self._find_one({"email": email})

    async def get_user_by_refresh_token(self, refresh_token: str) -> Optional[User]:
        return await self._find_one({"refreshToken": refresh_token})

    async def list_users_by_emails(self, emails: list[str]) -> list[User]:
        try:
            collection = await self._collection()
            cursor = collection.find({"email": {"$in": emails}})
            return [self._from_document(doc) async for doc in cursor]
        except PyMongoError as e:
            raise StorageError(f"Failed to list users: {e}")

    async def insert_user(self, user: User) -> bool:
        try:
            collection = await self._collection()
            await collection.insert_one(self._to_document(user))
            return True
        except DuplicateKeyError:
            raise DuplicateError(f"Username or email already registered: {user.username}")
        except PyMongoError as e:
            raise StorageError(f"Failed to save user: {e}")

    async def set_refresh_token(
        self,
        username: str,
        refresh_token: Optional[str],
    ) -> bool:
        try:
            collection = await self._collection()
            result = await collection.update_one(
                {"username": username},
                {"$set": {"refreshToken": refresh_token}},
            )
        except PyMongoError as e:
            raise StorageError(f"Failed to update user: {e}")

        if result.matched_count == 0:
            raise NotFoundError(f"User not found: {username}")
        return True

    async def list_users(self) -> list[User]:
        try:
            collection = await self._collection()
            return [self._from_document(doc) async for doc in collection.find({})]
        except PyMongoError as e:
            raise StorageError(f"Failed to list users: {e}")

    async def delete_user(self, username: str) -> bool:
        try:
            collection = await self._collection()
            result = await collection.delete_one({"username": username})
            return result.deleted_count > 0
        except PyMongoError as e:
            raise StorageError(f"Failed to delete user: {e}")


class MongoGroupStorage(GroupStorageInterface):
    """Groups stored as {name, members: [{email, username}]} documents."""

    def __init__(self, client: Optional[MongoClientWrapper] = None):
        self._client = client or MongoClientWrapper()

    async def _collection(self) -> AsyncCollection:
        return await self._client.collection(self._client.settings.groups_collection)

    @staticmethod
    def _from_document(doc: dict) -> Group:
        return Group(
            name=doc["name"],
            members=[
                GroupMember(email=m["email"], username=m.get("username"))
                for m in doc.get("members", [])
            ],
        )

    async def _find_one(self, query: dict) -> Optional[Group]:
        try:
            collection = await self._collection()
            doc = await collection.find_one(query)
        except PyMongoError as e:
            raise StorageError(f"Failed to get group: {e}")
        return self._from_document(doc) if doc else None

    async def get_group(self, name: str) -> Optional[Group]:
        return await self._find_one({"name": name})

    async def get_group_by_member_email(self, email: str) -> Optional[Group]:
        return await self._find_one({"members.email": email})

    async def list_groups(self) -> list[Group]:
        try:
            collection = await self._collection()
            return [self._from_document(doc) async for doc in collection.find({})]
        except PyMongoError as e:
            raise StorageError(f"Failed to list groups: {e}")

    async def insert_group(self, group: Group) -> bool:
        try:
            collection = await self._collection()
            await collection.insert_one(group.model_dump())
            return True
        except DuplicateKeyError:
            raise DuplicateError(f"Group already exists: {group.name}")
        except PyMongoError as e:
            raise StorageError(f"Failed to save group: {e}")

    async def set_members(self, name: str, members: list[GroupMember]) -> bool:
        try:
            collection = await self._collection()
            result = await collection.update_one(
                {"name": name},
                {"$set": {"members": [member.model_dump() for member in members]}},
            )
        except PyMongoError as e:
            raise StorageError(f"Failed to update group: {e}")

        if result.matched_count == 0:
            raise NotFoundError(f"Group not found: {name}")
        return True

    async def delete_group(self, name: str) -> bool:
        try:
            collection = await self._collection()
            result = await collection.delete_one({"name": name})
            return result.deleted_count > 0
        except PyMongoError as e:
            raise StorageError(f"Failed to delete group: {e}")


class MongoAuditStorage(AuditStorageInterface):
    """
    Append-only audit collection.
    """

    def __init__(self, client: Optional[MongoClientWrapper] = None):
        self._client = client or MongoClientWrapper()

    async def _collection(self) -> AsyncCollection:
        return await self._client.collection(self._client.settings.audit_collection)

    @staticmethod
    def _from_document(doc: dict) -> AuditEvent:
        return AuditEvent(
            event_id=UUID(doc["event_id"]),
            timestamp=doc["timestamp"],
            event_type=AuditEventType(doc["event_type"]),
            severity=AuditSeverity(doc["severity"]),
            entity_type=doc.get("entity_type"),
            entity_id=doc.get("entity_id"),
            actor=doc.get("actor"),
            correlation_id=UUID(doc["correlation_id"]) if doc.get("correlation_id") else None,
            description=doc["description"],
            details=doc.get("details") or {},
            error_message=doc.get("error_message"),
        )

    async def append_event(self, event: AuditEvent) -> bool:
        try:
            collection = await self._collection()
            await collection.insert_one(event.to_document())
            return True
        except PyMongoError as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            collection = await self._collection()
            cursor = collection.find(
                {"correlation_id": str(correlation_id)}
            ).sort("timestamp", ASCENDING)
            return [self._from_document(doc) async for doc in cursor]
        except PyMongoError as e:
            raise StorageError(f"Failed to get audit events: {e}")

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            collection = await self._collection()
            cursor = collection.find({}).sort("timestamp", DESCENDING).limit(limit)
            return [self._from_document(doc) async for doc in cursor]
        except PyMongoError as e:
            raise StorageError(f"Failed to get audit events: {e}")
