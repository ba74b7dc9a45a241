"""
Application wiring for the Finance Tracker

Builds one consistent set of components from Settings:
codec → verifier → gate, storage backend, consistency engine and the
services. The transport layer (whatever serves HTTP) holds the
returned AppComponents and calls the services per request.

DESIGN DECISION: Every component receives its collaborators here.
Nothing reaches for a global signing key or a global database handle, so
tests build the same graph with in-memory storage and a fixed key.
"""

from typing import NamedTuple, Optional

import structlog

from fintrack.audit import AuditLogger, configure_logging
from fintrack.auth import (
    AuthGate,
    AuthorizationPolicy,
    PasswordHasher,
    TokenCodec,
    TokenVerifier,
)
from fintrack.config import Settings, get_settings
from fintrack.consistency import CategoryConsistencyEngine
from fintrack.services.categories import CategoryService
from fintrack.services.groups import GroupService
from fintrack.services.sessions import SessionService
from fintrack.services.storage import (
    AuditStorageInterface,
    CategoryStorageInterface,
    GroupStorageInterface,
    InMemoryAuditStorage,
    InMemoryCategoryStorage,
    InMemoryGroupStorage,
    InMemoryTransactionStorage,
    InMemoryUserStorage,
    TransactionStorageInterface,
    UserStorageInterface,
)
from fintrack.services.transactions import TransactionService
from fintrack.services.users import UserService

logger = structlog.get_logger("fintrack.orchestrator")


class Stores(NamedTuple):
    categories: CategoryStorageInterface
    transactions: TransactionStorageInterface
    users: UserStorageInterface
    groups: GroupStorageInterface
    audit: AuditStorageInterface


class AppComponents(NamedTuple):
    stores: Stores
    gate: AuthGate
    engine: CategoryConsistencyEngine
    sessions: SessionService
    categories: CategoryService
    transactions: TransactionService
    users: UserService
    groups: GroupService
    audit_logger: AuditLogger


def create_memory_stores() -> Stores:
    return Stores(
        categories=InMemoryCategoryStorage(),
        transactions=InMemoryTransactionStorage(),
        users=InMemoryUserStorage(),
        groups=InMemoryGroupStorage(),
        audit=InMemoryAuditStorage(),
    )


def create_mongo_stores(settings: Settings) -> Stores:
    """All Mongo stores share one client (and its connection pool)."""
    from fintrack.services.storage.mongo import (
        MongoAuditStorage,
        MongoCategoryStorage,
        MongoClientWrapper,
        MongoGroupStorage,
        MongoTransactionStorage,
        MongoUserStorage,
    )

    client = MongoClientWrapper(settings.mongo)
    return Stores(
        categories=MongoCategoryStorage(client),
        transactions=MongoTransactionStorage(client),
        users=MongoUserStorage(client),
        groups=MongoGroupStorage(client),
        audit=MongoAuditStorage(client),
    )


def create_app_components(
    settings: Optional[Settings] = None,
    stores: Optional[Stores] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to use; defaults to get_settings()
        stores: Pre-built stores; defaults to the configured backend

    Returns:
        AppComponents
    """
    settings = settings or get_settings()
    configure_logging(settings.app.log_level)

    if stores is None:
        if settings.app.storage_backend == "mongo":
            stores = create_mongo_stores(settings)
        else:
            stores = create_memory_stores()
    logger.info("storage_ready", backend=type(stores.categories).__name__)

    audit_logger = AuditLogger(stores.audit)

    auth = settings.auth
    codec = TokenCodec.from_settings(auth)
    verifier = TokenVerifier(codec, access_token_ttl_seconds=auth.access_token_ttl_seconds)
    gate = AuthGate(verifier, AuthorizationPolicy())

    engine = CategoryConsistencyEngine(
        stores.categories,
        stores.transactions,
        audit_logger=audit_logger,
    )

    sessions = SessionService(
        stores.users,
        codec,
        hasher=PasswordHasher(auth.password_hash_method),
        access_token_ttl_seconds=auth.access_token_ttl_seconds,
        refresh_token_ttl_seconds=auth.refresh_token_ttl_seconds,
        audit_logger=audit_logger,
    )
    categories = CategoryService(
        gate,
        stores.categories,
        engine,
        audit_logger=audit_logger,
    )
    transactions = TransactionService(
        gate,
        stores.transactions,
        stores.categories,
        stores.users,
        stores.groups,
        audit_logger=audit_logger,
    )
    users = UserService(
        gate,
        stores.users,
        stores.transactions,
        stores.groups,
        audit_logger=audit_logger,
    )
    groups = GroupService(
        gate,
        stores.groups,
        stores.users,
        audit_logger=audit_logger,
    )

    return AppComponents(
        stores=stores,
        gate=gate,
        engine=engine,
        sessions=sessions,
        categories=categories,
        transactions=transactions,
        users=users,
        groups=groups,
        audit_logger=audit_logger,
    )
