"""
Storage Services Package

Provides abstract interfaces and concrete implementations for the document
store. MongoDB is the production backend; the in-memory backend serves tests
and local runs.

The MongoDB backend is imported lazily from fintrack.services.storage.mongo
so that the in-memory backend works without the driver installed.
"""

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
from fintrack.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryCategoryStorage,
    InMemoryGroupStorage,
    InMemoryTransactionStorage,
    InMemoryUserStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "CategoryStorageInterface",
    "GroupStorageInterface",
    "TransactionStorageInterface",
    "UserStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryCategoryStorage",
    "InMemoryGroupStorage",
    "InMemoryTransactionStorage",
    "InMemoryUserStorage",
]
