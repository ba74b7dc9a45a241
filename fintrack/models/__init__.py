"""
Data Models Package

All Pydantic models used in the finance tracker.
"""

from fintrack.models.api import (
    REFRESHED_TOKEN_MESSAGE,
    ApiRequest,
    ApiResponse,
    CookieDirective,
    ResponseContext,
)
from fintrack.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from fintrack.models.auth import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    AuthMode,
    AuthResult,
    DecodedToken,
    DecodeStatus,
    Role,
    TokenClaims,
    TokenPair,
)
from fintrack.models.ledger import (
    Category,
    DeleteOutcome,
    Group,
    GroupMember,
    RenameOutcome,
    Transaction,
    TransactionFilter,
    TransactionView,
    User,
)

__all__ = [
    # API models
    "REFRESHED_TOKEN_MESSAGE",
    "ApiRequest",
    "ApiResponse",
    "CookieDirective",
    "ResponseContext",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Auth models
    "ACCESS_TOKEN_COOKIE",
    "REFRESH_TOKEN_COOKIE",
    "AuthMode",
    "AuthResult",
    "DecodedToken",
    "DecodeStatus",
    "Role",
    "TokenClaims",
    "TokenPair",
    # Ledger models
    "Category",
    "DeleteOutcome",
    "Group",
    "GroupMember",
    "RenameOutcome",
    "Transaction",
    "TransactionFilter",
    "TransactionView",
    "User",
]
