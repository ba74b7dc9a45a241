"""
Audit Models for the Finance Tracker

Every session change, authorization denial and category mutation is logged.
This provides:
1. Traceability of who changed the category set and how many
   transactions moved as a result
2. Debugging information when a session is rejected
3. The ability to reconstruct an interrupted rename or delete

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Sessions
    USER_REGISTERED = "user_registered"
    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_FAILED = "login_failed"
    LOGOUT = "logout"
    ACCESS_TOKEN_REFRESHED = "access_token_refreshed"
    AUTHORIZATION_DENIED = "authorization_denied"

    # Categories
    CATEGORY_CREATED = "category_created"
    CATEGORY_RENAMED = "category_renamed"
    CATEGORY_RECOLORED = "category_recolored"
    CATEGORIES_DELETED = "categories_deleted"
    CATEGORY_MUTATION_REJECTED = "category_mutation_rejected"

    # Transactions
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTIONS_RETARGETED = "transactions_retargeted"
    TRANSACTIONS_DELETED = "transactions_deleted"

    # Users and groups
    USER_DELETED = "user_deleted"
    GROUP_CREATED = "group_created"
    GROUP_MEMBERS_CHANGED = "group_members_changed"
    GROUP_DELETED = "group_deleted"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'category', 'user', 'session')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Natural key of the entity (category type, username)"
    )
    actor: Optional[str] = Field(
        default=None,
        description="Username that triggered the event, when known"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate the events of one request"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "actor": self.actor,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_document(self) -> dict:
        """Convert to a document for the audit collection."""
        doc = self.to_log_dict()
        doc["timestamp"] = self.timestamp
        return doc


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.login_succeeded("alice", correlation_id)
        event = AuditEventBuilder.category_renamed("food", "groceries", 3, "admin", cid)
    """

    @staticmethod
    def user_registered(
        username: str,
        role: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_REGISTERED,
            entity_type="user",
            entity_id=username,
            actor=username,
            correlation_id=correlation_id,
            description=f"User registered with role {role}",
            details={"role": role},
        )

    @staticmethod
    def login_succeeded(
        username: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_SUCCEEDED,
            entity_type="session",
            entity_id=username,
            actor=username,
            correlation_id=correlation_id,
            description="Login succeeded, token pair issued",
        )

    @staticmethod
    def login_failed(
        email: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="session",
            entity_id=email,
            correlation_id=correlation_id,
            description=f"Login failed: {reason}",
            details={"reason": reason},
        )

    @staticmethod
    def logout(
        username: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGOUT,
            entity_type="session",
            entity_id=username,
            actor=username,
            correlation_id=correlation_id,
            description="User logged out, refresh token revoked",
        )

    @staticmethod
    def access_token_refreshed(
        username: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCESS_TOKEN_REFRESHED,
            entity_type="session",
            entity_id=username,
            actor=username,
            correlation_id=correlation_id,
            description="Expired access token renewed from refresh token",
        )

    @staticmethod
    def authorization_denied(
        mode: str,
        reason: str,
        actor: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTHORIZATION_DENIED,
            severity=AuditSeverity.WARNING,
            entity_type="session",
            actor=actor,
            correlation_id=correlation_id,
            description=f"Authorization denied ({mode}): {reason}",
            details={"mode": mode, "reason": reason},
        )

    @staticmethod
    def category_created(
        category_type: str,
        color: str,
        actor: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_CREATED,
            entity_type="category",
            entity_id=category_type,
            actor=actor,
            correlation_id=correlation_id,
            description=f"Category created: {category_type}",
            details={"color": color},
        )

    @staticmethod
    def category_renamed(
        old_type: str,
        new_type: str,
        transaction_count: int,
        actor: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        if old_type == new_type:
            return AuditEvent(
                event_type=AuditEventType.CATEGORY_RECOLORED,
                entity_type="category",
                entity_id=old_type,
                actor=actor,
                correlation_id=correlation_id,
                description=f"Category color changed: {old_type}",
            )
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_RENAMED,
            entity_type="category",
            entity_id=new_type,
            actor=actor,
            correlation_id=correlation_id,
            description=f"Category renamed: {old_type} -> {new_type}",
            details={
                "old_type": old_type,
                "new_type": new_type,
                "transactions_retargeted": transaction_count,
            },
        )

    @staticmethod
    def categories_deleted(
        deleted_types: list[str],
        fallback_type: Optional[str],
        retained_type: Optional[str],
        transaction_count: int,
        actor: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORIES_DELETED,
            entity_type="category",
            entity_id=fallback_type,
            actor=actor,
            correlation_id=correlation_id,
            description=f"Deleted {len(deleted_types)} categories",
            details={
                "deleted_types": deleted_types,
                "fallback_type": fallback_type,
                "retained_type": retained_type,
                "transactions_reassigned": transaction_count,
            },
        )

    @staticmethod
    def category_mutation_rejected(
        operation: str,
        reason: str,
        actor: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_MUTATION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="category",
            actor=actor,
            correlation_id=correlation_id,
            description=f"Category {operation} rejected: {reason}",
            details={"operation": operation, "reason": reason},
        )

    @staticmethod
    def transaction_created(
        username: str,
        category_type: str,
        amount: float,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            entity_type="transaction",
            entity_id=category_type,
            actor=username,
            correlation_id=correlation_id,
            description=f"Transaction recorded in {category_type}",
            details={"amount": amount},
        )

    @staticmethod
    def transactions_retargeted(
        from_type: str,
        to_type: str,
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTIONS_RETARGETED,
            entity_type="transaction",
            entity_id=to_type,
            correlation_id=correlation_id,
            description=f"{count} transactions moved from {from_type} to {to_type}",
            details={"from_type": from_type, "to_type": to_type, "count": count},
        )

    @staticmethod
    def transactions_deleted(
        transaction_ids: list[str],
        actor: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTIONS_DELETED,
            entity_type="transaction",
            actor=actor,
            correlation_id=correlation_id,
            description=f"Deleted {len(transaction_ids)} transactions",
            details={"transaction_ids": transaction_ids},
        )

    @staticmethod
    def user_deleted(
        username: str,
        transaction_count: int,
        group_name: Optional[str],
        group_deleted: bool,
        actor: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_DELETED,
            severity=AuditSeverity.WARNING,
            entity_type="user",
            entity_id=username,
            actor=actor,
            correlation_id=correlation_id,
            description=f"User {username} deleted",
            details={
                "transactions_deleted": transaction_count,
                "group": group_name,
                "group_deleted": group_deleted,
            },
        )

    @staticmethod
    def group_created(
        name: str,
        member_emails: list[str],
        actor: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GROUP_CREATED,
            entity_type="group",
            entity_id=name,
            actor=actor,
            correlation_id=correlation_id,
            description=f"Group {name} created",
            details={"members": member_emails},
        )

    @staticmethod
    def group_members_changed(
        name: str,
        added: list[str],
        removed: list[str],
        actor: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GROUP_MEMBERS_CHANGED,
            entity_type="group",
            entity_id=name,
            actor=actor,
            correlation_id=correlation_id,
            description=f"Group {name}: {len(added)} added, {len(removed)} removed",
            details={"added": added, "removed": removed},
        )

    @staticmethod
    def group_deleted(
        name: str,
        actor: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GROUP_DELETED,
            severity=AuditSeverity.WARNING,
            entity_type="group",
            entity_id=name,
            actor=actor,
            correlation_id=correlation_id,
            description=f"Group {name} deleted",
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            entity_type="system",
            correlation_id=correlation_id,
            description=f"System error: {error_type}",
            details=details or {},
            error_message=error_message,
        )
