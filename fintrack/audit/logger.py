"""
Audit Logger

DESIGN DECISION: Every session change and category mutation is logged.
This provides:
1. Traceability of who moved which transactions
2. Debugging capability for rejected sessions
3. A trail to finish an interrupted rename or delete by hand

The audit logger:
- Is async so it can share the storage backend's event loop
- Gracefully handles failures (doesn't fail the request if logging fails)
- Supports correlation IDs to trace the events of one request
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from fintrack.models.audit import AuditEvent, AuditEventBuilder
from fintrack.services.storage import AuditStorageInterface


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structlog for local JSON logging."""
    logging.basicConfig(format="%(message)s", level=log_level.upper())
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit collection (for persistence)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("fintrack.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_user_registered(
        self,
        username: str,
        role: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        return await self.log(AuditEventBuilder.user_registered(
            username=username,
            role=role,
            correlation_id=correlation_id,
        ))

    async def log_login_succeeded(
        self,
        username: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        return await self.log(AuditEventBuilder.login_succeeded(
            username=username,
            correlation_id=correlation_id,
        ))

    async def log_login_failed(
        self,
        email: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        return await self.log(AuditEventBuilder.login_failed(
            email=email,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_logout(
        self,
        username: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        return await self.log(AuditEventBuilder.logout(
            username=username,
            correlation_id=correlation_id,
        ))

    async def log_token_refreshed(
        self,
        username: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        return await self.log(AuditEventBuilder.access_token_refreshed(
            username=username,
            correlation_id=correlation_id,
        ))

    async def log_authorization_denied(
        self,
        mode: str,
        reason: str,
        actor: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        return await self.log(AuditEventBuilder.authorization_denied(
            mode=mode,
            reason=reason,
            actor=actor,
            correlation_id=correlation_id,
        ))

    async def log_category_created(
        self,
        category_type: str,
        color: str,
        actor: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        return await self.log(AuditEventBuilder.category_created(
            category_type=category_type,
            color=color,
            actor=actor,
            correlation_id=correlation_id,
        ))

    async def log_category_renamed(
        self,
        old_type: str,
        new_type: str,
        transaction_count: int,
        actor: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        return await self.log(AuditEventBuilder.category_renamed(
            old_type=old_type,
            new_type=new_type,
            transaction_count=transaction_count,
            actor=actor,
            correlation_id=correlation_id,
        ))

    async def log_categories_deleted(
        self,
        deleted_types: list[str],
        fallback_type: Optional[str],
        retained_type: Optional[str],
        transaction_count: int,
        actor: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        return await self.log(AuditEventBuilder.categories_deleted(
            deleted_types=deleted_types,
            fallback_type=fallback_type,
            retained_type=retained_type,
            transaction_count=transaction_count,
            actor=actor,
            correlation_id=correlation_id,
        ))

    async def log_category_mutation_rejected(
        self,
        operation: str,
        reason: str,
        actor: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        return await self.log(AuditEventBuilder.category_mutation_rejected(
            operation=operation,
            reason=reason,
            actor=actor,
            correlation_id=correlation_id,
        ))

    async def log_transaction_created(
        self,
        username: str,
        category_type: str,
        amount: float,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        return await self.log(AuditEventBuilder.transaction_created(
            username=username,
            category_type=category_type,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_transactions_retargeted(
        self,
        from_type: str,
        to_type: str,
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        return await self.log(AuditEventBuilder.transactions_retargeted(
            from_type=from_type,
            to_type=to_type,
            count=count,
            correlation_id=correlation_id,
        ))

    async def log_transactions_deleted(
        self,
        transaction_ids: list[str],
        actor: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        return await self.log(AuditEventBuilder.transactions_deleted(
            transaction_ids=transaction_ids,
            actor=actor,
            correlation_id=correlation_id,
        ))

    async def log_user_deleted(
        self,
        username: str,
        transaction_count: int,
        group_name: Optional[str],
        group_deleted: bool,
        actor: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        return await self.log(AuditEventBuilder.user_deleted(
            username=username,
            transaction_count=transaction_count,
            group_name=group_name,
            group_deleted=group_deleted,
            actor=actor,
            correlation_id=correlation_id,
        ))

    async def log_group_created(
        self,
        name: str,
        member_emails: list[str],
        actor: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        return await self.log(AuditEventBuilder.group_created(
            name=name,
            member_emails=member_emails,
            actor=actor,
            correlation_id=correlation_id,
        ))

    async def log_group_members_changed(
        self,
        name: str,
        added: list[str],
        removed: list[str],
        actor: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        return await self.log(AuditEventBuilder.group_members_changed(
            name=name,
            added=added,
            removed=removed,
            actor=actor,
            correlation_id=correlation_id,
        ))

    async def log_group_deleted(
        self,
        name: str,
        actor: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        return await self.log(AuditEventBuilder.group_deleted(
            name=name,
            actor=actor,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        return await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a request and pass it through every
    operation the request performs.
    """
    return uuid4()
