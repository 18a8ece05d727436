"""
Audit Models for PFOS Core

Every mutation and every degraded operation is described by an audit
event, so the local log tells the full story of what an instance did:
what it wrote, which reads came back empty because storage misbehaved,
and which change notifications were dropped.

DESIGN DECISION: Audit events go to the structured log only. They are
never written to the record store, so auditing cannot fail a mutation.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Store lifecycle
    STORE_OPENED = "store_opened"
    STORE_UNAVAILABLE = "store_unavailable"

    # Transactions
    TRANSACTION_SAVED = "transaction_saved"
    TRANSACTION_DELETED = "transaction_deleted"
    SEED_COMPLETED = "seed_completed"

    # Settings
    SETTINGS_SAVED = "settings_saved"
    SETTINGS_SEEDED = "settings_seeded"

    # Failures
    WRITE_FAILED = "write_failed"
    READ_DEGRADED = "read_degraded"
    NOTIFICATION_FAILED = "notification_failed"
    HANDLER_FAILED = "handler_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """A single audit event."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'settings', 'store')"
    )
    entity_id: Optional[str] = None
    profile: Optional[str] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
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
            "profile": self.profile,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_saved(tx_id, profile, date)
        event = AuditEventBuilder.read_degraded("count", error)
    """

    @staticmethod
    def store_opened(database_path: str, schema_version: int, created: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_OPENED,
            entity_type="store",
            description=f"Record store opened: {database_path}",
            details={
                "database_path": database_path,
                "schema_version": schema_version,
                "schema_created": created,
            },
        )

    @staticmethod
    def store_unavailable(database_path: str, error: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_UNAVAILABLE,
            severity=AuditSeverity.ERROR,
            entity_type="store",
            description=f"Record store could not be opened: {database_path}",
            details={"database_path": database_path},
            error_message=error,
        )

    @staticmethod
    def transaction_saved(tx_id: str, profile: str, date: str, amount: float) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_SAVED,
            entity_type="transaction",
            entity_id=tx_id,
            profile=profile,
            description=f"Transaction saved for {date}",
            details={"date": date, "amount": amount},
        )

    @staticmethod
    def transaction_deleted(tx_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=tx_id,
            description="Transaction deleted",
        )

    @staticmethod
    def seed_completed(profile: str, count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SEED_COMPLETED,
            entity_type="transaction",
            profile=profile,
            description=f"Seeded {count} demonstration transactions",
            details={"count": count},
        )

    @staticmethod
    def settings_saved(profile: str, seeded: bool = False) -> AuditEvent:
        if seeded:
            return AuditEvent(
                event_type=AuditEventType.SETTINGS_SEEDED,
                entity_type="settings",
                entity_id=f"settings:{profile}",
                profile=profile,
                description="Default settings created",
            )
        return AuditEvent(
            event_type=AuditEventType.SETTINGS_SAVED,
            entity_type="settings",
            entity_id=f"settings:{profile}",
            profile=profile,
            description="Settings replaced",
        )

    @staticmethod
    def write_failed(
        entity_type: str,
        entity_id: Optional[str],
        error: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WRITE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"Write failed for {entity_type}",
            error_message=error,
        )

    @staticmethod
    def read_degraded(
        operation: str,
        error: str,
        profile: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.READ_DEGRADED,
            severity=AuditSeverity.WARNING,
            profile=profile,
            description=f"Read failed, returning empty result: {operation}",
            details={"operation": operation},
            error_message=error,
        )

    @staticmethod
    def notification_failed(scope: str, channel: str, error: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOTIFICATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="change_bus",
            description=f"Change notification dropped on {channel}",
            details={"scope": scope, "channel": channel},
            error_message=error,
        )

    @staticmethod
    def handler_failed(scope: str, error: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.HANDLER_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="change_bus",
            description="Change handler raised",
            details={"scope": scope},
            error_message=error,
        )
