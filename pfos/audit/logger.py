"""
Audit Logger

DESIGN DECISION: Every mutation and every degraded operation is logged.
This provides:
1. Traceability of what each instance wrote
2. Visibility into reads that silently came back empty
3. A record of dropped change notifications

The audit logger only writes to the local structured log; it has no
storage backend of its own.
"""

import logging
from typing import Optional

import structlog

from pfos.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


def configure_logging(level: str = "INFO", json_logs: bool = True) -> None:
    """
    Configure stdlib logging and the structlog processor chain.

    Safe to call more than once; the last call wins.
    """
    logging.basicConfig(format="%(message)s", level=level, force=True)

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )
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
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class AuditLogger:
    """
    Central audit logging service.

    One per instance; `instance_id` is bound onto every line so logs from
    several windows sharing a device can be told apart.
    """

    def __init__(self, instance_id: Optional[str] = None):
        self._logger = structlog.get_logger("pfos.audit")
        if instance_id:
            self._logger = self._logger.bind(instance_id=instance_id)

    def log(self, event: AuditEvent) -> None:
        """Log an audit event at the level matching its severity."""
        log_dict = event.to_log_dict()

        if event.severity == AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

    def log_store_opened(self, database_path: str, schema_version: int, created: bool) -> None:
        self.log(AuditEventBuilder.store_opened(database_path, schema_version, created))

    def log_store_unavailable(self, database_path: str, error: str) -> None:
        self.log(AuditEventBuilder.store_unavailable(database_path, error))

    def log_transaction_saved(self, tx_id: str, profile: str, date: str, amount: float) -> None:
        self.log(AuditEventBuilder.transaction_saved(tx_id, profile, date, amount))

    def log_transaction_deleted(self, tx_id: str) -> None:
        self.log(AuditEventBuilder.transaction_deleted(tx_id))

    def log_seed_completed(self, profile: str, count: int) -> None:
        self.log(AuditEventBuilder.seed_completed(profile, count))

    def log_settings_saved(self, profile: str, seeded: bool = False) -> None:
        self.log(AuditEventBuilder.settings_saved(profile, seeded=seeded))

    def log_write_failed(self, entity_type: str, entity_id: Optional[str], error: str) -> None:
        self.log(AuditEventBuilder.write_failed(entity_type, entity_id, error))

    def log_read_degraded(self, operation: str, error: str, profile: Optional[str] = None) -> None:
        self.log(AuditEventBuilder.read_degraded(operation, error, profile=profile))

    def log_notification_failed(self, scope: str, channel: str, error: str) -> None:
        self.log(AuditEventBuilder.notification_failed(scope, channel, error))

    def log_handler_failed(self, scope: str, error: str) -> None:
        self.log(AuditEventBuilder.handler_failed(scope, error))
