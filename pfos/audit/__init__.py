"""Audit logging package."""

from pfos.audit.logger import AuditLogger, configure_logging

__all__ = ["AuditLogger", "configure_logging"]
