"""Audit trail for changes to transfers, accounts and rates."""
from cambio.models.audit import AuditLog
from cambio.audit.services import AuditService

__all__ = ["AuditLog", "AuditService"]
