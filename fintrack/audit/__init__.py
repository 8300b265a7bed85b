"""Audit logging package."""

from fintrack.audit.logger import AuditLogger
from fintrack.audit.storage import AuditStorageInterface, InMemoryAuditStorage

__all__ = ["AuditLogger", "AuditStorageInterface", "InMemoryAuditStorage"]
