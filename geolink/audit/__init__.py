"""Structured audit logging."""

from geolink.audit.logger import AuditLog

__all__ = ["AuditLog"]
