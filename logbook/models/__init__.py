"""
Data Models Package

This package contains all Pydantic models used by the Logbook portability engine.
"""

from logbook.models.entities import (
    DEFAULT_CLIENT_NAME,
    DEFAULT_DESCRIPTION,
    Client,
    ExportFormat,
    ExportOptions,
    ExportResult,
    ExportSnapshot,
    ImportSummary,
    LogEntry,
    LogEntryType,
    utc_now,
)
from logbook.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Entity models
    "DEFAULT_CLIENT_NAME",
    "DEFAULT_DESCRIPTION",
    "Client",
    "ExportFormat",
    "ExportOptions",
    "ExportResult",
    "ExportSnapshot",
    "ImportSummary",
    "LogEntry",
    "LogEntryType",
    "utc_now",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
