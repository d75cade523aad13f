"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
SQLite is the local object store; the in-memory store backs tests and previews.
"""

from logbook.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    LogbookStorageInterface,
    StorageConnectionError,
    StorageError,
)
from logbook.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryLogbookStorage,
)
from logbook.services.storage.sqlite_store import SQLiteLogbookStorage

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "LogbookStorageInterface",
    # Exceptions
    "DuplicateError",
    "StorageConnectionError",
    "StorageError",
    # Implementations
    "InMemoryAuditStorage",
    "InMemoryLogbookStorage",
    "SQLiteLogbookStorage",
]
