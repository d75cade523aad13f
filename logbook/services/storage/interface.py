"""
Abstract Storage Interface

DESIGN DECISION: The portability engine talks to the local object store
only through this interface:
1. snapshot() - read-only full scan used by export
2. existing_identifiers() - what is already stored, used for dedup
3. insert() + commit() - staged batch insert, made visible in one step
4. rollback() - discard everything staged since the last commit

There are deliberately no update or delete operations here.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from logbook.models.audit import AuditEvent
from logbook.models.entities import Client, ExportSnapshot, LogEntry


class LogbookStorageInterface(ABC):
    """
    Abstract interface for the client/entry store.

    Any storage implementation (SQLite, in-memory, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def snapshot(self) -> ExportSnapshot:
        """
        Read every client and entry.

        Returns:
            Snapshot with exported_at set to now

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def existing_identifiers(self) -> tuple[set[UUID], set[UUID]]:
        """
        Get the identifiers already stored.

        Returns:
            (client_ids, entry_ids)
        """
        pass

    @abstractmethod
    async def insert(
        self,
        clients: list[Client],
        entries: list[LogEntry],
    ) -> None:
        """
        Stage new rows. Nothing is visible until commit().

        Args:
            clients: Clients to add
            entries: Entries to add
        """
        pass

    @abstractmethod
    async def commit(self) -> None:
        """
        Persist everything staged, all or nothing.

        Raises:
            DuplicateError: If a staged id already exists
            StorageError: If the write fails (nothing is persisted)
        """
        pass

    @abstractmethod
    async def rollback(self) -> None:
        """Discard everything staged since the last commit."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release any held resources."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for one export or import, oldest first.
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events, newest first.
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StorageConnectionError(StorageError):
    """Could not open the storage backend."""
    pass
