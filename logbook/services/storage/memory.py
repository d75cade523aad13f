"""
In-Memory Storage Implementation

Used for tests, previews, and as the fallback when the SQLite store
cannot be opened. Behaves like the real store: inserts are staged and
only become visible on commit().
"""

from typing import Iterable, Optional
from uuid import UUID

from logbook.models.audit import AuditEvent
from logbook.models.entities import Client, ExportSnapshot, LogEntry
from logbook.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    LogbookStorageInterface,
)


class InMemoryLogbookStorage(LogbookStorageInterface):
    """Dict-backed store keeping insertion order."""

    def __init__(
        self,
        clients: Optional[Iterable[Client]] = None,
        entries: Optional[Iterable[LogEntry]] = None,
    ):
        self._clients: dict[UUID, Client] = {c.id: c for c in clients or []}
        self._entries: dict[UUID, LogEntry] = {e.id: e for e in entries or []}
        self._staged_clients: list[Client] = []
        self._staged_entries: list[LogEntry] = []
        self.commit_count = 0

    @property
    def clients(self) -> list[Client]:
        return list(self._clients.values())

    @property
    def entries(self) -> list[LogEntry]:
        return list(self._entries.values())

    async def snapshot(self) -> ExportSnapshot:
        return ExportSnapshot(clients=self.clients, entries=self.entries)

    async def existing_identifiers(self) -> tuple[set[UUID], set[UUID]]:
        return set(self._clients), set(self._entries)

    async def insert(
        self,
        clients: list[Client],
        entries: list[LogEntry],
    ) -> None:
        self._staged_clients.extend(clients)
        self._staged_entries.extend(entries)

    async def commit(self) -> None:
        # Check everything before touching the dicts so a failure applies nothing
        client_ids = set(self._clients)
        for client in self._staged_clients:
            if client.id in client_ids:
                raise DuplicateError(f"Client already exists: {client.id}")
            client_ids.add(client.id)

        entry_ids = set(self._entries)
        for entry in self._staged_entries:
            if entry.id in entry_ids:
                raise DuplicateError(f"Entry already exists: {entry.id}")
            entry_ids.add(entry.id)

        for client in self._staged_clients:
            self._clients[client.id] = client
        for entry in self._staged_entries:
            self._entries[entry.id] = entry

        self._staged_clients = []
        self._staged_entries = []
        self.commit_count += 1

    async def rollback(self) -> None:
        self._staged_clients = []
        self._staged_entries = []

    async def close(self) -> None:
        pass


class InMemoryAuditStorage(AuditStorageInterface):
    """List-backed audit log."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self.events if e.correlation_id == correlation_id]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self.events))[:limit]
