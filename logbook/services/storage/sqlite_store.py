"""
SQLite Storage Implementation

The local object store behind the app: one file, three tables
(clients, log_entries, audit_events).

DESIGN DECISION: insert() only stages rows in memory. commit() writes
the whole batch inside a single BEGIN IMMEDIATE ... COMMIT, and any
failure rolls the transaction back, so an import is visible entirely
or not at all.
"""

import asyncio
import sqlite3
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Optional, Union
from uuid import UUID

import aiosqlite
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from logbook.config import get_settings
from logbook.models.audit import AuditEvent
from logbook.models.entities import Client, ExportSnapshot, LogEntry, LogEntryType
from logbook.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    LogbookStorageInterface,
    StorageConnectionError,
    StorageError,
)

logger = structlog.get_logger(__name__)


CLIENT_COLUMNS = (
    "id",
    "name",
    "tag",
    "hourly_rate",
)

ENTRY_COLUMNS = (
    "id",
    "type",
    "occurs_at",
    "created_at",
    "description",
    "is_complete",
    "amount",
    "tag",
    "client_id",
)

AUDIT_COLUMNS = (
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "correlation_id",
    "description",
    "details_json",
    "error_code",
    "error_message",
)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS clients (
        id TEXT NOT NULL PRIMARY KEY,
        name TEXT NOT NULL,
        tag TEXT,
        hourly_rate TEXT NOT NULL DEFAULT '0'
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS log_entries (
        id TEXT NOT NULL PRIMARY KEY,
        type INTEGER NOT NULL,
        occurs_at TEXT,
        created_at TEXT,
        description TEXT NOT NULL,
        is_complete INTEGER NOT NULL DEFAULT 0,
        amount TEXT NOT NULL DEFAULT '0',
        tag TEXT,
        client_id TEXT REFERENCES clients(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS audit_events (
        event_id TEXT NOT NULL PRIMARY KEY,
        timestamp TEXT NOT NULL,
        event_type TEXT NOT NULL,
        severity TEXT NOT NULL,
        correlation_id TEXT,
        description TEXT NOT NULL,
        details_json TEXT,
        error_code TEXT,
        error_message TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_entries_client ON log_entries(client_id)",
    "CREATE INDEX IF NOT EXISTS idx_audit_correlation ON audit_events(correlation_id, timestamp)",
)


def _placeholders(columns: tuple) -> str:
    return ", ".join("?" for _ in columns)


def _client_to_row(client: Client) -> tuple:
    return (
        str(client.id),
        client.name,
        client.tag,
        str(client.hourly_rate),
    )


def _row_to_client(row) -> Client:
    return Client(
        id=UUID(row[0]),
        name=row[1],
        tag=row[2],
        hourly_rate=Decimal(row[3]),
    )


def _entry_to_row(entry: LogEntry) -> tuple:
    return (
        str(entry.id),
        int(entry.type),
        entry.occurs_at.isoformat() if entry.occurs_at else None,
        entry.created_at.isoformat() if entry.created_at else None,
        entry.description,
        1 if entry.is_complete else 0,
        str(entry.amount),
        entry.tag,
        str(entry.client_id) if entry.client_id else None,
    )


def _row_to_entry(row) -> LogEntry:
    return LogEntry(
        id=UUID(row[0]),
        type=LogEntryType(row[1]),
        occurs_at=datetime.fromisoformat(row[2]) if row[2] else None,
        created_at=datetime.fromisoformat(row[3]) if row[3] else None,
        description=row[4],
        is_complete=bool(row[5]),
        amount=Decimal(row[6]),
        tag=row[7],
        client_id=UUID(row[8]) if row[8] else None,
    )


class SQLiteLogbookStorage(LogbookStorageInterface, AuditStorageInterface):
    """
    aiosqlite implementation of the client/entry store and the audit log.

    A single connection is shared; writes are serialized with a lock so an
    audit append can never land in the middle of an import's transaction.
    """

    def __init__(self, db_path: Optional[Union[str, Path]] = None):
        if db_path is None:
            db_path = get_settings().storage.database_path
        self._db_path = str(db_path)
        self._conn: Optional[aiosqlite.Connection] = None
        self._write_lock = asyncio.Lock()
        self._staged_clients: list[Client] = []
        self._staged_entries: list[LogEntry] = []

    @classmethod
    async def create(
        cls,
        db_path: Optional[Union[str, Path]] = None,
    ) -> "SQLiteLogbookStorage":
        """Create and initialize the store."""
        storage = cls(db_path)
        await storage.initialize()
        return storage

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception_type(sqlite3.OperationalError),
        reraise=True,
    )
    async def _connect(self) -> aiosqlite.Connection:
        # isolation_level=None: transactions are opened explicitly in commit()
        return await aiosqlite.connect(self._db_path, isolation_level=None)

    async def initialize(self) -> None:
        """Open the connection and create the schema."""
        if self._conn is not None:
            return

        try:
            self._conn = await self._connect()
            await self._conn.execute("PRAGMA foreign_keys = ON")
            for statement in _SCHEMA:
                await self._conn.execute(statement)
        except sqlite3.Error as e:
            raise StorageConnectionError(
                f"Failed to open database at {self._db_path}: {e}", cause=e
            )

        logger.info("storage_opened", db_path=self._db_path)

    def _connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise StorageConnectionError("Storage is not initialized; call initialize() first")
        return self._conn

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def _fetch_all(self, sql: str) -> list:
        try:
            async with self._connection().execute(sql) as cursor:
                return list(await cursor.fetchall())
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read from storage: {e}", cause=e)

    async def list_clients(self) -> list[Client]:
        rows = await self._fetch_all(
            f"SELECT {', '.join(CLIENT_COLUMNS)} FROM clients ORDER BY rowid"
        )
        return [_row_to_client(row) for row in rows]

    async def list_entries(self) -> list[LogEntry]:
        rows = await self._fetch_all(
            f"SELECT {', '.join(ENTRY_COLUMNS)} FROM log_entries ORDER BY rowid"
        )
        return [_row_to_entry(row) for row in rows]

    async def snapshot(self) -> ExportSnapshot:
        return ExportSnapshot(
            clients=await self.list_clients(),
            entries=await self.list_entries(),
        )

    async def existing_identifiers(self) -> tuple[set[UUID], set[UUID]]:
        client_rows = await self._fetch_all("SELECT id FROM clients")
        entry_rows = await self._fetch_all("SELECT id FROM log_entries")
        return (
            {UUID(row[0]) for row in client_rows},
            {UUID(row[0]) for row in entry_rows},
        )

    # -------------------------------------------------------------------------
    # Staged writes
    # -------------------------------------------------------------------------

    async def insert(
        self,
        clients: list[Client],
        entries: list[LogEntry],
    ) -> None:
        self._staged_clients.extend(clients)
        self._staged_entries.extend(entries)

    async def commit(self) -> None:
        conn = self._connection()
        clients, entries = self._staged_clients, self._staged_entries
        self._staged_clients, self._staged_entries = [], []

        async with self._write_lock:
            try:
                await conn.execute("BEGIN IMMEDIATE")
                await conn.executemany(
                    f"INSERT INTO clients ({', '.join(CLIENT_COLUMNS)}) "
                    f"VALUES ({_placeholders(CLIENT_COLUMNS)})",
                    [_client_to_row(c) for c in clients],
                )
                await conn.executemany(
                    f"INSERT INTO log_entries ({', '.join(ENTRY_COLUMNS)}) "
                    f"VALUES ({_placeholders(ENTRY_COLUMNS)})",
                    [_entry_to_row(e) for e in entries],
                )
                await conn.execute("COMMIT")
            except sqlite3.IntegrityError as e:
                await self._rollback_transaction()
                if "UNIQUE" in str(e):
                    raise DuplicateError(f"Commit rejected, id already stored: {e}", cause=e)
                raise StorageError(f"Commit rejected by integrity check: {e}", cause=e)
            except sqlite3.Error as e:
                await self._rollback_transaction()
                raise StorageError(f"Commit failed: {e}", cause=e)

        logger.debug(
            "storage_committed",
            clients=len(clients),
            entries=len(entries),
        )

    async def _rollback_transaction(self) -> None:
        conn = self._connection()
        if conn.in_transaction:
            await conn.execute("ROLLBACK")

    async def rollback(self) -> None:
        self._staged_clients = []
        self._staged_entries = []

    # -------------------------------------------------------------------------
    # Audit log
    # -------------------------------------------------------------------------

    async def append_event(self, event: AuditEvent) -> bool:
        async with self._write_lock:
            try:
                await self._connection().execute(
                    f"INSERT INTO audit_events ({', '.join(AUDIT_COLUMNS)}) "
                    f"VALUES ({_placeholders(AUDIT_COLUMNS)})",
                    event.to_row(),
                )
            except sqlite3.Error as e:
                raise StorageError(f"Failed to append audit event: {e}", cause=e)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            async with self._connection().execute(
                f"SELECT {', '.join(AUDIT_COLUMNS)} FROM audit_events "
                "WHERE correlation_id = ? ORDER BY timestamp, rowid",
                (str(correlation_id),),
            ) as cursor:
                rows = await cursor.fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read audit events: {e}", cause=e)
        return [AuditEvent.from_row(row) for row in rows]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            async with self._connection().execute(
                f"SELECT {', '.join(AUDIT_COLUMNS)} FROM audit_events "
                "ORDER BY rowid DESC LIMIT ?",
                (limit,),
            ) as cursor:
                rows = await cursor.fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read audit events: {e}", cause=e)
        return [AuditEvent.from_row(row) for row in rows]
