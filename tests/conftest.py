"""
Shared fixtures.

All storage in tests is local: the in-memory store, or SQLite on ':memory:'.
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from logbook.audit import AuditLogger
from logbook.models.entities import (
    Client,
    ExportSnapshot,
    LogEntry,
    LogEntryType,
)
from logbook.services.storage import (
    InMemoryAuditStorage,
    InMemoryLogbookStorage,
    SQLiteLogbookStorage,
)


CLIENT_A_ID = UUID("11111111-1111-4111-8111-111111111111")
CLIENT_B_ID = UUID("22222222-2222-4222-8222-222222222222")
TASK_ID = UUID("aaaaaaaa-aaaa-4aaa-8aaa-aaaaaaaaaaaa")
NOTE_ID = UUID("bbbbbbbb-bbbb-4bbb-8bbb-bbbbbbbbbbbb")
PAYMENT_ID = UUID("cccccccc-cccc-4ccc-8ccc-cccccccccccc")

EXPORTED_AT = datetime(2025, 5, 3, 14, 30, 0, tzinfo=timezone.utc)


@pytest.fixture
def client_a() -> Client:
    return Client(
        id=CLIENT_A_ID,
        name="Acme, Inc.",
        tag="retainer",
        hourly_rate=Decimal("85.50"),
    )


@pytest.fixture
def client_b() -> Client:
    return Client(id=CLIENT_B_ID, name="Bob's Bakery")


@pytest.fixture
def sample_entries() -> list[LogEntry]:
    return [
        LogEntry(
            id=TASK_ID,
            type=LogEntryType.TASK,
            occurs_at=datetime(2025, 5, 1, 9, 0, tzinfo=timezone.utc),
            created_at=datetime(2025, 4, 30, 8, 0, tzinfo=timezone.utc),
            description='Fix "login" bug,\nthen deploy',
            is_complete=True,
            tag="urgent",
            client_id=CLIENT_A_ID,
        ),
        LogEntry(
            id=NOTE_ID,
            type=LogEntryType.NOTE,
            occurs_at=datetime(2025, 5, 2, 10, 15, tzinfo=timezone.utc),
            created_at=datetime(2025, 5, 2, 10, 15, tzinfo=timezone.utc),
            description="Call notes",
        ),
        LogEntry(
            id=PAYMENT_ID,
            type=LogEntryType.PAYMENT,
            occurs_at=datetime(2025, 5, 3, 12, 0, tzinfo=timezone.utc),
            created_at=datetime(2025, 5, 3, 12, 0, tzinfo=timezone.utc),
            description="April invoice",
            amount=Decimal("1250.75"),
            client_id=CLIENT_B_ID,
        ),
    ]


@pytest.fixture
def sample_snapshot(client_a, client_b, sample_entries) -> ExportSnapshot:
    return ExportSnapshot(
        exported_at=EXPORTED_AT,
        clients=[client_a, client_b],
        entries=sample_entries,
    )


@pytest.fixture
def populated_storage(client_a, client_b, sample_entries) -> InMemoryLogbookStorage:
    return InMemoryLogbookStorage(clients=[client_a, client_b], entries=sample_entries)


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)


@pytest.fixture
async def sqlite_storage():
    """Initialized SQLite store on a throwaway in-memory database."""
    storage = await SQLiteLogbookStorage.create(":memory:")
    yield storage
    await storage.close()
