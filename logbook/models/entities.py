"""
Core Data Models for Logbook

These models define the schemas for everything that crosses the
export/import boundary:
1. The two stored entity kinds (Client, LogEntry)
2. The snapshot handed to the encoder and produced by the decoder
3. Export options/results and the import summary

DESIGN DECISION: Entities are frozen. The portability engine only ever
reads existing rows and inserts new ones; it never edits a row in place.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)


DEFAULT_CLIENT_NAME = "Unnamed Client"
DEFAULT_DESCRIPTION = "No description"


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def _as_aware(value: Optional[datetime]) -> Optional[datetime]:
    # Naive datetimes are taken to be UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# =============================================================================
# ENUMS
# =============================================================================

class LogEntryType(IntEnum):
    """
    The three kinds of log entry.

    Stored as a small integer, written to export files as its label.
    The label table is the only mapping between the two.
    """
    TASK = 0
    NOTE = 1
    PAYMENT = 2

    @property
    def display_name(self) -> str:
        return _TYPE_LABELS[self]

    @classmethod
    def from_label(cls, label: str) -> Optional["LogEntryType"]:
        """Exact, case-sensitive lookup. Returns None for unknown labels."""
        return _LABEL_TYPES.get(label)


_TYPE_LABELS = {
    LogEntryType.TASK: "Task",
    LogEntryType.NOTE: "Note",
    LogEntryType.PAYMENT: "Payment",
}
_LABEL_TYPES = {label: entry_type for entry_type, label in _TYPE_LABELS.items()}


class ExportFormat(str, Enum):
    """Supported interchange formats."""
    CSV = "csv"
    JSON = "json"

    @property
    def label(self) -> str:
        return self.value.upper()

    @property
    def file_extension(self) -> str:
        return self.value

    @property
    def mime_type(self) -> str:
        if self is ExportFormat.JSON:
            return "application/json"
        return "text/csv"


# =============================================================================
# ENTITIES
# =============================================================================

class Client(BaseModel):
    """A client the user does work for."""
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Stable identifier, the dedup key"
    )
    name: str = Field(
        default=DEFAULT_CLIENT_NAME,
        min_length=1,
        description="Display name"
    )
    tag: Optional[str] = Field(
        default=None,
        description="Free-text label"
    )
    hourly_rate: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Hourly rate (exact decimal)"
    )

    @field_validator('name', mode='before')
    @classmethod
    def default_blank_name(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_CLIENT_NAME
        return v

    @field_validator('tag', mode='before')
    @classmethod
    def empty_tag_is_none(cls, v):
        if v == "":
            return None
        return v


class LogEntry(BaseModel):
    """
    A task, note or payment.

    `amount` only means something for payments and `is_complete` only
    for tasks. Both are zeroed for the other kinds.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Stable identifier, the dedup key"
    )
    type: LogEntryType = Field(
        default=LogEntryType.TASK,
        description="Entry kind"
    )
    occurs_at: Optional[datetime] = Field(
        default=None,
        description="Logical date: due date for tasks, logged date otherwise"
    )
    created_at: Optional[datetime] = Field(
        default=None,
        description="When the record was authored"
    )
    description: str = Field(
        default=DEFAULT_DESCRIPTION,
        description="Free text"
    )
    is_complete: bool = False
    amount: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Payment amount (exact decimal)"
    )
    tag: Optional[str] = None
    client_id: Optional[UUID] = Field(
        default=None,
        description="Reference to Client.id"
    )

    @field_validator('description', mode='before')
    @classmethod
    def default_missing_description(cls, v):
        return DEFAULT_DESCRIPTION if v is None else v

    @field_validator('tag', mode='before')
    @classmethod
    def empty_tag_is_none(cls, v):
        if v == "":
            return None
        return v

    @field_validator('occurs_at', 'created_at')
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_aware(v)

    @field_validator('is_complete')
    @classmethod
    def only_tasks_complete(cls, v: bool, info: ValidationInfo) -> bool:
        if info.data.get('type') != LogEntryType.TASK:
            return False
        return v

    @field_validator('amount')
    @classmethod
    def only_payments_have_amounts(cls, v: Decimal, info: ValidationInfo) -> Decimal:
        if info.data.get('type') != LogEntryType.PAYMENT:
            return Decimal("0")
        return v


# =============================================================================
# INTERCHANGE MODELS
# =============================================================================

class ExportSnapshot(BaseModel):
    """
    The full data set as it crosses the export/import boundary.

    Produced by the storage layer for export and by the decoder for import.
    """

    exported_at: datetime = Field(default_factory=utc_now)
    clients: list[Client] = Field(default_factory=list)
    entries: list[LogEntry] = Field(default_factory=list)

    @field_validator('exported_at')
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return _as_aware(v)


class ExportOptions(BaseModel):
    """Which parts of the data set go into an export."""

    include_tasks: bool = True
    include_notes: bool = True
    include_payments: bool = True
    include_clients: bool = True

    @model_validator(mode='after')
    def validate_selection(self) -> 'ExportOptions':
        any_entries = self.include_tasks or self.include_notes or self.include_payments
        if not any_entries and not self.include_clients:
            raise ValueError("Select at least one kind of data to export")
        if any_entries and not self.include_clients:
            raise ValueError(
                "Client data must be included when exporting tasks, notes, "
                "or payments to maintain relationships between entries and clients"
            )
        return self

    @property
    def entry_types(self) -> set[LogEntryType]:
        selected = set()
        if self.include_tasks:
            selected.add(LogEntryType.TASK)
        if self.include_notes:
            selected.add(LogEntryType.NOTE)
        if self.include_payments:
            selected.add(LogEntryType.PAYMENT)
        return selected

    def apply(self, snapshot: ExportSnapshot) -> ExportSnapshot:
        """Return a copy of the snapshot restricted to the selection."""
        selected = self.entry_types
        return ExportSnapshot(
            exported_at=snapshot.exported_at,
            clients=list(snapshot.clients) if self.include_clients else [],
            entries=[e for e in snapshot.entries if e.type in selected],
        )


class ExportResult(BaseModel):
    """Bytes ready for the transport layer, with their file metadata."""

    content: bytes
    filename: str
    mime_type: str
    format: ExportFormat
    exported_at: datetime
    client_count: int = Field(ge=0)
    entry_count: int = Field(ge=0)


class ImportSummary(BaseModel):
    """Counts reported back to the caller after an import."""

    total_clients: int = Field(default=0, ge=0)
    imported_clients: int = Field(default=0, ge=0)
    skipped_clients: int = Field(default=0, ge=0)
    total_entries: int = Field(default=0, ge=0)
    imported_entries: int = Field(default=0, ge=0)
    skipped_entries: int = Field(default=0, ge=0)

    @property
    def has_changes(self) -> bool:
        """Did the import insert anything?"""
        return self.imported_clients > 0 or self.imported_entries > 0
