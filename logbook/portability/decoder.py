"""
Import Decoder

Parses export bytes back into a candidate ExportSnapshot. The decoder
never touches storage; a failure returns nothing at all.

Hard failures:
- NotRecognizedFormatError: CSV without the "Logbook One Export" preamble
- FormatError: missing sections/anchors, malformed JSON structure

Lenient recoveries (logged, never raised):
- CSV rows with too few fields or an unparseable ID are skipped
- unparseable decimals become 0
- unknown type labels become Task
- unparseable dates become empty
- an unparseable Client ID leaves the entry unlinked
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional
from uuid import UUID

import structlog
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from logbook.models.entities import (
    Client,
    ExportFormat,
    ExportSnapshot,
    LogEntry,
    LogEntryType,
    utc_now,
)
from logbook.portability.csv_format import (
    CLIENT_COLUMNS,
    CLIENTS_MARKER,
    ENTRIES_MARKER,
    ENTRY_COLUMNS,
    EXPORT_DATE_LABEL,
    HEADER_PREFIX,
    PREAMBLE,
    CSVRecord,
    iter_records,
)
from logbook.portability.errors import FormatError, NotRecognizedFormatError
from logbook.portability.timestamps import parse_timestamp

logger = structlog.get_logger(__name__)


# =============================================================================
# FIELD HELPERS
# =============================================================================

def parse_decimal(value: Any) -> Optional[Decimal]:
    """
    Parse a non-negative, finite decimal. Returns None if it is not one.

    Floats go through str() so 0.1 stays 0.1.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not parsed.is_finite() or parsed < 0:
        return None
    return parsed


def lenient_decimal(value: Any, field_name: str, line: Optional[int] = None) -> Decimal:
    """parse_decimal, defaulting to 0 with a warning when the input was non-empty."""
    parsed = parse_decimal(value)
    if parsed is not None:
        return parsed
    if value not in (None, ""):
        logger.warning(
            "import_decimal_defaulted",
            field=field_name,
            value=str(value),
            line=line,
        )
    return Decimal("0")


def lenient_entry_type(label: Optional[str], line: Optional[int] = None) -> LogEntryType:
    entry_type = LogEntryType.from_label(label or "")
    if entry_type is None:
        logger.warning("import_type_defaulted", label=label, line=line)
        return LogEntryType.TASK
    return entry_type


def parse_uuid(value: Optional[str]) -> Optional[UUID]:
    if not value or not value.strip():
        return None
    try:
        return UUID(value.strip())
    except ValueError:
        return None


def _decode_text(data: bytes, on_error: Callable[[str], Exception]) -> str:
    try:
        # utf-8-sig drops a leading BOM if one is present
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise on_error(f"File is not valid UTF-8 text: {e}") from e


# =============================================================================
# JSON
# =============================================================================

def _json_decimal(value: Any, field_name: str) -> Any:
    if value is None or isinstance(value, (str, int, float, Decimal)):
        return lenient_decimal(value, field_name)
    # Wrong JSON type: left for pydantic to reject
    return value


class JSONClientRecord(BaseModel):
    """A client as written in a JSON export."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: UUID
    name: Optional[str] = None
    tag: Optional[str] = None
    hourly_rate: Decimal = Field(default=Decimal("0"), alias="hourlyRate")

    @field_validator('hourly_rate', mode='before')
    @classmethod
    def default_bad_rate(cls, v):
        return _json_decimal(v, "hourlyRate")


class JSONEntryRecord(BaseModel):
    """An entry as written in a JSON export."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: UUID
    type: Optional[str] = None
    date: Optional[str] = None
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    description: Optional[str] = None
    client_id: Optional[str] = Field(default=None, alias="clientID")
    is_complete: bool = Field(default=False, alias="isComplete")
    amount: Decimal = Decimal("0")
    tag: Optional[str] = None

    @field_validator('amount', mode='before')
    @classmethod
    def default_bad_amount(cls, v):
        return _json_decimal(v, "amount")


class JSONExportDocument(BaseModel):
    """
    Top-level JSON export object.

    `exportDate` is accepted as well as `exportedAt` for files written by
    earlier versions of the app.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    exported_at: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("exportedAt", "exportDate"),
    )
    clients: list[JSONClientRecord]
    entries: list[JSONEntryRecord]


def _client_from_json(record: JSONClientRecord) -> Client:
    return Client(
        id=record.id,
        name=record.name,
        tag=record.tag,
        hourly_rate=record.hourly_rate,
    )


def _entry_from_json(record: JSONEntryRecord) -> LogEntry:
    client_id = parse_uuid(record.client_id)
    if record.client_id and client_id is None:
        logger.warning("import_client_ref_invalid", entry_id=str(record.id), value=record.client_id)
    return LogEntry(
        id=record.id,
        type=lenient_entry_type(record.type),
        occurs_at=parse_timestamp(record.date),
        created_at=parse_timestamp(record.created_at),
        description=record.description,
        is_complete=record.is_complete,
        amount=record.amount,
        tag=record.tag,
        client_id=client_id,
    )


def decode_json(data: bytes) -> ExportSnapshot:
    text = _decode_text(data, FormatError)
    try:
        document = JSONExportDocument.model_validate_json(text)
        clients = [_client_from_json(c) for c in document.clients]
        entries = [_entry_from_json(e) for e in document.entries]
    except ValidationError as e:
        raise FormatError(
            f"JSON export has an invalid structure ({e.error_count()} problem(s)): {e}"
        ) from e

    return ExportSnapshot(
        exported_at=parse_timestamp(document.exported_at) or utc_now(),
        clients=clients,
        entries=entries,
    )


# =============================================================================
# CSV
# =============================================================================

def _find(
    records: list[CSVRecord],
    start: int,
    predicate: Callable[[CSVRecord], bool],
) -> Optional[int]:
    for index in range(start, len(records)):
        if predicate(records[index]):
            return index
    return None


def _is_marker(marker: str) -> Callable[[CSVRecord], bool]:
    return lambda record: record.text == marker


def _is_header(record: CSVRecord) -> bool:
    return record.text.startswith(HEADER_PREFIX)


def _skip(section: str, record: CSVRecord, reason: str) -> None:
    logger.warning(
        "import_row_skipped",
        section=section,
        line=record.line_number,
        reason=reason,
    )


def _client_from_fields(record: CSVRecord) -> Optional[Client]:
    fields = record.fields
    if len(fields) < len(CLIENT_COLUMNS):
        _skip("clients", record, f"expected {len(CLIENT_COLUMNS)} fields, found {len(fields)}")
        return None
    client_id = parse_uuid(fields[0])
    if client_id is None:
        _skip("clients", record, "invalid ID")
        return None
    return Client(
        id=client_id,
        name=fields[1],
        tag=fields[2],
        hourly_rate=lenient_decimal(fields[3], "Hourly Rate", record.line_number),
    )


def _entry_from_fields(record: CSVRecord) -> Optional[LogEntry]:
    fields = record.fields
    if len(fields) < len(ENTRY_COLUMNS):
        _skip("entries", record, f"expected {len(ENTRY_COLUMNS)} fields, found {len(fields)}")
        return None
    entry_id = parse_uuid(fields[0])
    if entry_id is None:
        _skip("entries", record, "invalid ID")
        return None

    client_id = parse_uuid(fields[4])
    if fields[4].strip() and client_id is None:
        logger.warning("import_client_ref_invalid", line=record.line_number, value=fields[4])

    return LogEntry(
        id=entry_id,
        type=lenient_entry_type(fields[1], record.line_number),
        occurs_at=parse_timestamp(fields[2]),
        description=fields[3],
        client_id=client_id,
        is_complete=fields[5].strip().lower() == "true",
        amount=lenient_decimal(fields[6], "Amount", record.line_number),
        tag=fields[7],
    )


def _parse_rows(
    records: list[CSVRecord],
    section: str,
    build: Callable[[CSVRecord], Optional[Any]],
) -> list:
    parsed = []
    for record in records:
        if record.is_blank:
            continue
        try:
            item = build(record)
        except ValidationError as e:
            _skip(section, record, f"invalid values: {e.error_count()} problem(s)")
            continue
        if item is not None:
            parsed.append(item)
    return parsed


def _parse_export_date(records: list[CSVRecord], preamble_at: int) -> datetime:
    if preamble_at + 1 < len(records):
        fields = records[preamble_at + 1].fields
        if len(fields) >= 2 and fields[0].strip() == EXPORT_DATE_LABEL:
            parsed = parse_timestamp(fields[1])
            if parsed is not None:
                return parsed
    return utc_now()


def decode_csv(data: bytes) -> ExportSnapshot:
    text = _decode_text(data, NotRecognizedFormatError)
    records = list(iter_records(text))

    preamble_at = _find(records, 0, lambda r: not r.is_blank)
    if preamble_at is None or records[preamble_at].text != PREAMBLE:
        raise NotRecognizedFormatError("First line is not the export preamble")

    exported_at = _parse_export_date(records, preamble_at)

    clients_at = _find(records, preamble_at + 1, _is_marker(CLIENTS_MARKER))
    if clients_at is None:
        raise FormatError(f"Missing {CLIENTS_MARKER} section")
    client_header_at = _find(records, clients_at + 1, _is_header)
    if client_header_at is None:
        raise FormatError("Missing client column header")
    entries_at = _find(records, client_header_at + 1, _is_marker(ENTRIES_MARKER))
    if entries_at is None:
        raise FormatError(f"Missing {ENTRIES_MARKER} section")
    entry_header_at = _find(records, entries_at + 1, _is_header)
    if entry_header_at is None:
        raise FormatError("Missing entry column header")

    clients = _parse_rows(
        records[client_header_at + 1:entries_at], "clients", _client_from_fields
    )
    entries = _parse_rows(
        records[entry_header_at + 1:], "entries", _entry_from_fields
    )

    return ExportSnapshot(exported_at=exported_at, clients=clients, entries=entries)


def decode_payload(data: bytes, fmt: ExportFormat) -> ExportSnapshot:
    """
    Decode export bytes in the declared format.

    Raises:
        NotRecognizedFormatError: CSV preamble missing
        FormatError: structure is broken
    """
    if ExportFormat(fmt) is ExportFormat.JSON:
        return decode_json(data)
    return decode_csv(data)
