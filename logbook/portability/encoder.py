"""
Export Encoder

Turns an ExportSnapshot into bytes in one of the two export formats.

JSON: one object with `exportedAt`, `clients` and `entries`, keys sorted,
two-space indentation. Decimals are written as strings so amounts never
pass through binary floating point.

CSV: the sectioned layout described in csv_format.

Encoding is total: any valid snapshot can be encoded.
"""

import json
from decimal import Decimal
from typing import Optional

from logbook.models.entities import (
    Client,
    ExportFormat,
    ExportSnapshot,
    LogEntry,
)
from logbook.portability.csv_format import (
    CLIENT_COLUMNS,
    CLIENTS_MARKER,
    ENTRIES_MARKER,
    ENTRY_COLUMNS,
    EXPORT_DATE_LABEL,
    PREAMBLE,
    join_fields,
)
from logbook.portability.timestamps import format_timestamp


def format_decimal(value: Optional[Decimal]) -> str:
    """Plain base-10 notation, no exponent."""
    if value is None:
        return "0"
    return format(value, "f")


def _optional_timestamp(value) -> Optional[str]:
    return format_timestamp(value) if value is not None else None


# =============================================================================
# JSON
# =============================================================================

def client_to_dict(client: Client) -> dict:
    return {
        "id": str(client.id),
        "name": client.name,
        "tag": client.tag,
        "hourlyRate": format_decimal(client.hourly_rate),
    }


def entry_to_dict(entry: LogEntry) -> dict:
    return {
        "id": str(entry.id),
        "type": entry.type.display_name,
        "date": _optional_timestamp(entry.occurs_at),
        "createdAt": _optional_timestamp(entry.created_at),
        "description": entry.description,
        "clientID": str(entry.client_id) if entry.client_id else None,
        "isComplete": entry.is_complete,
        "amount": format_decimal(entry.amount),
        "tag": entry.tag,
    }


def encode_json(snapshot: ExportSnapshot) -> bytes:
    document = {
        "exportedAt": format_timestamp(snapshot.exported_at),
        "clients": [client_to_dict(c) for c in snapshot.clients],
        "entries": [entry_to_dict(e) for e in snapshot.entries],
    }
    text = json.dumps(document, indent=2, sort_keys=True, ensure_ascii=False)
    return (text + "\n").encode("utf-8")


# =============================================================================
# CSV
# =============================================================================

def client_to_fields(client: Client) -> list[Optional[str]]:
    return [
        str(client.id),
        client.name,
        client.tag,
        format_decimal(client.hourly_rate),
    ]


def entry_to_fields(entry: LogEntry) -> list[Optional[str]]:
    return [
        str(entry.id),
        entry.type.display_name,
        _optional_timestamp(entry.occurs_at),
        entry.description,
        str(entry.client_id) if entry.client_id else None,
        "true" if entry.is_complete else "false",
        format_decimal(entry.amount),
        entry.tag,
    ]


def encode_csv(snapshot: ExportSnapshot) -> bytes:
    lines = [
        PREAMBLE,
        join_fields([EXPORT_DATE_LABEL, format_timestamp(snapshot.exported_at)]),
        "",
        CLIENTS_MARKER,
        join_fields(CLIENT_COLUMNS),
    ]
    lines.extend(join_fields(client_to_fields(c)) for c in snapshot.clients)
    lines.extend([
        "",
        ENTRIES_MARKER,
        join_fields(ENTRY_COLUMNS),
    ])
    lines.extend(join_fields(entry_to_fields(e)) for e in snapshot.entries)
    return ("\n".join(lines) + "\n").encode("utf-8")


def encode_snapshot(snapshot: ExportSnapshot, fmt: ExportFormat) -> bytes:
    """Encode a snapshot in the requested format."""
    if ExportFormat(fmt) is ExportFormat.JSON:
        return encode_json(snapshot)
    return encode_csv(snapshot)
