"""
CSV Export Layout and Quoted-Field Parsing

The layout of a CSV export, top to bottom:

    Logbook One Export
    Export Date,2025-05-03T14:30:00Z
    <blank>
    CLIENTS
    ID,Name,Tag,Hourly Rate
    <one line per client>
    <blank>
    ENTRIES
    ID,Type,Date,Description,Client ID,Is Complete,Amount,Tag
    <one line per entry>

Fields containing a comma, a quote or a line break are wrapped in quotes
with inner quotes doubled. Reading is done by a two-state machine
(outside / inside quotes), so a quoted field may span several physical
lines. A quote that never closes, or that would run over a section
marker, only damages its own line.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, Optional

PREAMBLE = "Logbook One Export"
EXPORT_DATE_LABEL = "Export Date"
CLIENTS_MARKER = "CLIENTS"
ENTRIES_MARKER = "ENTRIES"
CLIENT_COLUMNS = ("ID", "Name", "Tag", "Hourly Rate")
ENTRY_COLUMNS = (
    "ID",
    "Type",
    "Date",
    "Description",
    "Client ID",
    "Is Complete",
    "Amount",
    "Tag",
)
HEADER_PREFIX = "ID,"

DELIMITER = ","
QUOTE = '"'
_NEEDS_QUOTING = (DELIMITER, QUOTE, "\n", "\r")


# =============================================================================
# WRITING
# =============================================================================

def escape_field(value: Optional[str]) -> str:
    """Quote a field if it contains a delimiter, quote or line break."""
    if value is None:
        return ""
    if any(ch in value for ch in _NEEDS_QUOTING):
        return QUOTE + value.replace(QUOTE, QUOTE * 2) + QUOTE
    return value


def join_fields(values: Iterable[Optional[str]]) -> str:
    return DELIMITER.join(escape_field(v) for v in values)


# =============================================================================
# READING
# =============================================================================

class QuoteState(Enum):
    OUTSIDE = "outside"
    INSIDE = "inside"


@dataclass
class CSVRecord:
    """One logical record: a physical line, or several if a quoted field spans lines."""

    line_number: int
    raw: str
    fields: list[str] = field(default_factory=list)

    @property
    def is_blank(self) -> bool:
        return not self.raw.strip()

    @property
    def text(self) -> str:
        """The raw record with surrounding whitespace removed."""
        return self.raw.strip()


@dataclass
class _Scan:
    fields: list[str]
    raw_end: int
    next_start: int
    line_count: int
    unterminated: bool


_LINE_BREAK = re.compile(r"\r\n|\r|\n")
_SECTION_LINES = frozenset((PREAMBLE, CLIENTS_MARKER, ENTRIES_MARKER))


def _scan_record(text: str, start: int) -> _Scan:
    """
    Read one record starting at `start`.

    OUTSIDE quotes: a quote switches to INSIDE, a delimiter ends the field,
    a line break (\\n, \\r\\n or \\r) ends the record.
    INSIDE quotes: a doubled quote is a literal quote, a single quote
    switches back to OUTSIDE, everything else (delimiters and line breaks
    included) is literal.
    """
    state = QuoteState.OUTSIDE
    fields: list[str] = []
    current: list[str] = []
    line_count = 1
    i = start
    n = len(text)

    while i < n:
        ch = text[i]

        if state is QuoteState.INSIDE:
            if ch == QUOTE:
                if i + 1 < n and text[i + 1] == QUOTE:
                    current.append(QUOTE)
                    i += 2
                    continue
                state = QuoteState.OUTSIDE
            else:
                if ch == "\n" or (ch == "\r" and not text.startswith("\n", i + 1)):
                    line_count += 1
                current.append(ch)
            i += 1
            continue

        if ch == QUOTE:
            state = QuoteState.INSIDE
        elif ch == DELIMITER:
            fields.append("".join(current))
            current = []
        elif ch == "\n" or ch == "\r":
            next_start = i + 2 if text.startswith("\r\n", i) else i + 1
            fields.append("".join(current))
            return _Scan(fields, i, next_start, line_count, False)
        else:
            current.append(ch)
        i += 1

    fields.append("".join(current))
    return _Scan(fields, n, n, line_count, state is QuoteState.INSIDE)


def _swallows_section(raw: str) -> bool:
    continuation = _LINE_BREAK.split(raw)[1:]
    return any(line.strip() in _SECTION_LINES for line in continuation)


def iter_records(text: str) -> Iterator[CSVRecord]:
    """
    Split text into records and fields.

    A quoted field may span physical lines. When a quote is never closed,
    or the quoted span would run over a section marker, the quote is taken
    to be a stray: the record is cut at its first line break and reading
    restarts on the next line, so only that line is damaged.
    """
    start = 0
    line_number = 1
    n = len(text)

    while start < n:
        scan = _scan_record(text, start)
        raw = text[start:scan.raw_end]

        if scan.line_count > 1 and (scan.unterminated or _swallows_section(raw)):
            first_break = _LINE_BREAK.search(text, start)
            raw = text[start:first_break.start()]
            yield CSVRecord(line_number, raw, _scan_record(raw, 0).fields)
            start = first_break.end()
            line_number += 1
            continue

        yield CSVRecord(line_number, raw, scan.fields)
        start = scan.next_start
        line_number += scan.line_count


def parse_line(line: str) -> list[str]:
    """Fields of the first record in `line` (an empty line is one empty field)."""
    for record in iter_records(line):
        return record.fields
    return [""]
