"""
Timestamp profile shared by both export formats.

Combined date and time, always UTC with a "Z" suffix. Fractional seconds
are written only when present:
2025-05-03T14:30:00Z
2025-05-03T14:30:00.250000Z
"""

from datetime import datetime, timezone
from typing import Optional


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc).replace(tzinfo=None)
    timespec = "microseconds" if value.microsecond else "seconds"
    return value.isoformat(timespec=timespec) + "Z"


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a timestamp written by format_timestamp.

    Any ISO 8601 date-time with an offset is accepted as well; naive values
    are taken as UTC. Empty or unparseable input gives None.
    """
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
