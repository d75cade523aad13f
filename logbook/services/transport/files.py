"""
File Transport

The glue between the portability engine and the file system: it only
ever hands over bytes ("give me bytes" / "take these bytes").
"""

from pathlib import Path
from typing import Optional, Union

import structlog

from logbook.config import get_settings
from logbook.models.entities import ExportFormat, ExportResult
from logbook.portability.errors import AccessError

logger = structlog.get_logger(__name__)


def guess_format(filename: Union[str, Path]) -> Optional[ExportFormat]:
    """Pick the export format from a file extension, if it is one we know."""
    suffix = Path(filename).suffix.lower().lstrip(".")
    for fmt in ExportFormat:
        if fmt.file_extension == suffix:
            return fmt
    return None


def read_import_file(
    path: Union[str, Path],
    max_bytes: Optional[int] = None,
) -> bytes:
    """
    Read an import file.

    Raises:
        AccessError: Missing, unreadable, or larger than max_bytes
    """
    path = Path(path)
    if max_bytes is None:
        max_bytes = get_settings().portability.max_import_size_bytes

    try:
        size = path.stat().st_size
        if size > max_bytes:
            raise AccessError(f"{path.name} is {size} bytes, the limit is {max_bytes}")
        data = path.read_bytes()
    except FileNotFoundError as e:
        raise AccessError(f"File not found: {path}") from e
    except IsADirectoryError as e:
        raise AccessError(f"Not a file: {path}") from e
    except OSError as e:
        raise AccessError(f"Unable to read {path}: {e}") from e

    logger.debug("import_file_read", path=str(path), size_bytes=len(data))
    return data


def write_export_file(
    result: ExportResult,
    directory: Optional[Union[str, Path]] = None,
) -> Path:
    """
    Write an export next to its suggested file name.

    Raises:
        AccessError: The directory is not writable
    """
    if directory is None:
        directory = get_settings().portability.export_directory or "."
    target = Path(directory) / result.filename

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(result.content)
    except OSError as e:
        raise AccessError(f"Unable to write {target}: {e}") from e

    logger.info("export_file_written", path=str(target), size_bytes=len(result.content))
    return target
