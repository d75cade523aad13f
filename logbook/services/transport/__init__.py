"""Transport package: file access for exports and imports."""

from logbook.services.transport.files import (
    guess_format,
    read_import_file,
    write_export_file,
)

__all__ = [
    "guess_format",
    "read_import_file",
    "write_export_file",
]
