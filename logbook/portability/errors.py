"""
Portability Errors

Hard failures of an export or import. Each carries the message shown to
the user; the exception text itself keeps the technical detail.

Field-level problems (one bad line, one bad number) are never raised:
the decoder recovers from them locally.
"""

from typing import Optional


class PortabilityError(Exception):
    """Base exception for export/import failures."""

    code = "portability_error"
    user_message = "The operation could not be completed."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.user_message)


class NotRecognizedFormatError(PortabilityError):
    """The bytes do not start with the export preamble."""

    code = "not_recognized_format"
    user_message = "This file is not an export from this application."


class FormatError(PortabilityError):
    """Recognised as an export, but required sections or fields are missing."""

    code = "format_error"
    user_message = "The file is corrupted or incomplete."


class AccessError(PortabilityError):
    """The source bytes could not be read."""

    code = "access_error"
    user_message = "Unable to access the selected file."


class StorageCommitError(PortabilityError):
    """The final commit failed; nothing was imported."""

    code = "storage_commit_error"
    user_message = "Import failed, no changes were made."

    def __init__(self, message: Optional[str] = None, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
