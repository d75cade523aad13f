"""
Data Portability Package

Export the whole data set to JSON or CSV, and import it back without
duplicates or dangling client references.
"""

from logbook.portability.decoder import decode_csv, decode_json, decode_payload
from logbook.portability.encoder import encode_csv, encode_json, encode_snapshot
from logbook.portability.errors import (
    AccessError,
    FormatError,
    NotRecognizedFormatError,
    PortabilityError,
    StorageCommitError,
)
from logbook.portability.reconciler import Reconciler

__all__ = [
    # Codecs
    "decode_csv",
    "decode_json",
    "decode_payload",
    "encode_csv",
    "encode_json",
    "encode_snapshot",
    # Errors
    "AccessError",
    "FormatError",
    "NotRecognizedFormatError",
    "PortabilityError",
    "StorageCommitError",
    # Merge
    "Reconciler",
]
