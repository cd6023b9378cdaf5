"""Exceptions that cross subsystem boundaries.

Most failures in formbridge are reported as data (MappingAnalysis issues,
LookupResult.error). The exceptions here cover the cases where a caller
must stop: the record store rejected a call, credentials are absent, the
primary table is gone, or an admin update is invalid.
"""

from __future__ import annotations

from typing import Any


class RecordStoreError(Exception):
    """Raised when the record store answers with a non-success status.

    Attributes:
        status_code: HTTP status returned by the store (None for transport failures)
        error_type: Store-specific error code (e.g. "UNKNOWN_FIELD_NAME"), if any
        body: Decoded error body, if the store returned one
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error_type: str | None = None,
        body: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_type = error_type
        self.body = body


class RecordStoreConfigError(RecordStoreError):
    """Raised when record store credentials or identifiers are not configured."""


class SchemaSyncError(Exception):
    """Raised by preview/apply when the live schema cannot be reconciled.

    The only expected cause is the primary table missing from the base.
    """


class MappingUpdateError(ValueError):
    """Raised when an explicit admin mapping update is rejected.

    Attributes:
        errors: One human-readable message per rejected form key
    """

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors
