"""All status codes, modes, and kinds used across subsystem boundaries."""

from enum import StrEnum


class MappingStatus(StrEnum):
    """Classification of one form key against the live table schema.

    EMPTY iff nothing is mapped; OK iff the mapped field exists and is writable.
    """

    OK = "ok"
    MISSING = "missing"
    READ_ONLY = "read_only"
    EMPTY = "empty"


class SuggestionReason(StrEnum):
    """Which matching stage produced a replacement suggestion.

    Stages run in this declaration order; the first stage with a winner wins.
    """

    KNOWN_RENAME = "known rename"
    CASE_INSENSITIVE = "case-insensitive name match"
    NORMALIZED = "normalized name match"
    FUZZY = "best fuzzy name match"


class LookupErrorKind(StrEnum):
    """Classification of a failed lookup against the record store."""

    TIMEOUT = "timeout"
    CONFIG_MISSING = "config_missing"
    ACCESS_DENIED = "access_denied"
    SCHEMA_DRIFT = "schema_drift"
    UNKNOWN = "unknown"


class SyncMode(StrEnum):
    """Who triggered a schema sync apply.

    Manual applies stamp last_manual_sync_at, auto applies stamp last_auto_sync_at.
    """

    MANUAL = "manual"
    AUTO = "auto"


class SortDirection(StrEnum):
    ASC = "asc"
    DESC = "desc"


class LinkMode(StrEnum):
    """Whether a linked-record field accepts one or many records."""

    SINGLE = "single"
    MULTI = "multi"


class IdempotencyOutcome(StrEnum):
    """Result of checking a request against the idempotency ledger."""

    NEW = "new"
    REPLAY = "replay"
    CONFLICT = "conflict"


class TelemetryLevel(StrEnum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
