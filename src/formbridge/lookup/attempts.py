# src/formbridge/lookup/attempts.py
"""Query attempts of decreasing strictness and failure classification.

A lookup first asks the store for exactly what it wants (sorted, filtered,
projected). When the store rejects that because the schema drifted, looser
attempts drop the sort, then the filter, then the field projection. A table
the token cannot see skips to the next candidate table. Any other failure
that is not schema drift stops the ladder immediately.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final

from formbridge.clients.protocols import RecordSort
from formbridge.contracts.enums import LookupErrorKind
from formbridge.contracts.errors import RecordStoreConfigError, RecordStoreError
from formbridge.contracts.lookup import LinkedRecordConfig

# The query is interpolated into a formula string sent to the store
_UNSAFE_QUERY_CHARS = re.compile(r'["\\\n\r]')

_DRIFT_MARKERS: Final[tuple[str, ...]] = (
    "unknown_field_name",
    "unknown field",
    "invalid_filter_by_formula",
    "formula",
    "cannot sort",
    "sort",
    "table_not_found",
    "could not find table",
    "not_found",
)

MISSING_TABLE_ERROR_TYPE: Final = "INVALID_PERMISSIONS_OR_MODEL_NOT_FOUND"

_ACCESS_DENIED_TYPES: Final[frozenset[str]] = frozenset(
    {
        "AUTHENTICATION_REQUIRED",
        "NOT_AUTHORIZED",
        "INVALID_PERMISSIONS",
        MISSING_TABLE_ERROR_TYPE,
    }
)

_ACCESS_DENIED_MARKERS: Final[tuple[str, ...]] = ("unauthorized", "forbidden", "not authorized", "permission")

RATE_LIMITED_MESSAGE: Final = "Too many linked record searches. Please wait a moment and try again."
INVALID_FIELD_MESSAGE: Final = "Invalid linked record field."

LOOKUP_ERROR_MESSAGES: Final[dict[LookupErrorKind, str]] = {
    LookupErrorKind.TIMEOUT: "Linked record lookup timed out. Please try again.",
    LookupErrorKind.CONFIG_MISSING: "Linked record lookup is not configured yet. Please contact an administrator.",
    LookupErrorKind.ACCESS_DENIED: "Linked records can't be loaded due to a permissions problem. Please contact an administrator.",
    LookupErrorKind.SCHEMA_DRIFT: "Linked records are temporarily unavailable while the form catches up with a data change. Please try again shortly.",
    LookupErrorKind.UNKNOWN: "Unable to load linked records right now. Please try again.",
}


def sanitize_query(query: str) -> str:
    return _UNSAFE_QUERY_CHARS.sub("", query).strip()


def build_filter_formula(query: str, display_field: str) -> str | None:
    """Case-insensitive substring filter on the display field, or None for no query."""
    if not query:
        return None
    return f'SEARCH(LOWER("{query}"), LOWER({{{display_field}}}))'


@dataclass(frozen=True, slots=True)
class QueryAttempt:
    include_sort: bool
    include_filter: bool
    include_fields: bool


@dataclass(frozen=True, slots=True)
class QueryPlan:
    """Concrete list_records arguments for one attempt."""

    fields: tuple[str, ...] | None
    filter_formula: str | None
    sort: RecordSort | None


def build_attempts(config: LinkedRecordConfig, query: str) -> list[QueryAttempt]:
    """The ordered, de-duplicated attempt ladder for config and a sanitized query."""
    has_sort = config.sort_field is not None
    has_query = bool(query)
    ladder = (
        QueryAttempt(include_sort=has_sort, include_filter=has_query, include_fields=True),
        QueryAttempt(include_sort=False, include_filter=has_query, include_fields=True),
        QueryAttempt(include_sort=False, include_filter=False, include_fields=True),
        QueryAttempt(include_sort=False, include_filter=False, include_fields=False),
    )
    attempts: list[QueryAttempt] = []
    for attempt in ladder:
        if attempt not in attempts:
            attempts.append(attempt)
    return attempts


def plan_attempt(attempt: QueryAttempt, config: LinkedRecordConfig, query: str) -> QueryPlan:
    fields = tuple(name for name in (config.display_field, *config.preview_fields) if name)
    sort = (
        RecordSort(field=config.sort_field, direction=config.sort_direction)
        if attempt.include_sort and config.sort_field
        else None
    )
    return QueryPlan(
        fields=fields if attempt.include_fields else None,
        filter_formula=build_filter_formula(query, config.display_field) if attempt.include_filter else None,
        sort=sort,
    )


def is_missing_table_error(exc: BaseException) -> bool:
    """True for the error Airtable returns when a token cannot see a table.

    It is what a renamed or deleted table looks like, so the lookup moves on
    to the next candidate table before reporting it as access denied.
    """
    return isinstance(exc, RecordStoreError) and (exc.error_type or "").upper() == MISSING_TABLE_ERROR_TYPE


def classify_lookup_error(exc: BaseException) -> LookupErrorKind:
    """Map a record store failure to the kind shown to users.

    Checked in this order: missing configuration, timeout, access denied,
    schema drift. Airtable reports an unknown table to a token holder as a
    permissions error. Once every candidate table has failed that way it is
    reported as access denied, not drift.
    """
    if isinstance(exc, RecordStoreConfigError):
        return LookupErrorKind.CONFIG_MISSING
    if isinstance(exc, TimeoutError):
        return LookupErrorKind.TIMEOUT

    message = str(exc).lower()
    error_type = ""
    if isinstance(exc, RecordStoreError):
        error_type = (exc.error_type or "").upper()
        if error_type == "TIMEOUT":
            return LookupErrorKind.TIMEOUT
        if exc.status_code in (401, 403) or error_type in _ACCESS_DENIED_TYPES:
            return LookupErrorKind.ACCESS_DENIED

    if "timed out" in message:
        return LookupErrorKind.TIMEOUT
    if "not configured" in message:
        return LookupErrorKind.CONFIG_MISSING
    if any(marker in message for marker in _ACCESS_DENIED_MARKERS):
        return LookupErrorKind.ACCESS_DENIED

    haystack = f"{message} {error_type.lower()}"
    if any(marker in haystack for marker in _DRIFT_MARKERS):
        return LookupErrorKind.SCHEMA_DRIFT
    return LookupErrorKind.UNKNOWN


def is_schema_drift_error(exc: BaseException) -> bool:
    return classify_lookup_error(exc) == LookupErrorKind.SCHEMA_DRIFT
