"""Resilient linked-record lookup."""

from formbridge.lookup.attempts import (
    LOOKUP_ERROR_MESSAGES,
    QueryAttempt,
    build_attempts,
    build_filter_formula,
    classify_lookup_error,
    is_schema_drift_error,
    sanitize_query,
)
from formbridge.lookup.cache import LookupCache, make_search_cache_key
from formbridge.lookup.resolver import LookupConfigResolver, resolve_against_schema
from formbridge.lookup.service import LinkedRecordSearchService
from formbridge.lookup.singleflight import SingleFlight

__all__ = [
    "LOOKUP_ERROR_MESSAGES",
    "LinkedRecordSearchService",
    "LookupCache",
    "LookupConfigResolver",
    "QueryAttempt",
    "SingleFlight",
    "build_attempts",
    "build_filter_formula",
    "classify_lookup_error",
    "is_schema_drift_error",
    "make_search_cache_key",
    "resolve_against_schema",
    "sanitize_query",
]
