"""Shared contracts for cross-boundary data types.

This package is a LEAF MODULE with no outbound dependencies to the rest of
formbridge. Settings classes live in formbridge.core.config.

Import patterns:
    from formbridge.contracts import MappingStatus, LookupResult
"""

from formbridge.contracts.enums import (
    IdempotencyOutcome,
    LinkMode,
    LookupErrorKind,
    MappingStatus,
    SortDirection,
    SuggestionReason,
    SyncMode,
    TelemetryLevel,
)
from formbridge.contracts.errors import (
    MappingUpdateError,
    RecordStoreConfigError,
    RecordStoreError,
    SchemaSyncError,
)
from formbridge.contracts.lookup import CachedLinkedRecord, LinkedRecordConfig, LookupResult
from formbridge.contracts.mapping import FieldMapping, MappingAnalysis, MappingRow, MappingSuggestion
from formbridge.contracts.runtime_config import RUNTIME_CONFIG_VERSION, RuntimeAdminConfig
from formbridge.contracts.schema import (
    READ_ONLY_FIELD_TYPES,
    ExternalBaseSchema,
    ExternalFieldSchema,
    ExternalTableSchema,
    FieldChoice,
    is_writable_field_type,
)
from formbridge.contracts.sync import (
    AppliedMapping,
    OptionArrayDiff,
    SyncApplyResult,
    SyncDiff,
    UnmappedField,
)

__all__ = [
    "READ_ONLY_FIELD_TYPES",
    "RUNTIME_CONFIG_VERSION",
    "AppliedMapping",
    "CachedLinkedRecord",
    "ExternalBaseSchema",
    "ExternalFieldSchema",
    "ExternalTableSchema",
    "FieldChoice",
    "FieldMapping",
    "IdempotencyOutcome",
    "LinkMode",
    "LinkedRecordConfig",
    "LookupErrorKind",
    "LookupResult",
    "MappingAnalysis",
    "MappingRow",
    "MappingStatus",
    "MappingSuggestion",
    "MappingUpdateError",
    "OptionArrayDiff",
    "RecordStoreConfigError",
    "RecordStoreError",
    "RuntimeAdminConfig",
    "SchemaSyncError",
    "SortDirection",
    "SuggestionReason",
    "SyncApplyResult",
    "SyncDiff",
    "SyncMode",
    "TelemetryLevel",
    "UnmappedField",
    "is_writable_field_type",
]
