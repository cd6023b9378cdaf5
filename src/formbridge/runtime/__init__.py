"""Runtime Configuration Store: baseline plus sparse persisted overrides."""

from formbridge.runtime.config_store import (
    MappingUpdateResult,
    OptionUpdateResult,
    RuntimeConfigStore,
    iso_timestamp,
    parse_timestamp,
)

__all__ = [
    "MappingUpdateResult",
    "OptionUpdateResult",
    "RuntimeConfigStore",
    "iso_timestamp",
    "parse_timestamp",
]
