"""Schema sync preview and apply results."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from formbridge.contracts.mapping import MappingRow, MappingSuggestion


@dataclass(frozen=True, slots=True)
class OptionArrayDiff:
    """Live choices for a synced field differ from the effective option set."""

    field: str
    option_set: str
    before: tuple[str, ...]
    after: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "option_set": self.option_set,
            "before": list(self.before),
            "after": list(self.after),
        }


@dataclass(frozen=True, slots=True)
class UnmappedField:
    """A live field that no form key maps to."""

    name: str
    type: str


@dataclass(frozen=True, slots=True)
class AppliedMapping:
    form_key: str
    mapped_field: str | None
    applied_field: str


@dataclass(frozen=True, slots=True)
class SyncDiff:
    """Read-only comparison of live schema against effective configuration.

    timestamp is the ISO-8601 UTC instant the preview was computed.
    """

    new_fields: tuple[UnmappedField, ...]
    updated_options: tuple[OptionArrayDiff, ...]
    mapping_issues: tuple[MappingRow, ...]
    mapping_suggestions: tuple[MappingSuggestion, ...]
    timestamp: str

    @property
    def has_changes(self) -> bool:
        return bool(self.updated_options or self.mapping_suggestions)

    def to_dict(self) -> dict[str, Any]:
        return {
            "new_fields": [f.name for f in self.new_fields],
            "updated_options": [d.to_dict() for d in self.updated_options],
            "mapping_issues": [row.to_dict() for row in self.mapping_issues],
            "mapping_suggestions": [s.to_dict() for s in self.mapping_suggestions],
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True, slots=True)
class SyncApplyResult:
    """What an apply changed, plus a fresh preview computed after the writes."""

    updated_options_count: int
    mapping_updated_count: int
    applied_mappings: tuple[AppliedMapping, ...]
    remaining_unmapped_fields: tuple[UnmappedField, ...]
    diff: SyncDiff
    synced_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "updated_options_count": self.updated_options_count,
            "mapping_updated_count": self.mapping_updated_count,
            "applied_mappings": [
                {"form_key": m.form_key, "from": m.mapped_field, "to": m.applied_field} for m in self.applied_mappings
            ],
            "remaining_unmapped_fields": [{"name": f.name, "type": f.type} for f in self.remaining_unmapped_fields],
            "diff": self.diff.to_dict(),
            "synced_at": self.synced_at,
        }
