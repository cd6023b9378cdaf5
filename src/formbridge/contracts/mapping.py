"""Mapping analysis results.

FieldMapping maps a form key to the external field name that receives its
value, or None when the key is intentionally unmapped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from formbridge.contracts.enums import MappingStatus, SuggestionReason

FieldMapping = dict[str, str | None]


@dataclass(frozen=True, slots=True)
class MappingRow:
    """Classification of one form key.

    suggested_field and suggestion_reason are set together, and only when
    status is MISSING or READ_ONLY and a writable replacement was found.
    """

    form_key: str
    mapped_field: str | None
    status: MappingStatus
    field_type: str | None = None
    suggested_field: str | None = None
    suggestion_reason: SuggestionReason | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "form_key": self.form_key,
            "mapped_field": self.mapped_field,
            "status": str(self.status),
            "field_type": self.field_type,
            "suggested_field": self.suggested_field,
            "suggestion_reason": str(self.suggestion_reason) if self.suggestion_reason else None,
        }


@dataclass(frozen=True, slots=True)
class MappingSuggestion:
    """A proposed replacement for a broken mapping."""

    form_key: str
    mapped_field: str | None
    suggested_field: str
    suggestion_reason: SuggestionReason

    def to_dict(self) -> dict[str, Any]:
        return {
            "form_key": self.form_key,
            "from": self.mapped_field,
            "to": self.suggested_field,
            "reason": str(self.suggestion_reason),
        }


@dataclass(frozen=True, slots=True)
class MappingAnalysis:
    """Full analysis of a mapping against one table.

    rows has one entry per form key in mapping order. issues is the subset of
    rows with status MISSING or READ_ONLY. suggestions has one entry per issue
    that found a replacement.
    """

    rows: tuple[MappingRow, ...] = ()
    issues: tuple[MappingRow, ...] = ()
    suggestions: tuple[MappingSuggestion, ...] = field(default=())
