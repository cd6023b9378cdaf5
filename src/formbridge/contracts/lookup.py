"""Linked-record lookup types."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from formbridge.contracts.enums import LinkMode, SortDirection


@dataclass(frozen=True, slots=True)
class LinkedRecordConfig:
    """How to query the table behind one linked-record form field.

    The same shape serves as the compiled-in baseline and as the effective
    configuration resolved against the live schema.
    """

    table: str
    display_field: str
    mode: LinkMode = LinkMode.SINGLE
    preview_fields: tuple[str, ...] = ()
    sort_field: str | None = None
    sort_direction: SortDirection = SortDirection.ASC


@dataclass(frozen=True, slots=True)
class CachedLinkedRecord:
    """One lookup row as shown to the user."""

    id: str
    name: str
    metadata: dict[str, str] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "name": self.name}
        if self.metadata:
            data["metadata"] = dict(self.metadata)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CachedLinkedRecord:
        metadata = data.get("metadata")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            metadata=dict(metadata) if isinstance(metadata, Mapping) and metadata else None,
        )


@dataclass(frozen=True, slots=True)
class LookupResult:
    """Outcome of a linked-record search.

    error is a plain-language message safe to show to end users. stale is
    True when records come from the last-known-good snapshot after a failure.
    """

    records: tuple[CachedLinkedRecord, ...] = field(default=())
    error: str | None = None
    stale: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"records": [r.to_dict() for r in self.records]}
        if self.error is not None:
            data["error"] = self.error
        if self.stale:
            data["stale"] = True
        return data
