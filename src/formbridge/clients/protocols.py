"""Record store client protocol.

Implementations own their timeout and retry-on-transient-status policy.
Callers treat every raised exception as opaque and classify it; they never
retry the same call themselves.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from formbridge.contracts.enums import SortDirection
from formbridge.contracts.schema import ExternalBaseSchema


@dataclass(frozen=True, slots=True)
class RecordSort:
    field: str
    direction: SortDirection = SortDirection.ASC


@dataclass(frozen=True, slots=True)
class RawRecord:
    """One record as returned by the store: id plus field name -> raw value."""

    id: str
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class CreatedRecord:
    id: str


@runtime_checkable
class RecordStoreClient(Protocol):
    """The three operations formbridge needs from the record store."""

    async def fetch_schema(self) -> ExternalBaseSchema:
        """Fetch every table of the base with its fields."""
        ...

    async def list_records(
        self,
        table: str,
        *,
        fields: Sequence[str] | None = None,
        max_records: int = 100,
        filter_formula: str | None = None,
        sort: RecordSort | None = None,
    ) -> list[RawRecord]:
        """List up to max_records records of table."""
        ...

    async def create_record(self, table: str, fields: Mapping[str, Any]) -> CreatedRecord:
        """Create one record and return its id."""
        ...
