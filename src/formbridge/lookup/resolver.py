# src/formbridge/lookup/resolver.py
"""Resolve a linked-record form field to the table it really points at.

The baseline says which table and display field a form field searches. The
live schema may disagree: the primary table's mapped field can link to a
renamed table, whose primary field may have changed too. Resolution follows
the live link and keeps only preview/sort fields that still exist.

Resolution costs a schema fetch, so results are cached in-process for a
short TTL. Any resolution failure yields the baseline config, which is cached
the same way so a broken store is not hammered with schema fetches.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import replace

import structlog

from formbridge.catalog import FieldCatalog
from formbridge.clients.protocols import RecordStoreClient
from formbridge.contracts.lookup import LinkedRecordConfig
from formbridge.contracts.schema import ExternalBaseSchema
from formbridge.runtime import RuntimeConfigStore

logger = structlog.get_logger(__name__)


def resolve_against_schema(
    baseline: LinkedRecordConfig,
    schema: ExternalBaseSchema,
    mapped_field: str | None,
    *,
    primary_table: str,
) -> LinkedRecordConfig:
    """Pure resolution step. Returns baseline when the live link can't be followed."""
    if not mapped_field:
        return baseline
    table = schema.find_primary_table(primary_table)
    if table is None:
        return baseline
    link_field = table.find_field_case_insensitive(mapped_field.strip())
    if link_field is None or link_field.linked_table_id is None:
        return baseline
    linked_table = schema.table_by_id(link_field.linked_table_id)
    if linked_table is None:
        return baseline

    primary = linked_table.primary_field
    display_field = primary.name if primary is not None else baseline.display_field
    preview_fields = tuple(name for name in baseline.preview_fields if linked_table.field_by_name(name) is not None)
    sort_field = (
        baseline.sort_field
        if baseline.sort_field and linked_table.field_by_name(baseline.sort_field) is not None
        else display_field
    )
    return replace(
        baseline,
        table=linked_table.name,
        display_field=display_field,
        preview_fields=preview_fields,
        sort_field=sort_field,
    )


class LookupConfigResolver:
    """TTL-cached resolution of effective lookup configs, one entry per form field."""

    def __init__(
        self,
        client: RecordStoreClient,
        runtime: RuntimeConfigStore,
        catalog: FieldCatalog,
        *,
        primary_table: str = "Inventory",
        ttl_ms: int = 10 * 60 * 1000,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._runtime = runtime
        self._catalog = catalog
        self._primary_table = primary_table
        self._ttl_ms = ttl_ms
        self._clock = clock
        self._cache: dict[str, tuple[LinkedRecordConfig, float]] = {}

    def baseline(self, field: str) -> LinkedRecordConfig:
        """Raises KeyError for a form field with no linked-record config."""
        return self._catalog.linked_fields[field]

    def invalidate(self, field: str | None = None) -> None:
        if field is None:
            self._cache.clear()
        else:
            self._cache.pop(field, None)

    async def resolve(self, field: str) -> LinkedRecordConfig:
        baseline = self.baseline(field)
        now = self._clock()
        cached = self._cache.get(field)
        if cached is not None and cached[1] > now:
            return cached[0]

        try:
            schema = await self._client.fetch_schema()
            field_map = await self._runtime.get_effective_field_map()
            resolved = resolve_against_schema(
                baseline,
                schema,
                field_map.get(field),
                primary_table=self._primary_table,
            )
        except Exception as exc:
            # Degrade to the compiled-in config; the search itself reports store failures
            logger.warning(
                "lookup.config_resolution_failed",
                field=field,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            resolved = baseline

        if resolved != baseline:
            logger.debug("lookup.config_resolved", field=field, table=resolved.table, display_field=resolved.display_field)
        self._cache[field] = (resolved, now + self._ttl_ms / 1000)
        return resolved
