# src/formbridge/sync/orchestrator.py
"""Schema Sync Orchestrator.

Preview and apply reconciliation of the live primary table against the
effective mapping and option sets, plus a self-throttled automatic sync
meant to be triggered opportunistically from ordinary request paths.

Auto-sync is throttled three ways:
- the persisted last_auto_sync_at (survives restarts, shared across instances)
- a process-local last-attempt timestamp (covers failed attempts)
- a single process-local in-flight task (covers request bursts)

Duplicate auto-syncs across instances are tolerated; apply is idempotent
and last-write-wins.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import replace

import structlog

from formbridge.catalog import FieldCatalog
from formbridge.clients.protocols import RecordStoreClient
from formbridge.contracts.enums import SyncMode, TelemetryLevel
from formbridge.contracts.errors import SchemaSyncError
from formbridge.contracts.mapping import MappingAnalysis
from formbridge.contracts.runtime_config import RuntimeAdminConfig
from formbridge.contracts.schema import ExternalTableSchema
from formbridge.contracts.sync import AppliedMapping, SyncApplyResult, SyncDiff
from formbridge.core.config import SyncSettings
from formbridge.mapping import MatchThresholds, analyze_mappings, find_unmapped_fields
from formbridge.runtime import RuntimeConfigStore, iso_timestamp, parse_timestamp
from formbridge.sync.options import OptionSyncDiff, build_option_sync_diff
from formbridge.telemetry import NullTelemetrySink, TelemetrySink

logger = structlog.get_logger(__name__)


class SchemaSyncOrchestrator:
    """Coordinates schema sync preview, apply and auto-sync.

    Example:
        orchestrator = SchemaSyncOrchestrator(client, runtime, settings.sync)
        diff = await orchestrator.build_preview()
        result = await orchestrator.apply(apply_suggested_mappings=True)
    """

    def __init__(
        self,
        client: RecordStoreClient,
        runtime: RuntimeConfigStore,
        settings: SyncSettings,
        *,
        primary_table: str = "Inventory",
        telemetry: TelemetrySink | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._runtime = runtime
        self._settings = settings
        self._primary_table = primary_table
        self._telemetry = telemetry if telemetry is not None else NullTelemetrySink()
        self._clock = clock
        self._thresholds = MatchThresholds(min_score=settings.fuzzy_min_score, min_gap=settings.fuzzy_min_gap)
        self._last_auto_attempt: float | None = None
        self._auto_task: asyncio.Task[None] | None = None

    @property
    def catalog(self) -> FieldCatalog:
        return self._runtime.catalog

    @property
    def auto_sync_in_flight(self) -> bool:
        return self._auto_task is not None

    async def _load_primary_table(self) -> ExternalTableSchema:
        schema = await self._client.fetch_schema()
        table = schema.find_primary_table(self._primary_table)
        if table is None:
            raise SchemaSyncError(f"{self._primary_table} table not found in base")
        return table

    def _analyze(self, table: ExternalTableSchema, field_map: dict[str, str | None]) -> MappingAnalysis:
        return analyze_mappings(
            table,
            field_map,
            aliases=self.catalog.mapping_aliases,
            thresholds=self._thresholds,
        )

    async def _diff_against(self, table: ExternalTableSchema) -> tuple[SyncDiff, MappingAnalysis, OptionSyncDiff]:
        field_map = await self._runtime.get_effective_field_map()
        analysis = self._analyze(table, field_map)
        option_diff = build_option_sync_diff(
            table,
            await self._runtime.get_effective_option_sets(),
            self.catalog.option_sync_fields,
        )
        diff = SyncDiff(
            new_fields=find_unmapped_fields(table, field_map.values()),
            updated_options=tuple(option_diff.updated_options.values()),
            mapping_issues=analysis.issues,
            mapping_suggestions=analysis.suggestions,
            timestamp=iso_timestamp(self._clock()),
        )
        return diff, analysis, option_diff

    async def build_preview(self) -> SyncDiff:
        """Diff the live primary table against effective configuration. No writes.

        Raises:
            SchemaSyncError: If the primary table is not in the base
            RecordStoreError: If the schema fetch fails
        """
        table = await self._load_primary_table()
        diff, _, _ = await self._diff_against(table)
        return diff

    async def apply(
        self,
        *,
        apply_suggested_mappings: bool = True,
        mode: SyncMode = SyncMode.MANUAL,
    ) -> SyncApplyResult:
        """Write option changes and (optionally) mapping suggestions.

        Writes happen in order: option overrides, mapping overrides, sync
        timestamp. The returned diff is a fresh preview taken after the writes.

        Raises:
            SchemaSyncError: If the primary table is not in the base
            RecordStoreError: If the schema fetch fails
        """
        table = await self._load_primary_table()
        _, analysis, option_diff = await self._diff_against(table)

        mapping_updates: dict[str, str] = {}
        applied: list[AppliedMapping] = []
        if apply_suggested_mappings:
            for suggestion in analysis.suggestions:
                mapping_updates[suggestion.form_key] = suggestion.suggested_field
                applied.append(
                    AppliedMapping(
                        form_key=suggestion.form_key,
                        mapped_field=suggestion.mapped_field,
                        applied_field=suggestion.suggested_field,
                    )
                )

        option_write = await self._runtime.apply_option_updates(option_diff.next_options)
        mapping_write = await self._runtime.apply_mapping_updates(mapping_updates)
        remaining = find_unmapped_fields(table, mapping_write.effective_map.values())

        synced_at = iso_timestamp(self._clock())

        def stamp(current: RuntimeAdminConfig) -> RuntimeAdminConfig:
            if mode == SyncMode.AUTO:
                return replace(current, updated_at=synced_at, last_auto_sync_at=synced_at)
            return replace(current, updated_at=synced_at, last_manual_sync_at=synced_at)

        await self._runtime.update(stamp)

        logger.info(
            "schema_sync.applied",
            mode=str(mode),
            updated_options=option_write.changed_count,
            updated_mappings=mapping_write.changed_count,
            remaining_unmapped=len(remaining),
        )

        return SyncApplyResult(
            updated_options_count=option_write.changed_count,
            mapping_updated_count=mapping_write.changed_count,
            applied_mappings=tuple(applied),
            remaining_unmapped_fields=remaining,
            diff=await self.build_preview(),
            synced_at=synced_at,
        )

    async def maybe_run_auto_sync(self) -> asyncio.Task[None] | None:
        """Start a background auto-sync if one is due.

        Returns the started task, or None when disabled or throttled. Callers
        are not expected to await the task; it never raises.
        """
        if not self._settings.auto_sync_enabled:
            return None

        interval = self._settings.auto_sync_interval_minutes * 60
        now = self._clock()

        runtime = await self._runtime.get()
        last_auto = parse_timestamp(runtime.last_auto_sync_at)
        if last_auto is not None and now - last_auto.timestamp() < interval:
            return None

        if self._last_auto_attempt is not None and now - self._last_auto_attempt < interval:
            return None

        if self._auto_task is not None:
            return None

        self._last_auto_attempt = now
        task = asyncio.create_task(self._run_auto_sync(), name="formbridge-auto-schema-sync")
        self._auto_task = task
        return task

    async def _run_auto_sync(self) -> None:
        try:
            result = await self.apply(apply_suggested_mappings=True, mode=SyncMode.AUTO)
        except Exception as exc:
            # Best effort: never surface to the request path that triggered it
            logger.warning("schema_sync.auto_failed", error_type=type(exc).__name__, error=str(exc))
            self._telemetry.emit(
                "schema_sync.auto_failed",
                {"error_type": type(exc).__name__, "message": str(exc)},
                TelemetryLevel.ERROR,
            )
        else:
            self._telemetry.emit(
                "schema_sync.auto_applied",
                {
                    "updated_options": result.updated_options_count,
                    "updated_mappings": result.mapping_updated_count,
                },
            )
        finally:
            self._auto_task = None

    async def wait_for_auto_sync(self) -> None:
        """Wait for an in-flight auto-sync, if any, to settle."""
        task = self._auto_task
        if task is not None:
            await asyncio.shield(task)
