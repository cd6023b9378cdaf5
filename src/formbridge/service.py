# src/formbridge/service.py
"""FormBridge: the interface the surrounding application talks to.

One instance owns all mutable state (KV fallback map, in-flight maps,
resolved-config cache, auto-sync throttle). Construct one per process, or
one per test for isolation.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Mapping
from typing import Any

import structlog

from formbridge.catalog import FieldCatalog
from formbridge.clients import AirtableClient, RecordStoreClient
from formbridge.contracts.enums import SyncMode
from formbridge.contracts.errors import SchemaSyncError
from formbridge.contracts.lookup import LookupResult
from formbridge.contracts.sync import SyncApplyResult, SyncDiff
from formbridge.core.config import FormBridgeSettings
from formbridge.core.identity import client_id_from_headers
from formbridge.core.idempotency import IdempotencyEntry, IdempotencyLedger
from formbridge.core.kv import KeyValueStore
from formbridge.core.rate_limit import RateLimitConfig, RateLimitRegistry, RateLimitResult
from formbridge.lookup import LinkedRecordSearchService, LookupCache, LookupConfigResolver
from formbridge.mapping import validate_mapping_updates
from formbridge.runtime import MappingUpdateResult, OptionUpdateResult, RuntimeConfigStore
from formbridge.submission import SubmissionOutcome, SubmissionService
from formbridge.sync import SchemaSyncOrchestrator
from formbridge.telemetry import LogTelemetrySink, TelemetrySink

logger = structlog.get_logger(__name__)


class FormBridge:
    """Wires the components together from settings.

    Example:
        bridge = FormBridge.from_settings(load_settings(Path("settings.yaml")))
        result = await bridge.search_linked_records("seller", "acme", headers=request.headers)
        await bridge.aclose()
    """

    def __init__(
        self,
        settings: FormBridgeSettings,
        client: RecordStoreClient,
        store: KeyValueStore,
        *,
        catalog: FieldCatalog | None = None,
        telemetry: TelemetrySink | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings
        self.client = client
        self.store = store
        self.catalog = catalog if catalog is not None else FieldCatalog.default()
        self.telemetry = telemetry if telemetry is not None else LogTelemetrySink.from_settings(settings.telemetry)

        primary_table = settings.record_store.primary_table
        self.runtime = RuntimeConfigStore(store, self.catalog, key=settings.sync.config_key, clock=clock)
        self.rate_limits = RateLimitRegistry(store, settings.rate_limit, clock=clock)
        self.idempotency = IdempotencyLedger(
            store,
            key_prefix=settings.idempotency.key_prefix,
            default_ttl_ms=settings.idempotency.ttl_ms,
            clock=clock,
        )
        self.sync = SchemaSyncOrchestrator(
            client,
            self.runtime,
            settings.sync,
            primary_table=primary_table,
            telemetry=self.telemetry,
            clock=clock,
        )
        self.resolver = LookupConfigResolver(
            client,
            self.runtime,
            self.catalog,
            primary_table=primary_table,
            ttl_ms=settings.lookup.resolved_config_ttl_ms,
            clock=clock,
        )
        self.lookup = LinkedRecordSearchService(
            client,
            self.resolver,
            LookupCache(store, settings.lookup),
            self.rate_limits.get_limiter("search"),
            self.catalog,
            max_records=settings.record_store.max_records,
            telemetry=self.telemetry,
        )
        self.submissions = SubmissionService(
            client,
            self.runtime,
            self.idempotency,
            self.rate_limits.get_limiter("submit"),
            primary_table=primary_table,
            telemetry=self.telemetry,
        )

    @classmethod
    def from_settings(cls, settings: FormBridgeSettings, *, catalog: FieldCatalog | None = None) -> FormBridge:
        return cls(
            settings,
            AirtableClient(settings.record_store),
            KeyValueStore.from_settings(settings.redis),
            catalog=catalog,
        )

    # Lookup

    async def search_linked_records(
        self,
        field: str,
        query: str = "",
        *,
        headers: Mapping[str, str] | None = None,
    ) -> LookupResult:
        return await self.lookup.search(field, query, client_id=client_id_from_headers(headers))

    # Schema sync

    async def preview_schema_sync(self) -> SyncDiff:
        return await self.sync.build_preview()

    async def apply_schema_sync(
        self,
        *,
        apply_suggested_mappings: bool = True,
        mode: SyncMode = SyncMode.MANUAL,
    ) -> SyncApplyResult:
        result = await self.sync.apply(apply_suggested_mappings=apply_suggested_mappings, mode=mode)
        self.resolver.invalidate()
        return result

    async def maybe_auto_sync(self) -> asyncio.Task[None] | None:
        """Fire-and-forget trigger for a due auto-sync. Never raises."""
        try:
            return await self.sync.maybe_run_auto_sync()
        except Exception as exc:
            # Reading the throttle state can fail only on a broken KV; stay silent to the caller
            logger.warning("schema_sync.auto_trigger_failed", error_type=type(exc).__name__, error=str(exc))
            return None

    # Runtime configuration

    async def get_effective_field_map(self) -> dict[str, str | None]:
        return await self.runtime.get_effective_field_map()

    async def get_effective_option_sets(self) -> dict[str, list[str]]:
        return await self.runtime.get_effective_option_sets()

    async def apply_mapping_updates(self, updates: Mapping[str, Any]) -> MappingUpdateResult:
        """Validate explicit admin mapping updates against the live table, then store them.

        Raises:
            MappingUpdateError: If any entry is rejected (nothing is written)
            SchemaSyncError: If the primary table is not in the base
        """
        schema = await self.client.fetch_schema()
        table = schema.find_primary_table(self.settings.record_store.primary_table)
        if table is None:
            raise SchemaSyncError(f"{self.settings.record_store.primary_table} table not found in base")
        cleaned = validate_mapping_updates(table, updates, self.catalog.field_map.keys())
        result = await self.runtime.apply_mapping_updates(cleaned)
        self.resolver.invalidate()
        return result

    async def apply_option_updates(self, updates: Mapping[str, Any]) -> OptionUpdateResult:
        return await self.runtime.apply_option_updates(updates)

    # Rate limiting and idempotency

    async def check_rate_limit(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        return await self.rate_limits.limiter.check(key, config)

    async def get_idempotency_entry(self, key: str) -> IdempotencyEntry | None:
        return await self.idempotency.get(key)

    async def set_idempotency_entry(
        self,
        key: str,
        payload_hash: str,
        response: Any,
        status: int,
        ttl_ms: int | None = None,
    ) -> IdempotencyEntry:
        return await self.idempotency.set(key, payload_hash, response, status, ttl_ms)

    # Submission

    async def submit(
        self,
        data: Mapping[str, Any],
        *,
        idempotency_key: str | None = None,
        headers: Mapping[str, str] | None = None,
        raw_body: str | bytes | None = None,
    ) -> SubmissionOutcome:
        outcome = await self.submissions.submit(
            data,
            idempotency_key=idempotency_key,
            client_id=client_id_from_headers(headers),
            raw_body=raw_body,
        )
        await self.maybe_auto_sync()
        return outcome

    async def aclose(self) -> None:
        await self.sync.wait_for_auto_sync()
        close = getattr(self.client, "aclose", None)
        if close is not None:
            await close()
        await self.store.aclose()
