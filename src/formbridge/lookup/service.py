# src/formbridge/lookup/service.py
"""Resilient Lookup Service.

One search moves through:

    received -> cache_check -> (hit -> done)
             -> rate_limit_check -> (blocked -> done)
             -> inflight_join | store_call
             -> success -> cache_write -> done
             -> failure -> snapshot_fallback -> done

search() never raises. Failures come back as a LookupResult with a
plain-language error, or as stale snapshot records when a snapshot exists.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import replace

import structlog

from formbridge.catalog import FieldCatalog
from formbridge.clients.protocols import RawRecord, RecordStoreClient
from formbridge.contracts.enums import TelemetryLevel
from formbridge.contracts.lookup import CachedLinkedRecord, LinkedRecordConfig, LookupResult
from formbridge.core.identity import UNKNOWN_CLIENT
from formbridge.core.rate_limit import NoOpLimiter, ScopedLimiter
from formbridge.lookup.attempts import (
    INVALID_FIELD_MESSAGE,
    LOOKUP_ERROR_MESSAGES,
    RATE_LIMITED_MESSAGE,
    build_attempts,
    classify_lookup_error,
    is_missing_table_error,
    is_schema_drift_error,
    plan_attempt,
    sanitize_query,
)
from formbridge.lookup.cache import LookupCache
from formbridge.lookup.records import filter_records_by_query, map_records
from formbridge.lookup.resolver import LookupConfigResolver
from formbridge.lookup.singleflight import SingleFlight
from formbridge.telemetry import NullTelemetrySink, TelemetrySink

logger = structlog.get_logger(__name__)


class LookupFailedError(Exception):
    """Every candidate and attempt failed; carries the last store error."""

    def __init__(self, last_error: BaseException) -> None:
        super().__init__(str(last_error))
        self.last_error = last_error


class LinkedRecordSearchService:
    """Searches the table behind a linked-record form field.

    Example:
        service = LinkedRecordSearchService(client, resolver, cache, limiter, catalog)
        result = await service.search("seller", "acme", client_id="203.0.113.7")
    """

    def __init__(
        self,
        client: RecordStoreClient,
        resolver: LookupConfigResolver,
        cache: LookupCache,
        limiter: ScopedLimiter | NoOpLimiter,
        catalog: FieldCatalog,
        *,
        max_records: int = 100,
        telemetry: TelemetrySink | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._resolver = resolver
        self._cache = cache
        self._limiter = limiter
        self._catalog = catalog
        self._max_records = max_records
        self._telemetry = telemetry if telemetry is not None else NullTelemetrySink()
        self._clock = clock
        self._inflight: SingleFlight[list[CachedLinkedRecord]] = SingleFlight()

    @property
    def inflight(self) -> SingleFlight[list[CachedLinkedRecord]]:
        return self._inflight

    def _elapsed_ms(self, started: float) -> int:
        return int((self._clock() - started) * 1000)

    def candidate_configs(self, field: str, resolved: LinkedRecordConfig) -> list[LinkedRecordConfig]:
        """Resolved config first, then the baseline, then known alias tables."""
        baseline = self._catalog.linked_fields[field]
        candidates = [resolved]
        if baseline != resolved:
            candidates.append(baseline)
        for alias in self._catalog.linked_table_aliases.get(field, ()):
            aliased = replace(baseline, table=alias)
            if all(c.table != aliased.table for c in candidates):
                candidates.append(aliased)
        return candidates

    async def _list_with_fallbacks(
        self,
        field: str,
        resolved: LinkedRecordConfig,
        query: str,
    ) -> tuple[list[RawRecord], LinkedRecordConfig]:
        """Walk candidates x attempts until one succeeds.

        A table the token cannot see ends that candidate's ladder and moves
        on to the next candidate table.

        Raises:
            LookupFailedError: The first other non-drift failure, or the last
                drift or missing-table failure once every candidate and
                attempt is exhausted
        """
        last_error: BaseException | None = None
        for config in self.candidate_configs(field, resolved):
            for attempt in build_attempts(config, query):
                plan = plan_attempt(attempt, config, query)
                try:
                    records = await self._client.list_records(
                        config.table,
                        fields=plan.fields,
                        max_records=self._max_records,
                        filter_formula=plan.filter_formula,
                        sort=plan.sort,
                    )
                except Exception as exc:
                    if is_missing_table_error(exc):
                        logger.debug("lookup.table_unavailable", field=field, table=config.table, error=str(exc))
                        last_error = exc
                        break
                    if not is_schema_drift_error(exc):
                        raise LookupFailedError(exc) from exc
                    logger.debug(
                        "lookup.attempt_rejected",
                        field=field,
                        table=config.table,
                        attempt=attempt,
                        error=str(exc),
                    )
                    last_error = exc
                    continue
                return records, config
        raise LookupFailedError(last_error if last_error is not None else RuntimeError("Linked record lookup failed"))

    async def _fetch_and_cache(
        self,
        field: str,
        config: LinkedRecordConfig,
        query: str,
        cache_key: str,
    ) -> list[CachedLinkedRecord]:
        raw, used_config = await self._list_with_fallbacks(field, config, query)
        records = map_records(raw, used_config, query)
        await self._cache.set(cache_key, query, records)
        if not query and records:
            await self._cache.set_snapshot(field, records)
        return records

    async def search(self, field: str, query: str, *, client_id: str = UNKNOWN_CLIENT) -> LookupResult:
        started = self._clock()
        if not self._catalog.is_linked_field(field):
            return LookupResult(error=INVALID_FIELD_MESSAGE)

        config = await self._resolver.resolve(field)
        safe_query = sanitize_query(query)
        cache_key = self._cache.key_for(config, safe_query)

        cached = await self._cache.get(cache_key)
        if cached is not None:
            self._telemetry.emit(
                "linked_search.cache_hit",
                {
                    "client_id": client_id,
                    "field": field,
                    "table": config.table,
                    "query_length": len(query),
                    "count": len(cached),
                    "duration_ms": self._elapsed_ms(started),
                },
            )
            return LookupResult(records=tuple(cached))

        limit = await self._limiter.check(client_id)
        if not limit.allowed:
            self._telemetry.emit(
                "linked_search.rate_limited",
                {"client_id": client_id, "field": field, "retry_after_ms": limit.retry_after_ms},
                TelemetryLevel.WARN,
            )
            return LookupResult(error=RATE_LIMITED_MESSAGE)

        try:
            records = await self._inflight.run(
                cache_key,
                lambda: self._fetch_and_cache(field, config, safe_query, cache_key),
            )
        except Exception as exc:
            cause = exc.last_error if isinstance(exc, LookupFailedError) else exc
            return await self._degrade(field, config, safe_query, cause, started, client_id)

        self._telemetry.emit(
            "linked_search.success",
            {
                "client_id": client_id,
                "field": field,
                "table": config.table,
                "query_length": len(query),
                "count": len(records),
                "duration_ms": self._elapsed_ms(started),
            },
        )
        return LookupResult(records=tuple(records))

    async def _degrade(
        self,
        field: str,
        config: LinkedRecordConfig,
        query: str,
        cause: BaseException,
        started: float,
        client_id: str,
    ) -> LookupResult:
        kind = classify_lookup_error(cause)
        self._telemetry.emit(
            "linked_search.error",
            {
                "client_id": client_id,
                "field": field,
                "table": config.table,
                "kind": str(kind),
                "message": str(cause),
                "duration_ms": self._elapsed_ms(started),
            },
            TelemetryLevel.ERROR,
        )

        snapshot = await self._cache.get_snapshot(field)
        if snapshot:
            filtered = filter_records_by_query(snapshot, query)
            if filtered:
                logger.info("lookup.served_snapshot", field=field, kind=str(kind), count=len(filtered))
                return LookupResult(records=tuple(filtered), stale=True)

        return LookupResult(error=LOOKUP_ERROR_MESSAGES[kind])
