# src/formbridge/lookup/cache.py
"""Lookup Cache.

Two kinds of entries, both in the KV primitive:
- result lists keyed by the full query shape, short-lived
- one last-known-good snapshot per logical field, long-lived, holding the
  most recent non-empty result of the empty ("browse") query
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

import structlog

from formbridge.contracts.lookup import CachedLinkedRecord, LinkedRecordConfig
from formbridge.core.config import LookupSettings
from formbridge.core.kv import KeyValueStore

logger = structlog.get_logger(__name__)

SNAPSHOT_PREFIX = "formbridge:linked-snapshot:v1:"


def _normalize_query(query: str) -> str:
    return query.strip().lower()


def _normalize_fields(fields: Iterable[str]) -> str:
    return ",".join(sorted(name.strip() for name in fields if name.strip()))


def make_search_cache_key(prefix: str, config: LinkedRecordConfig, query: str) -> str:
    """Cache key covering everything that changes the result of a search."""
    sort_field = config.sort_field.strip() if config.sort_field else ""
    sort_direction = str(config.sort_direction) if config.sort_field else ""
    return (
        f"{prefix}{config.table}|{config.display_field}|{_normalize_query(query)}"
        f"|{_normalize_fields(config.preview_fields)}|{sort_field}|{sort_direction}"
    )


def _decode_records(raw: Any) -> list[CachedLinkedRecord] | None:
    if not isinstance(raw, list):
        return None
    try:
        return [CachedLinkedRecord.from_dict(entry) for entry in raw]
    except (KeyError, TypeError, AttributeError):
        return None


class LookupCache:
    """Result cache plus per-field snapshots."""

    def __init__(self, store: KeyValueStore, settings: LookupSettings) -> None:
        self._store = store
        self._settings = settings

    @property
    def prefix(self) -> str:
        return self._settings.cache_prefix

    def key_for(self, config: LinkedRecordConfig, query: str) -> str:
        return make_search_cache_key(self._settings.cache_prefix, config, query)

    def ttl_for(self, query: str) -> int:
        """Browse (empty query) results live longer than typed-query results."""
        if _normalize_query(query):
            return self._settings.cache_ttl_ms
        return self._settings.empty_query_cache_ttl_ms

    async def get(self, key: str) -> list[CachedLinkedRecord] | None:
        raw = await self._store.get(key)
        if raw is None:
            return None
        records = _decode_records(raw)
        if records is None:
            logger.warning("lookup_cache.entry_unreadable", key=key)
        return records

    async def set(self, key: str, query: str, records: Sequence[CachedLinkedRecord]) -> None:
        await self._store.set(key, [r.to_dict() for r in records], self.ttl_for(query))

    async def get_snapshot(self, field: str) -> list[CachedLinkedRecord] | None:
        return _decode_records(await self._store.get(SNAPSHOT_PREFIX + field))

    async def set_snapshot(self, field: str, records: Sequence[CachedLinkedRecord]) -> None:
        await self._store.set(SNAPSHOT_PREFIX + field, [r.to_dict() for r in records], self._settings.snapshot_ttl_ms)
