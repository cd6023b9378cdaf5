# src/formbridge/runtime/config_store.py
"""Runtime Configuration Store.

Two layers: the compiled-in FieldCatalog baseline (never mutated) and a
sparse override document persisted in the KV primitive. Effective values are
baseline overlaid by override, merged on every read. An override equal to
its baseline is deleted rather than stored, so the document only ever holds
true deltas.

Updates are read-modify-write with last-write-wins semantics. Concurrent
writers are not serialized.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Any

import structlog

from formbridge.catalog import FieldCatalog
from formbridge.contracts.runtime_config import RUNTIME_CONFIG_VERSION, RuntimeAdminConfig
from formbridge.core.kv import KeyValueStore

logger = structlog.get_logger(__name__)

DEFAULT_CONFIG_KEY = "formbridge:runtime-admin-config:v1"
# Effectively permanent; the document is replaced wholesale on every write.
RUNTIME_CONFIG_TTL_MS = 5 * 365 * 24 * 60 * 60 * 1000


def iso_timestamp(epoch_seconds: float) -> str:
    return datetime.fromtimestamp(epoch_seconds, UTC).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp, returning None when absent or invalid."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass(frozen=True, slots=True)
class MappingUpdateResult:
    changed_count: int
    effective_map: dict[str, str | None]


@dataclass(frozen=True, slots=True)
class OptionUpdateResult:
    changed_count: int
    effective_options: dict[str, list[str]]


def _clean_string_list(values: list[Any] | tuple[Any, ...]) -> list[str]:
    return [entry.strip() for entry in values if entry.strip()]


def _is_string_list(value: Any) -> bool:
    return isinstance(value, list | tuple) and all(isinstance(entry, str) for entry in value)


def sanitize_mapping_overrides(value: Any, allowed_keys: Mapping[str, Any]) -> dict[str, str]:
    """Keep only known form keys with non-blank string values, trimmed."""
    if not isinstance(value, Mapping):
        return {}
    result: dict[str, str] = {}
    for key, raw in value.items():
        if key not in allowed_keys or not isinstance(raw, str):
            continue
        trimmed = raw.strip()
        if trimmed:
            result[key] = trimmed
    return result


def sanitize_options_overrides(value: Any, option_sets: Mapping[str, Any]) -> dict[str, list[str]]:
    """Keep only known option sets holding string arrays, entries trimmed, blanks dropped."""
    if not isinstance(value, Mapping):
        return {}
    result: dict[str, list[str]] = {}
    for name in option_sets:
        if name not in value or not _is_string_list(value[name]):
            continue
        result[name] = _clean_string_list(value[name])
    return result


def merge_field_map(
    baseline: Mapping[str, str | None],
    overrides: Mapping[str, str],
) -> dict[str, str | None]:
    merged: dict[str, str | None] = dict(baseline)
    merged.update(overrides)
    return merged


def merge_option_sets(
    baseline: Mapping[str, tuple[str, ...]],
    overrides: Mapping[str, list[str]],
) -> dict[str, list[str]]:
    return {name: list(overrides[name]) if name in overrides else list(values) for name, values in baseline.items()}


def build_next_mapping_overrides(
    current: Mapping[str, str],
    updates: Mapping[str, Any],
    baseline: Mapping[str, str | None],
) -> tuple[dict[str, str], int]:
    """Apply updates to an override map.

    Returns:
        (next overrides, number of keys whose effective value changed)
    """
    next_overrides = dict(current)
    changed = 0
    for key, base_value in baseline.items():
        incoming = updates.get(key)
        if not isinstance(incoming, str):
            continue
        normalized = incoming.strip()
        if not normalized:
            continue
        effective = current.get(key, base_value)
        if effective == normalized:
            continue
        changed += 1
        if normalized == base_value:
            next_overrides.pop(key, None)
        else:
            next_overrides[key] = normalized
    return next_overrides, changed


def build_next_option_overrides(
    current: Mapping[str, list[str]],
    updates: Mapping[str, Any],
    baseline: Mapping[str, tuple[str, ...]],
) -> tuple[dict[str, list[str]], int]:
    """Apply updates to an options override map.

    Returns:
        (next overrides, number of option sets whose effective value changed)
    """
    next_overrides = {name: list(values) for name, values in current.items()}
    changed = 0
    for name, base_values in baseline.items():
        incoming = updates.get(name)
        if incoming is None or not _is_string_list(incoming):
            continue
        normalized = _clean_string_list(incoming)
        effective = list(current[name]) if name in current else list(base_values)
        if effective == normalized:
            continue
        changed += 1
        if normalized == list(base_values):
            next_overrides.pop(name, None)
        else:
            next_overrides[name] = normalized
    return next_overrides, changed


class RuntimeConfigStore:
    """Reads and writes the persisted override document.

    Example:
        runtime = RuntimeConfigStore(store, FieldCatalog.default())
        await runtime.apply_mapping_updates({"locationSurplus": "Location (SP)"})
        field_map = await runtime.get_effective_field_map()
    """

    def __init__(
        self,
        store: KeyValueStore,
        catalog: FieldCatalog,
        *,
        key: str = DEFAULT_CONFIG_KEY,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._key = key
        self._clock = clock

    @property
    def catalog(self) -> FieldCatalog:
        return self._catalog

    def _now_iso(self) -> str:
        return iso_timestamp(self._clock())

    def normalize(self, raw: Any) -> RuntimeAdminConfig:
        """Turn whatever is stored (or nothing) into a valid document."""
        if not isinstance(raw, Mapping):
            return RuntimeAdminConfig(updated_at=self._now_iso())

        updated_at = raw.get("updated_at")
        if not isinstance(updated_at, str) or parse_timestamp(updated_at) is None:
            updated_at = self._now_iso()

        last_manual = raw.get("last_manual_sync_at")
        last_auto = raw.get("last_auto_sync_at")
        return RuntimeAdminConfig(
            version=RUNTIME_CONFIG_VERSION,
            mapping_overrides=sanitize_mapping_overrides(raw.get("mapping_overrides"), self._catalog.field_map),
            options_overrides=sanitize_options_overrides(raw.get("options_overrides"), self._catalog.option_sets),
            updated_at=updated_at,
            last_manual_sync_at=last_manual if isinstance(last_manual, str) else None,
            last_auto_sync_at=last_auto if isinstance(last_auto, str) else None,
        )

    async def _persist(self, config: RuntimeAdminConfig) -> RuntimeAdminConfig:
        await self._store.set(self._key, config.to_dict(), RUNTIME_CONFIG_TTL_MS)
        return config

    async def get(self) -> RuntimeAdminConfig:
        return self.normalize(await self._store.get(self._key))

    async def save(self, config: RuntimeAdminConfig) -> RuntimeAdminConfig:
        return await self._persist(self.normalize(config.to_dict()))

    async def update(self, mutate: Callable[[RuntimeAdminConfig], RuntimeAdminConfig]) -> RuntimeAdminConfig:
        current = await self.get()
        return await self.save(mutate(current))

    async def get_effective_field_map(self) -> dict[str, str | None]:
        config = await self.get()
        return merge_field_map(self._catalog.field_map, config.mapping_overrides)

    async def get_effective_option_sets(self) -> dict[str, list[str]]:
        config = await self.get()
        return merge_option_sets(self._catalog.option_sets, config.options_overrides)

    async def apply_mapping_updates(self, updates: Mapping[str, Any]) -> MappingUpdateResult:
        current = await self.get()
        next_overrides, changed = build_next_mapping_overrides(
            current.mapping_overrides, updates, self._catalog.field_map
        )
        saved = await self._persist(replace(current, mapping_overrides=next_overrides, updated_at=self._now_iso()))
        if changed:
            logger.info("runtime_config.mappings_updated", changed_count=changed, override_count=len(next_overrides))
        return MappingUpdateResult(
            changed_count=changed,
            effective_map=merge_field_map(self._catalog.field_map, saved.mapping_overrides),
        )

    async def apply_option_updates(self, updates: Mapping[str, Any]) -> OptionUpdateResult:
        current = await self.get()
        next_overrides, changed = build_next_option_overrides(
            current.options_overrides, updates, self._catalog.option_sets
        )
        saved = await self._persist(replace(current, options_overrides=next_overrides, updated_at=self._now_iso()))
        if changed:
            logger.info("runtime_config.options_updated", changed_count=changed)
        return OptionUpdateResult(
            changed_count=changed,
            effective_options=merge_option_sets(self._catalog.option_sets, saved.options_overrides),
        )
