# tests/runtime/test_config_store.py
"""Tests for the runtime configuration store (baseline + sparse overrides)."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from formbridge.contracts.runtime_config import RUNTIME_CONFIG_VERSION
from formbridge.runtime import RuntimeConfigStore
from formbridge.runtime.config_store import (
    DEFAULT_CONFIG_KEY,
    build_next_mapping_overrides,
    build_next_option_overrides,
    iso_timestamp,
    merge_field_map,
    parse_timestamp,
    sanitize_mapping_overrides,
    sanitize_options_overrides,
)


class TestTimestamps:
    def test_iso_timestamp_is_utc_z(self, clock) -> None:
        assert iso_timestamp(clock()) == "2026-01-15T12:00:00Z"

    def test_parse_round_trip(self, clock) -> None:
        assert parse_timestamp(iso_timestamp(clock())).timestamp() == clock()

    @pytest.mark.parametrize("value", [None, "", "yesterday"])
    def test_parse_invalid(self, value: str | None) -> None:
        assert parse_timestamp(value) is None

    def test_naive_timestamp_assumed_utc(self) -> None:
        assert parse_timestamp("2026-01-15T12:00:00").utcoffset().total_seconds() == 0


class TestSanitize:
    def test_mapping_overrides_filtered_and_trimmed(self) -> None:
        allowed = {"seller": "Seller", "city": "City"}
        raw = {"seller": "  Vendor ", "city": "   ", "unknown": "X", "bad": 5}
        assert sanitize_mapping_overrides(raw, allowed) == {"seller": "Vendor"}

    def test_mapping_overrides_not_a_mapping(self) -> None:
        assert sanitize_mapping_overrides(["seller"], {"seller": "Seller"}) == {}

    def test_option_overrides_filtered(self) -> None:
        option_sets = {"TAGS": ("a",), "COUNTRIES": ("b",)}
        raw = {"TAGS": [" x ", "", "y"], "COUNTRIES": ["ok", 3], "OTHER": ["z"]}
        assert sanitize_options_overrides(raw, option_sets) == {"TAGS": ["x", "y"]}


class TestOverrideBuilders:
    def test_new_value_becomes_override(self) -> None:
        overrides, changed = build_next_mapping_overrides({}, {"seller": "Vendor"}, {"seller": "Seller"})
        assert overrides == {"seller": "Vendor"}
        assert changed == 1

    def test_value_equal_to_baseline_removes_override(self) -> None:
        overrides, changed = build_next_mapping_overrides(
            {"seller": "Vendor"}, {"seller": " Seller "}, {"seller": "Seller"}
        )
        assert overrides == {}
        assert changed == 1

    def test_unchanged_effective_value_not_counted(self) -> None:
        overrides, changed = build_next_mapping_overrides(
            {"seller": "Vendor"}, {"seller": "Vendor"}, {"seller": "Seller"}
        )
        assert overrides == {"seller": "Vendor"}
        assert changed == 0

    def test_blank_and_unknown_updates_ignored(self) -> None:
        overrides, changed = build_next_mapping_overrides({}, {"seller": "  ", "nope": "X"}, {"seller": "Seller"})
        assert (overrides, changed) == ({}, 0)

    def test_option_override_shrinks_to_baseline(self) -> None:
        overrides, changed = build_next_option_overrides({"TAGS": ["a", "b"]}, {"TAGS": ["a"]}, {"TAGS": ("a",)})
        assert overrides == {}
        assert changed == 1

    def test_option_order_matters(self) -> None:
        overrides, changed = build_next_option_overrides({}, {"TAGS": ["b", "a"]}, {"TAGS": ("a", "b")})
        assert overrides == {"TAGS": ["b", "a"]}
        assert changed == 1

    @given(
        baseline=st.dictionaries(st.sampled_from("abcdef"), st.sampled_from(["X", "Y", "Z"]), min_size=1),
        first=st.dictionaries(st.sampled_from("abcdef"), st.sampled_from(["X", "Y", "Z", " "])),
        second=st.dictionaries(st.sampled_from("abcdef"), st.sampled_from(["X", "Y", "Z", " "])),
    )
    def test_overrides_only_hold_true_deltas(self, baseline, first, second) -> None:
        overrides, _ = build_next_mapping_overrides({}, first, baseline)
        overrides, _ = build_next_mapping_overrides(overrides, second, baseline)

        for key, value in overrides.items():
            assert key in baseline
            assert value != baseline[key]
        effective = merge_field_map(baseline, overrides)
        for key, value in second.items():
            if key in baseline and value.strip():
                assert effective[key] == value.strip()


class TestRuntimeConfigStore:
    """Persistence through the KV primitive."""

    @pytest.mark.asyncio
    async def test_empty_store_yields_baseline(self, kv, small_catalog, clock) -> None:
        runtime = RuntimeConfigStore(kv, small_catalog, clock=clock)

        assert await runtime.get_effective_field_map() == dict(small_catalog.field_map)
        assert await runtime.get_effective_option_sets() == {"TAG_PRESET_OPTIONS": ["Assorted Beauty", "Retailer Beauty"]}

        config = await runtime.get()
        assert config.version == RUNTIME_CONFIG_VERSION
        assert config.mapping_overrides == {}
        assert config.updated_at == "2026-01-15T12:00:00Z"

    @pytest.mark.asyncio
    async def test_apply_mapping_updates_persists_delta(self, kv, small_catalog, clock) -> None:
        runtime = RuntimeConfigStore(kv, small_catalog, clock=clock)

        result = await runtime.apply_mapping_updates({"locationSurplus": "Location (SP)"})

        assert result.changed_count == 1
        assert result.effective_map["locationSurplus"] == "Location (SP)"
        stored = kv.memory.get(DEFAULT_CONFIG_KEY)
        assert stored["mapping_overrides"] == {"locationSurplus": "Location (SP)"}
        assert stored["version"] == 1

    @pytest.mark.asyncio
    async def test_reverting_to_baseline_shrinks_document(self, kv, small_catalog, clock) -> None:
        runtime = RuntimeConfigStore(kv, small_catalog, clock=clock)
        await runtime.apply_mapping_updates({"locationSurplus": "Location (SP)"})

        result = await runtime.apply_mapping_updates({"locationSurplus": "SP Location"})

        assert result.changed_count == 1
        assert (await runtime.get()).mapping_overrides == {}

    @pytest.mark.asyncio
    async def test_apply_option_updates(self, kv, small_catalog, clock) -> None:
        runtime = RuntimeConfigStore(kv, small_catalog, clock=clock)

        result = await runtime.apply_option_updates({"TAG_PRESET_OPTIONS": ["Assorted Beauty", " New "], "X": ["y"]})

        assert result.changed_count == 1
        assert result.effective_options == {"TAG_PRESET_OPTIONS": ["Assorted Beauty", "New"]}

    @pytest.mark.asyncio
    async def test_updated_at_advances(self, kv, small_catalog, clock) -> None:
        runtime = RuntimeConfigStore(kv, small_catalog, clock=clock)
        clock.advance(60)

        await runtime.apply_mapping_updates({"seller": "Vendor"})

        assert (await runtime.get()).updated_at == "2026-01-15T12:01:00Z"

    @pytest.mark.asyncio
    async def test_garbage_document_normalizes(self, kv, small_catalog, clock) -> None:
        await kv.set(
            DEFAULT_CONFIG_KEY,
            {
                "version": 99,
                "mapping_overrides": {"seller": "Vendor", "ghost": "Field"},
                "options_overrides": "not-a-dict",
                "updated_at": "garbage",
                "last_auto_sync_at": 12,
            },
        )
        runtime = RuntimeConfigStore(kv, small_catalog, clock=clock)

        config = await runtime.get()

        assert config.version == RUNTIME_CONFIG_VERSION
        assert config.mapping_overrides == {"seller": "Vendor"}
        assert config.options_overrides == {}
        assert config.updated_at == "2026-01-15T12:00:00Z"
        assert config.last_auto_sync_at is None

    @pytest.mark.asyncio
    async def test_non_mapping_document_is_empty(self, kv, small_catalog, clock) -> None:
        await kv.set(DEFAULT_CONFIG_KEY, ["nonsense"])
        runtime = RuntimeConfigStore(kv, small_catalog, clock=clock)
        assert (await runtime.get()).mapping_overrides == {}

    @pytest.mark.asyncio
    async def test_update_is_read_modify_write(self, kv, small_catalog, clock) -> None:
        from dataclasses import replace

        runtime = RuntimeConfigStore(kv, small_catalog, clock=clock)
        await runtime.apply_mapping_updates({"seller": "Vendor"})

        saved = await runtime.update(lambda c: replace(c, last_manual_sync_at="2026-01-15T12:00:00Z"))

        assert saved.mapping_overrides == {"seller": "Vendor"}
        assert (await runtime.get()).last_manual_sync_at == "2026-01-15T12:00:00Z"

    @pytest.mark.asyncio
    async def test_custom_key(self, kv, small_catalog, clock) -> None:
        runtime = RuntimeConfigStore(kv, small_catalog, key="custom:key", clock=clock)
        await runtime.apply_mapping_updates({"seller": "Vendor"})
        assert kv.memory.get("custom:key") is not None
        assert kv.memory.get(DEFAULT_CONFIG_KEY) is None
