# tests/mapping/test_analyzer.py
"""Tests for mapping analysis, unmapped-field detection and admin validation."""

from __future__ import annotations

import pytest

from formbridge.contracts.enums import MappingStatus, SuggestionReason
from formbridge.contracts.errors import MappingUpdateError
from formbridge.mapping import analyze_mappings, find_unmapped_fields, validate_mapping_updates


class TestAnalyzeMappings:
    """Row classification."""

    def test_healthy_mapping_has_no_issues(self, healthy_schema, small_catalog) -> None:
        table = healthy_schema.find_primary_table("Inventory")

        analysis = analyze_mappings(table, dict(small_catalog.field_map), aliases=small_catalog.mapping_aliases)

        assert analysis.issues == ()
        assert analysis.suggestions == ()
        assert [row.form_key for row in analysis.rows] == list(small_catalog.field_map)

    def test_unmapped_key_is_empty(self, healthy_schema) -> None:
        table = healthy_schema.find_primary_table("Inventory")

        analysis = analyze_mappings(table, {"notes": None, "blank": "   "}, aliases={})

        assert [row.status for row in analysis.rows] == [MappingStatus.EMPTY, MappingStatus.EMPTY]
        assert all(row.mapped_field is None for row in analysis.rows)
        assert analysis.issues == ()

    def test_ok_row_carries_field_type(self, healthy_schema) -> None:
        table = healthy_schema.find_primary_table("Inventory")

        analysis = analyze_mappings(table, {"marginTakeRate": "Margin % (Take Rate)"}, aliases={})

        row = analysis.rows[0]
        assert row.status == MappingStatus.OK
        assert row.field_type == "percent"
        assert row.suggested_field is None

    def test_mapped_name_is_trimmed(self, healthy_schema) -> None:
        table = healthy_schema.find_primary_table("Inventory")
        analysis = analyze_mappings(table, {"locationSurplus": "  SP Location "}, aliases={})
        assert analysis.rows[0].status == MappingStatus.OK
        assert analysis.rows[0].mapped_field == "SP Location"

    def test_drifted_schema(self, drifted_schema, small_catalog) -> None:
        """Renamed location field and re-cased tag field both get repairs."""
        table = drifted_schema.find_primary_table("Inventory")

        analysis = analyze_mappings(table, dict(small_catalog.field_map), aliases=small_catalog.mapping_aliases)

        by_key = {row.form_key: row for row in analysis.issues}
        assert set(by_key) == {"locationSurplus", "tagPresets"}

        location = by_key["locationSurplus"]
        assert location.status == MappingStatus.MISSING
        assert location.suggested_field == "Location (SP)"
        assert location.suggestion_reason == SuggestionReason.FUZZY

        tags = by_key["tagPresets"]
        assert tags.suggested_field == "Tag Presets"
        assert tags.suggestion_reason == SuggestionReason.KNOWN_RENAME

        assert [(s.form_key, s.suggested_field) for s in analysis.suggestions] == [
            ("locationSurplus", "Location (SP)"),
            ("tagPresets", "Tag Presets"),
        ]

    def test_read_only_mapping(self, table_factory, field_factory) -> None:
        table = table_factory("Inventory", [field_factory("Score", "formula"), field_factory("Score Input", "number")])

        analysis = analyze_mappings(table, {"score": "Score"}, aliases={"Score": ("Score Input",)})

        row = analysis.rows[0]
        assert row.status == MappingStatus.READ_ONLY
        assert row.field_type == "formula"
        assert row.suggested_field == "Score Input"
        assert analysis.issues == (row,)

    def test_issue_without_suggestion(self, table_factory, field_factory) -> None:
        table = table_factory("Inventory", [field_factory("Seller")])

        analysis = analyze_mappings(table, {"locationSurplus": "SP Location"}, aliases={})

        assert analysis.issues[0].status == MappingStatus.MISSING
        assert analysis.issues[0].suggested_field is None
        assert analysis.issues[0].suggestion_reason is None
        assert analysis.suggestions == ()


class TestFindUnmappedFields:
    def test_reports_fields_no_key_points_at(self, drifted_schema, small_catalog) -> None:
        table = drifted_schema.find_primary_table("Inventory")

        unmapped = find_unmapped_fields(table, small_catalog.field_map.values())

        assert [f.name for f in unmapped] == ["Location (SP)", "Tag Presets", "Internal Score"]
        assert unmapped[-1].type == "number"

    def test_all_mapped(self, healthy_schema, small_catalog) -> None:
        table = healthy_schema.find_primary_table("Inventory")
        assert find_unmapped_fields(table, small_catalog.field_map.values()) == ()


class TestValidateMappingUpdates:
    """Explicit admin updates."""

    def test_accepts_writable_existing_field(self, drifted_schema) -> None:
        table = drifted_schema.find_primary_table("Inventory")

        cleaned = validate_mapping_updates(table, {"locationSurplus": " Location (SP) "}, ["locationSurplus"])

        assert cleaned == {"locationSurplus": "Location (SP)"}

    def test_rejects_everything_wrong_at_once(self, table_factory, field_factory) -> None:
        table = table_factory("Inventory", [field_factory("Score", "formula"), field_factory("Seller")])

        with pytest.raises(MappingUpdateError) as excinfo:
            validate_mapping_updates(
                table,
                {"unknownKey": "Seller", "a": "Missing Field", "b": "Score", "c": "", "d": 5},
                ["a", "b", "c", "d"],
            )

        errors = excinfo.value.errors
        assert len(errors) == 5
        assert "Unknown form field key: unknownKey" in errors
        assert 'Field "Missing Field" does not exist in Inventory' in errors
        assert 'Field "Score" is read-only (formula)' in errors
        assert "Mapping for c cannot be empty" in errors
        assert "Mapping for d must be a string" in errors

    def test_error_is_a_value_error(self, table_factory) -> None:
        with pytest.raises(ValueError):
            validate_mapping_updates(table_factory("Inventory", []), {"x": "y"}, [])
