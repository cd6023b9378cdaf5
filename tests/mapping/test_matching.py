# tests/mapping/test_matching.py
"""Tests for replacement search stages."""

from __future__ import annotations

import pytest

from formbridge.contracts.enums import SuggestionReason
from formbridge.mapping.matching import (
    MatchThresholds,
    normalize_name,
    overlap_score,
    rank_by_score,
    suggest_by_score,
    suggest_replacement,
    tokenize,
)


class TestNameHelpers:
    @pytest.mark.parametrize(
        ("raw", "normalized"),
        [
            ("FOB or EXW?", "fob or exw"),
            ("Margin % (Take Rate)", "margin take rate"),
            ("  SP--Location  ", "sp location"),
            ("", ""),
            ("???", ""),
        ],
    )
    def test_normalize_name(self, raw: str, normalized: str) -> None:
        assert normalize_name(raw) == normalized

    def test_tokenize(self) -> None:
        assert tokenize("Location (SP)") == frozenset({"location", "sp"})

    def test_overlap_is_jaccard(self) -> None:
        assert overlap_score("SP Location", "Location (SP)") == 1.0
        assert overlap_score("Brand Demand", "Brand Demand Score") == pytest.approx(2 / 3)
        assert overlap_score("Seller", "Company") == 0.0

    def test_two_empty_names_score_one(self) -> None:
        assert overlap_score("??", "--") == 1.0

    def test_one_empty_name_scores_zero(self) -> None:
        assert overlap_score("", "Seller") == 0.0


class TestSuggestByScore:
    def test_clear_winner(self, field_factory) -> None:
        fields = [field_factory("Location (SP)"), field_factory("Notes"), field_factory("Seller")]
        assert suggest_by_score(fields, "SP Location").name == "Location (SP)"

    def test_below_floor(self, field_factory) -> None:
        fields = [field_factory("Brand Demand Score")]
        assert suggest_by_score(fields, "Brand Demand") is None  # 0.67 < 0.72

    def test_near_tie_is_ambiguous(self, field_factory) -> None:
        """Two similar candidates mean no confident answer."""
        fields = [field_factory("Brand Demand SP Score"), field_factory("Brand Demand SP Rank")]
        assert suggest_by_score(fields, "Brand Demand SP") is None

    def test_read_only_winner_is_rejected_not_replaced(self, field_factory) -> None:
        fields = [field_factory("Location (SP)", "formula"), field_factory("Location Notes")]
        assert suggest_by_score(fields, "SP Location") is None

    def test_thresholds_are_configurable(self, field_factory) -> None:
        fields = [field_factory("Brand Demand Score")]
        loose = MatchThresholds(min_score=0.5, min_gap=0.1)
        assert suggest_by_score(fields, "Brand Demand", loose).name == "Brand Demand Score"

    def test_rank_ties_broken_by_name(self, field_factory) -> None:
        fields = [field_factory("b x"), field_factory("a x")]
        ranked = rank_by_score(fields, "x y")
        assert [f.name for _, f in ranked] == ["a x", "b x"]

    def test_no_fields(self) -> None:
        assert suggest_by_score([], "anything") is None


class TestSuggestReplacement:
    """Stage ordering and tie-breaking."""

    def test_known_rename_first(self, field_factory) -> None:
        fields = [field_factory("Tag Presets"), field_factory("tag presets")]
        result = suggest_replacement("Tag presets", fields, aliases={"Tag presets": ("Tag Presets",)})
        assert result is not None
        assert result.field.name == "Tag Presets"
        assert result.reason == SuggestionReason.KNOWN_RENAME

    def test_aliases_tried_in_order(self, field_factory) -> None:
        fields = [field_factory("Location"), field_factory("SP US Landed")]
        result = suggest_replacement("SP Location", fields, aliases={"SP Location": ("SP US Landed", "Location")})
        assert result.field.name == "SP US Landed"

    def test_read_only_alias_skipped(self, field_factory) -> None:
        fields = [field_factory("Exclusivity", "rollup"), field_factory("inventory exclusivity")]
        result = suggest_replacement(
            "Inventory Exclusivity",
            fields,
            aliases={"Inventory Exclusivity": ("Exclusivity",)},
        )
        assert result.field.name == "inventory exclusivity"
        assert result.reason == SuggestionReason.CASE_INSENSITIVE

    def test_case_insensitive(self, field_factory) -> None:
        result = suggest_replacement("Stealth?", [field_factory("STEALTH?")], aliases={})
        assert result.reason == SuggestionReason.CASE_INSENSITIVE

    def test_normalized(self, field_factory) -> None:
        result = suggest_replacement("FOB or EXW?", [field_factory("FOB or EXW")], aliases={})
        assert result.field.name == "FOB or EXW"
        assert result.reason == SuggestionReason.NORMALIZED

    def test_fuzzy(self, field_factory) -> None:
        result = suggest_replacement("SP Location", [field_factory("Location (SP)")], aliases={})
        assert result.reason == SuggestionReason.FUZZY

    def test_nothing_found(self, field_factory) -> None:
        assert suggest_replacement("SP Location", [field_factory("Seller")], aliases={}) is None

    def test_field_is_never_its_own_replacement(self, field_factory) -> None:
        """A read-only field with the mapped name is excluded from candidates."""
        fields = [field_factory("Total", "formula")]
        assert suggest_replacement("Total", fields, aliases={}) is None

    def test_read_only_same_name_with_writable_twin(self, field_factory) -> None:
        fields = [field_factory("Total", "formula"), field_factory("total")]
        result = suggest_replacement("Total", fields, aliases={})
        assert result.field.name == "total"

    def test_ties_broken_by_name_not_store_order(self, field_factory) -> None:
        a = field_factory("notes", id="fld1")
        b = field_factory("NOTES", id="fld2")
        forward = suggest_replacement("Notes", [a, b], aliases={})
        backward = suggest_replacement("Notes", [b, a], aliases={})
        assert forward.field == backward.field
        assert forward.field.name == "NOTES"
