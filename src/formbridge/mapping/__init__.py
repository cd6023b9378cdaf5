"""Mapping Analyzer: classify form -> field mappings and suggest repairs."""

from formbridge.mapping.analyzer import analyze_mappings, find_unmapped_fields, validate_mapping_updates
from formbridge.mapping.matching import (
    DEFAULT_THRESHOLDS,
    MatchThresholds,
    Replacement,
    normalize_name,
    overlap_score,
    suggest_replacement,
)

__all__ = [
    "DEFAULT_THRESHOLDS",
    "MatchThresholds",
    "Replacement",
    "analyze_mappings",
    "find_unmapped_fields",
    "normalize_name",
    "overlap_score",
    "suggest_replacement",
    "validate_mapping_updates",
]
