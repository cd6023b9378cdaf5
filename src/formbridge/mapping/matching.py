# src/formbridge/mapping/matching.py
"""Replacement search for broken field mappings.

Stages, tried in order until one yields a writable field:

1. known rename   - curated alias table of historical names
2. case-insensitive exact name match
3. normalized match - lowercase, runs of non-alphanumerics collapsed to one space
4. fuzzy          - Jaccard overlap of word tokens, with an absolute floor and
                    a required lead over the runner-up

Each stage prefers precision over recall. The fuzzy stage refuses to pick
between near-identical candidates such as "Location (Surplus)" and
"Location (Wholesale)".

Candidate scans are ordered by field name, never by the order the store
happened to report fields in, so the same schema always yields the same
suggestion.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from formbridge.contracts.enums import SuggestionReason
from formbridge.contracts.schema import ExternalFieldSchema

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True, slots=True)
class MatchThresholds:
    """Acceptance bar for the fuzzy stage.

    Attributes:
        min_score: Minimum Jaccard score of the best candidate
        min_gap: Minimum lead of the best candidate over the runner-up
    """

    min_score: float = 0.72
    min_gap: float = 0.18


DEFAULT_THRESHOLDS = MatchThresholds()


@dataclass(frozen=True, slots=True)
class Replacement:
    field: ExternalFieldSchema
    reason: SuggestionReason


def normalize_name(value: str) -> str:
    return _NON_ALNUM.sub(" ", value.lower()).strip()


def tokenize(value: str) -> frozenset[str]:
    return frozenset(normalize_name(value).split())


def overlap_score(a: str, b: str) -> float:
    """Jaccard similarity of the word tokens of a and b.

    Two names with no tokens at all score 1.0.
    """
    a_tokens = tokenize(a)
    b_tokens = tokenize(b)
    if not a_tokens and not b_tokens:
        return 1.0
    union = a_tokens | b_tokens
    if not union:
        return 0.0
    return len(a_tokens & b_tokens) / len(union)


def _first_writable(candidates: Iterable[ExternalFieldSchema]) -> ExternalFieldSchema | None:
    for candidate in sorted(candidates, key=lambda f: (f.name, f.id)):
        if candidate.writable:
            return candidate
    return None


def rank_by_score(fields: Iterable[ExternalFieldSchema], target: str) -> list[tuple[float, ExternalFieldSchema]]:
    """Score every field against target, best first, ties broken by name."""
    scored = [(overlap_score(target, f.name), f) for f in fields]
    scored.sort(key=lambda pair: (-pair[0], pair[1].name, pair[1].id))
    return scored


def suggest_by_score(
    fields: Iterable[ExternalFieldSchema],
    target: str,
    thresholds: MatchThresholds = DEFAULT_THRESHOLDS,
) -> ExternalFieldSchema | None:
    """Return the clear fuzzy winner, or None when no candidate is confident.

    The winner must clear min_score and lead the runner-up by min_gap. A
    winner that is not writable is rejected rather than replaced by the
    runner-up, since the runner-up by construction failed the gap rule.
    """
    ranked = rank_by_score(fields, target)
    if not ranked:
        return None
    best_score, best = ranked[0]
    if best_score < thresholds.min_score:
        return None
    if len(ranked) > 1 and best_score - ranked[1][0] < thresholds.min_gap:
        return None
    return best if best.writable else None


def suggest_replacement(
    mapped_field: str,
    fields: Sequence[ExternalFieldSchema],
    *,
    aliases: Mapping[str, Sequence[str]],
    thresholds: MatchThresholds = DEFAULT_THRESHOLDS,
) -> Replacement | None:
    """Find a writable live field to replace mapped_field.

    The field literally named mapped_field (present when the mapping is
    read-only) is never its own replacement.
    """
    candidates = [f for f in fields if f.name != mapped_field]
    by_name: dict[str, list[ExternalFieldSchema]] = {}
    for f in candidates:
        by_name.setdefault(f.name, []).append(f)

    for alias in aliases.get(mapped_field, ()):
        found = _first_writable(by_name.get(alias, ()))
        if found is not None:
            return Replacement(found, SuggestionReason.KNOWN_RENAME)

    lowered = mapped_field.lower()
    found = _first_writable(f for f in candidates if f.name.lower() == lowered)
    if found is not None:
        return Replacement(found, SuggestionReason.CASE_INSENSITIVE)

    normalized = normalize_name(mapped_field)
    found = _first_writable(f for f in candidates if normalize_name(f.name) == normalized)
    if found is not None:
        return Replacement(found, SuggestionReason.NORMALIZED)

    found = suggest_by_score(candidates, mapped_field, thresholds)
    if found is not None:
        return Replacement(found, SuggestionReason.FUZZY)

    return None
