# src/formbridge/mapping/analyzer.py
"""Mapping Analyzer.

Pure functions comparing a form -> external-field mapping against one live
table. Problems are returned as data; nothing here raises for "found a
problem" except validate_mapping_updates, whose caller asked for a verdict.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from formbridge.contracts.enums import MappingStatus
from formbridge.contracts.errors import MappingUpdateError
from formbridge.contracts.mapping import MappingAnalysis, MappingRow, MappingSuggestion
from formbridge.contracts.schema import ExternalTableSchema
from formbridge.contracts.sync import UnmappedField
from formbridge.mapping.matching import DEFAULT_THRESHOLDS, MatchThresholds, suggest_replacement


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def analyze_mappings(
    table: ExternalTableSchema,
    mapping: Mapping[str, str | None],
    *,
    aliases: Mapping[str, Sequence[str]],
    thresholds: MatchThresholds = DEFAULT_THRESHOLDS,
) -> MappingAnalysis:
    """Classify every mapping entry and suggest repairs for broken ones.

    Args:
        table: Live schema of the table the mapping writes to
        mapping: Effective form key -> external field name mapping
        aliases: Known historical renames, keyed by the old field name
        thresholds: Fuzzy acceptance bar

    Returns:
        MappingAnalysis with one row per mapping entry, in mapping order
    """
    rows: list[MappingRow] = []
    suggestions: list[MappingSuggestion] = []

    for form_key, raw in mapping.items():
        mapped_field = _clean(raw)
        if mapped_field is None:
            rows.append(MappingRow(form_key=form_key, mapped_field=None, status=MappingStatus.EMPTY))
            continue

        exact = table.field_by_name(mapped_field)
        if exact is not None and exact.writable:
            rows.append(
                MappingRow(form_key=form_key, mapped_field=mapped_field, status=MappingStatus.OK, field_type=exact.type)
            )
            continue

        status = MappingStatus.MISSING if exact is None else MappingStatus.READ_ONLY
        replacement = suggest_replacement(mapped_field, table.fields, aliases=aliases, thresholds=thresholds)
        rows.append(
            MappingRow(
                form_key=form_key,
                mapped_field=mapped_field,
                status=status,
                field_type=exact.type if exact is not None else None,
                suggested_field=replacement.field.name if replacement else None,
                suggestion_reason=replacement.reason if replacement else None,
            )
        )
        if replacement is not None:
            suggestions.append(
                MappingSuggestion(
                    form_key=form_key,
                    mapped_field=mapped_field,
                    suggested_field=replacement.field.name,
                    suggestion_reason=replacement.reason,
                )
            )

    issues = tuple(row for row in rows if row.status in (MappingStatus.MISSING, MappingStatus.READ_ONLY))
    return MappingAnalysis(rows=tuple(rows), issues=issues, suggestions=tuple(suggestions))


def find_unmapped_fields(table: ExternalTableSchema, mapped_names: Iterable[str | None]) -> tuple[UnmappedField, ...]:
    """Live fields that no mapping entry points at, in store order."""
    targets = {cleaned for cleaned in (_clean(name) for name in mapped_names) if cleaned is not None}
    return tuple(UnmappedField(name=f.name, type=f.type) for f in table.fields if f.name not in targets)


def validate_mapping_updates(
    table: ExternalTableSchema,
    updates: Mapping[str, object],
    allowed_keys: Iterable[str],
) -> dict[str, str]:
    """Check explicit admin mapping updates against the live table.

    Returns:
        The updates with values trimmed

    Raises:
        MappingUpdateError: Listing every rejected entry
    """
    allowed = set(allowed_keys)
    errors: list[str] = []
    cleaned: dict[str, str] = {}

    for form_key, value in updates.items():
        if form_key not in allowed:
            errors.append(f"Unknown form field key: {form_key}")
            continue
        if not isinstance(value, str):
            errors.append(f"Mapping for {form_key} must be a string")
            continue
        target = value.strip()
        if not target:
            errors.append(f"Mapping for {form_key} cannot be empty")
            continue
        live = table.field_by_name(target)
        if live is None:
            errors.append(f'Field "{target}" does not exist in {table.name}')
            continue
        if not live.writable:
            errors.append(f'Field "{target}" is read-only ({live.type})')
            continue
        cleaned[form_key] = target

    if errors:
        raise MappingUpdateError(errors)
    return cleaned
