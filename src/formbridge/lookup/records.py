"""Turn raw store rows into lookup records."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from formbridge.clients.protocols import RawRecord
from formbridge.contracts.lookup import CachedLinkedRecord, LinkedRecordConfig


def _scalar_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int | float):
        return str(value)
    if isinstance(value, Mapping) and isinstance(value.get("name"), str):
        return str(value["name"])
    return ""


def coerce_field_value(value: Any) -> str:
    """Flatten a raw cell to display text.

    Lists (linked records, multi-selects, lookups) are joined with ", ";
    objects contribute their "name". Anything else becomes "".
    """
    if isinstance(value, list | tuple):
        return ", ".join(text for text in (_scalar_text(entry) for entry in value) if text)
    return _scalar_text(value)


def pick_display_name(fields: Mapping[str, Any], display_field: str) -> str:
    """Display field text, else the first non-empty field in row order."""
    preferred = coerce_field_value(fields.get(display_field)).strip()
    if preferred:
        return preferred
    for value in fields.values():
        text = coerce_field_value(value).strip()
        if text:
            return text
    return ""


def filter_records_by_query(records: Iterable[CachedLinkedRecord], query: str) -> list[CachedLinkedRecord]:
    """Keep named records whose name contains query, case-insensitively."""
    needle = query.strip().lower()
    return [r for r in records if r.name and (not needle or needle in r.name.lower())]


def map_records(raw_records: Iterable[RawRecord], config: LinkedRecordConfig, query: str) -> list[CachedLinkedRecord]:
    mapped: list[CachedLinkedRecord] = []
    for raw in raw_records:
        metadata: dict[str, str] = {}
        for name in config.preview_fields:
            text = coerce_field_value(raw.fields.get(name)).strip()
            if text:
                metadata[name] = text
        mapped.append(
            CachedLinkedRecord(
                id=raw.id,
                name=pick_display_name(raw.fields, config.display_field),
                metadata=metadata or None,
            )
        )
    # The store filter may have been dropped by a looser attempt
    return filter_records_by_query(mapped, query)
