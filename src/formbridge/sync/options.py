"""Option set diff against live select-field choices."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from formbridge.contracts.schema import ExternalTableSchema
from formbridge.contracts.sync import OptionArrayDiff


@dataclass(frozen=True, slots=True)
class OptionSyncDiff:
    """Changed option sets, keyed by option set name.

    next_options holds the full replacement array for every changed set.
    """

    updated_options: dict[str, OptionArrayDiff] = field(default_factory=dict)
    next_options: dict[str, list[str]] = field(default_factory=dict)


def build_option_sync_diff(
    table: ExternalTableSchema,
    current_options: Mapping[str, Sequence[str]],
    sync_fields: Mapping[str, str],
) -> OptionSyncDiff:
    """Compare each synced field's live choices with its effective option set.

    Fields reporting no choices are skipped, so a select field temporarily
    emptied in the store never wipes the form's options. When two live fields
    feed the same option set, the later one in store order wins.
    """
    updated: dict[str, OptionArrayDiff] = {}
    next_options: dict[str, list[str]] = {}

    for live_field in table.fields:
        option_set = sync_fields.get(live_field.name)
        if option_set is None:
            continue
        after = [name.strip() for name in live_field.choice_names if name.strip()]
        if not after:
            continue
        before = list(current_options.get(option_set, ()))
        if before == after:
            continue
        updated[option_set] = OptionArrayDiff(
            field=live_field.name,
            option_set=option_set,
            before=tuple(before),
            after=tuple(after),
        )
        next_options[option_set] = after

    return OptionSyncDiff(updated_options=updated, next_options=next_options)
