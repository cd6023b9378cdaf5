"""FieldCatalog: the baseline a FormBridge instance reconciles against."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from formbridge.catalog import baseline
from formbridge.contracts.lookup import LinkedRecordConfig


@dataclass(frozen=True)
class FieldCatalog:
    """Immutable bundle of compiled-in configuration.

    Components receive a catalog rather than importing the baseline module,
    so tests can run against a small purpose-built catalog.

    Attributes:
        field_map: Form key -> baseline external field name (None = unmapped)
        option_sets: Option set name -> baseline choices
        option_sync_fields: Live field name -> option set it feeds
        mapping_aliases: Baseline field name -> historical names, tried first
        linked_fields: Form key -> baseline lookup configuration
        linked_table_aliases: Form key -> other table names to try on drift
        percent_keys: Form keys stored as fractions of 1
        file_keys: Form keys holding uploaded file lists
    """

    field_map: Mapping[str, str | None]
    option_sets: Mapping[str, tuple[str, ...]]
    option_sync_fields: Mapping[str, str]
    mapping_aliases: Mapping[str, tuple[str, ...]]
    linked_fields: Mapping[str, LinkedRecordConfig]
    linked_table_aliases: Mapping[str, tuple[str, ...]] = field(default_factory=lambda: MappingProxyType({}))
    percent_keys: frozenset[str] = frozenset()
    file_keys: frozenset[str] = frozenset()

    @classmethod
    def default(cls) -> FieldCatalog:
        return cls(
            field_map=baseline.BASELINE_FIELD_MAP,
            option_sets=baseline.BASELINE_OPTION_SETS,
            option_sync_fields=baseline.OPTION_SYNC_FIELDS,
            mapping_aliases=baseline.MAPPING_ALIAS_CANDIDATES,
            linked_fields=baseline.BASELINE_LINKED_FIELDS,
            linked_table_aliases=baseline.LINKED_TABLE_ALIASES,
            percent_keys=baseline.PERCENT_FORM_KEYS,
            file_keys=baseline.FILE_FORM_KEYS,
        )

    def is_linked_field(self, form_key: str) -> bool:
        return form_key in self.linked_fields
