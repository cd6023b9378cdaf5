"""Live schema of the external record store.

These types are snapshots of what the store reported at fetch time. They are
never cached across requests by the sync path; every preview or apply fetches
a fresh schema.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Final

# Field types whose values the store computes itself. A mapping pointing at
# one of these cannot receive writes.
READ_ONLY_FIELD_TYPES: Final[frozenset[str]] = frozenset(
    {
        "formula",
        "rollup",
        "count",
        "lookup",
        "multipleLookupValues",
        "button",
        "createdBy",
        "createdTime",
        "lastModifiedBy",
        "lastModifiedTime",
        "autoNumber",
    }
)


def is_writable_field_type(field_type: str) -> bool:
    """Return True unless the store computes values of this type itself."""
    return field_type not in READ_ONLY_FIELD_TYPES


@dataclass(frozen=True, slots=True)
class FieldChoice:
    """One selectable option of a select-type field."""

    name: str
    id: str | None = None
    color: str | None = None


@dataclass(frozen=True, slots=True)
class ExternalFieldSchema:
    """One column of an external table."""

    id: str
    name: str
    type: str
    description: str | None = None
    choices: tuple[FieldChoice, ...] = ()
    linked_table_id: str | None = None

    @property
    def writable(self) -> bool:
        return is_writable_field_type(self.type)

    @property
    def choice_names(self) -> list[str]:
        return [choice.name for choice in self.choices]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ExternalFieldSchema:
        """Build from a metadata payload entry.

        The store reports select choices and link targets under ``options``;
        older payloads used ``typeOptions``. ``options`` wins when both exist.
        """
        options: Mapping[str, Any] = {}
        if "options" in data and isinstance(data["options"], Mapping):
            options = data["options"]
        elif "typeOptions" in data and isinstance(data["typeOptions"], Mapping):
            options = data["typeOptions"]

        choices: list[FieldChoice] = []
        if "choices" in options and isinstance(options["choices"], list):
            for raw in options["choices"]:
                if isinstance(raw, Mapping) and isinstance(raw.get("name"), str):
                    choices.append(FieldChoice(name=raw["name"], id=raw.get("id"), color=raw.get("color")))

        linked_table_id = options["linkedTableId"] if "linkedTableId" in options else None

        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            type=str(data["type"]),
            description=data.get("description"),
            choices=tuple(choices),
            linked_table_id=linked_table_id,
        )


@dataclass(frozen=True, slots=True)
class ExternalTableSchema:
    """One table of the external base, with its fields in store order."""

    id: str
    name: str
    fields: tuple[ExternalFieldSchema, ...] = ()
    primary_field_id: str | None = None
    _by_name: dict[str, ExternalFieldSchema] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        # First occurrence wins if the store ever reports duplicate names.
        index: dict[str, ExternalFieldSchema] = {}
        for f in self.fields:
            index.setdefault(f.name, f)
        object.__setattr__(self, "_by_name", index)

    def field_by_name(self, name: str) -> ExternalFieldSchema | None:
        return self._by_name.get(name)

    def find_field_case_insensitive(self, name: str) -> ExternalFieldSchema | None:
        exact = self._by_name.get(name)
        if exact is not None:
            return exact
        lowered = name.lower()
        for f in self.fields:
            if f.name.lower() == lowered:
                return f
        return None

    @property
    def primary_field(self) -> ExternalFieldSchema | None:
        """The field the store designates as primary, else the first field."""
        if self.primary_field_id is not None:
            for f in self.fields:
                if f.id == self.primary_field_id:
                    return f
        return self.fields[0] if self.fields else None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ExternalTableSchema:
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            primary_field_id=data.get("primaryFieldId"),
            fields=tuple(ExternalFieldSchema.from_dict(raw) for raw in data.get("fields", [])),
        )


@dataclass(frozen=True, slots=True)
class ExternalBaseSchema:
    """All tables of the external base."""

    tables: tuple[ExternalTableSchema, ...] = ()

    def table_by_id(self, table_id: str) -> ExternalTableSchema | None:
        for table in self.tables:
            if table.id == table_id:
                return table
        return None

    def table_by_name(self, name: str) -> ExternalTableSchema | None:
        for table in self.tables:
            if table.name == name:
                return table
        return None

    def find_primary_table(self, name: str) -> ExternalTableSchema | None:
        """Exact name match first, then the first table whose name contains it."""
        exact = self.table_by_name(name)
        if exact is not None:
            return exact
        lowered = name.lower()
        for table in self.tables:
            if lowered in table.name.lower():
                return table
        return None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ExternalBaseSchema:
        return cls(tables=tuple(ExternalTableSchema.from_dict(raw) for raw in data.get("tables", [])))
