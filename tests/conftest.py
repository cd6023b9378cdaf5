# tests/conftest.py
"""Shared test fixtures.

Fakes:
- FakeClock: injectable epoch-seconds clock with advance()
- FakeRecordStoreClient: in-memory RecordStoreClient recording every call

Catalog and schema:
- small_catalog: a purpose-built FieldCatalog with a handful of keys
- healthy_schema: a base matching small_catalog exactly
- drifted_schema: the same base after typical admin edits (renamed
  location field, re-cased tag field with an extra choice, a new field)

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/mapping/
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import pytest
from hypothesis import Phase, Verbosity, settings

from formbridge.catalog import FieldCatalog
from formbridge.clients.protocols import CreatedRecord, RawRecord, RecordSort
from formbridge.contracts.enums import LinkMode, SortDirection
from formbridge.contracts.lookup import LinkedRecordConfig
from formbridge.contracts.schema import ExternalBaseSchema, ExternalFieldSchema, ExternalTableSchema, FieldChoice
from formbridge.core.config import FormBridgeSettings
from formbridge.core.kv import KeyValueStore

# Fixed instant used as "now" by default: 2026-01-15T12:00:00Z
BASE_EPOCH = 1_768_478_400.0


class FakeClock:
    """Callable returning epoch seconds; advance() moves time forward."""

    def __init__(self, start: float = BASE_EPOCH) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@dataclass(frozen=True)
class ListCall:
    table: str
    fields: tuple[str, ...] | None
    max_records: int
    filter_formula: str | None
    sort: RecordSort | None


@dataclass
class FakeRecordStoreClient:
    """RecordStoreClient double.

    list_handler, when set, decides every list_records outcome (return rows
    or raise). Otherwise rows come from records[table], or list_error is
    raised when set. When gate is set, list_records records the call and
    then waits for the gate before answering.
    """

    schema: ExternalBaseSchema = field(default_factory=ExternalBaseSchema)
    records: dict[str, list[RawRecord]] = field(default_factory=dict)
    schema_error: BaseException | None = None
    list_error: BaseException | None = None
    create_error: BaseException | None = None
    list_handler: Callable[[ListCall], list[RawRecord]] | None = None
    gate: asyncio.Event | None = None
    fetch_count: int = 0
    list_calls: list[ListCall] = field(default_factory=list)
    created: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    closed: bool = False

    async def fetch_schema(self) -> ExternalBaseSchema:
        self.fetch_count += 1
        if self.schema_error is not None:
            raise self.schema_error
        return self.schema

    async def list_records(
        self,
        table: str,
        *,
        fields: Sequence[str] | None = None,
        max_records: int = 100,
        filter_formula: str | None = None,
        sort: RecordSort | None = None,
    ) -> list[RawRecord]:
        call = ListCall(
            table=table,
            fields=tuple(fields) if fields is not None else None,
            max_records=max_records,
            filter_formula=filter_formula,
            sort=sort,
        )
        self.list_calls.append(call)
        if self.gate is not None:
            await self.gate.wait()
        if self.list_handler is not None:
            return self.list_handler(call)
        if self.list_error is not None:
            raise self.list_error
        return list(self.records.get(table, []))

    async def create_record(self, table: str, fields: Mapping[str, Any]) -> CreatedRecord:
        if self.create_error is not None:
            raise self.create_error
        self.created.append((table, dict(fields)))
        return CreatedRecord(id=f"rec{len(self.created):03d}")

    async def aclose(self) -> None:
        self.closed = True


def make_field(
    name: str,
    type: str = "singleLineText",
    *,
    id: str | None = None,
    choices: Sequence[str] = (),
    linked_table_id: str | None = None,
) -> ExternalFieldSchema:
    return ExternalFieldSchema(
        id=id or "fld" + "".join(ch for ch in name if ch.isalnum()),
        name=name,
        type=type,
        choices=tuple(FieldChoice(name=c) for c in choices),
        linked_table_id=linked_table_id,
    )


def make_table(
    name: str,
    fields: Sequence[ExternalFieldSchema],
    *,
    id: str | None = None,
    primary_field_id: str | None = None,
) -> ExternalTableSchema:
    return ExternalTableSchema(
        id=id or "tbl" + "".join(ch for ch in name if ch.isalnum()),
        name=name,
        fields=tuple(fields),
        primary_field_id=primary_field_id,
    )


TAG_CHOICES = ("Assorted Beauty", "Retailer Beauty")


def build_small_catalog() -> FieldCatalog:
    return FieldCatalog(
        field_map={
            "brandPartner": "Brand Partner",
            "seller": "Seller",
            "locationSurplus": "SP Location",
            "tagPresets": "Tag presets",
            "marginTakeRate": "Margin % (Take Rate)",
            "inventoryFile": "Inventory File",
            "notes": None,
        },
        option_sets={"TAG_PRESET_OPTIONS": TAG_CHOICES},
        option_sync_fields={"Tag presets": "TAG_PRESET_OPTIONS", "Tag Presets": "TAG_PRESET_OPTIONS"},
        mapping_aliases={"Tag presets": ("Tag Presets",)},
        linked_fields={
            "brandPartner": LinkedRecordConfig(
                table="Admins",
                display_field="Name",
                mode=LinkMode.SINGLE,
                preview_fields=("Email",),
                sort_field="Name",
                sort_direction=SortDirection.ASC,
            ),
            "seller": LinkedRecordConfig(
                table="Sellers",
                display_field="Seller",
                mode=LinkMode.SINGLE,
                preview_fields=("Company",),
                sort_field="Created",
                sort_direction=SortDirection.DESC,
            ),
        },
        linked_table_aliases={"seller": ("Seller",)},
        percent_keys=frozenset({"marginTakeRate"}),
        file_keys=frozenset({"inventoryFile"}),
    )


def _linked_tables() -> list[ExternalTableSchema]:
    return [
        make_table(
            "Admins",
            [make_field("Name", id="fldAdminName"), make_field("Email", "email")],
            id="tblAdmins",
            primary_field_id="fldAdminName",
        ),
        make_table(
            "Sellers",
            [
                make_field("Seller", id="fldSellerName"),
                make_field("Company"),
                make_field("Created", "createdTime"),
            ],
            id="tblSellers",
            primary_field_id="fldSellerName",
        ),
    ]


def build_healthy_schema() -> ExternalBaseSchema:
    inventory = make_table(
        "Inventory",
        [
            make_field("Brand Partner", "multipleRecordLinks", linked_table_id="tblAdmins"),
            make_field("Seller", "multipleRecordLinks", linked_table_id="tblSellers"),
            make_field("SP Location"),
            make_field("Tag presets", "multipleSelects", choices=TAG_CHOICES),
            make_field("Margin % (Take Rate)", "percent"),
            make_field("Inventory File", "multipleAttachments"),
        ],
        id="tblInventory",
    )
    return ExternalBaseSchema(tables=(inventory, *_linked_tables()))


def build_drifted_schema() -> ExternalBaseSchema:
    inventory = make_table(
        "Inventory",
        [
            make_field("Brand Partner", "multipleRecordLinks", linked_table_id="tblAdmins"),
            make_field("Seller", "multipleRecordLinks", linked_table_id="tblSellers"),
            make_field("Location (SP)"),
            make_field("Tag Presets", "multipleSelects", choices=(*TAG_CHOICES, "Wholesale Domestic")),
            make_field("Margin % (Take Rate)", "percent"),
            make_field("Inventory File", "multipleAttachments"),
            make_field("Internal Score", "number"),
        ],
        id="tblInventory",
    )
    return ExternalBaseSchema(tables=(inventory, *_linked_tables()))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def kv(clock: FakeClock) -> KeyValueStore:
    """Memory-only KV store on the fake clock."""
    return KeyValueStore.in_memory(clock=clock)


@pytest.fixture
def small_catalog() -> FieldCatalog:
    return build_small_catalog()


@pytest.fixture
def healthy_schema() -> ExternalBaseSchema:
    return build_healthy_schema()


@pytest.fixture
def drifted_schema() -> ExternalBaseSchema:
    return build_drifted_schema()


@pytest.fixture
def fake_client(healthy_schema: ExternalBaseSchema) -> FakeRecordStoreClient:
    return FakeRecordStoreClient(schema=healthy_schema)


@pytest.fixture
def field_factory() -> Callable[..., ExternalFieldSchema]:
    return make_field


@pytest.fixture
def table_factory() -> Callable[..., ExternalTableSchema]:
    return make_table


@pytest.fixture
def bridge_settings() -> FormBridgeSettings:
    """Settings with credentials present and no Redis."""
    return FormBridgeSettings(record_store={"api_key": "patTEST", "base_id": "appTEST"})


# =============================================================================
# Hypothesis Configuration
# =============================================================================

# CI profile: Fast tests for continuous integration
settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

# Nightly profile: Thorough testing for scheduled runs
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Debug profile: Minimal examples with verbose output for debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Load profile from environment, default to "ci"
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
