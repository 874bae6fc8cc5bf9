from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from stockroom.errors import StorageError, ValidationError
from stockroom.items import ItemLedger
from stockroom.storage import ITEMS, MemoryStore


FIXED_NOW = datetime(2024, 5, 1, 14, 30, tzinfo=timezone.utc)


@pytest.fixture()
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def ledger(store: MemoryStore) -> ItemLedger:
    return ItemLedger(store, clock=lambda: FIXED_NOW)


def test_create_assigns_id_and_date(ledger: ItemLedger) -> None:
    draft = {
        "name": "Widget",
        "category": "Tools",
        "quantity": "10",
        "unit_cost": "2.50",
        "description": "Blue",
    }
    item = ledger.create(draft)
    assert item.id.startswith("itm_")
    assert item.date_added == "2024-05-01T14:30:00Z"
    assert ledger.get(item.id) == item
    assert (item.name, item.category, item.quantity, item.unit_cost, item.description) == (
        "Widget",
        "Tools",
        10,
        Decimal("2.50"),
        "Blue",
    )


def test_create_accepts_camel_case_cost(ledger: ItemLedger) -> None:
    item = ledger.create({"name": "Cable", "quantity": 4, "unitCost": 1.25})
    assert item.unit_cost == Decimal("1.25")
    assert item.category == "Uncategorized"


@pytest.mark.parametrize(
    "draft",
    [
        {"name": "", "quantity": 1, "unit_cost": 1},
        {"name": "   ", "quantity": 1, "unit_cost": 1},
        {"name": "Box", "quantity": "abc", "unit_cost": 1},
        {"name": "Box", "quantity": "2.5", "unit_cost": 1},
        {"name": "Box", "quantity": -1, "unit_cost": 1},
        {"name": "Box", "quantity": True, "unit_cost": 1},
        {"name": "Box", "quantity": 1, "unit_cost": "NaN"},
        {"name": "Box", "quantity": 1, "unit_cost": "-0.01"},
        {"name": "Box", "quantity": 1, "unit_cost": "twelve"},
        {"name": "Box", "quantity": 1},
    ],
)
def test_create_rejects_invalid_drafts(ledger: ItemLedger, store: MemoryStore, draft) -> None:
    with pytest.raises(ValidationError):
        ledger.create(draft)
    assert store.get_raw(ITEMS) is None


def test_list_keeps_insertion_order(ledger: ItemLedger) -> None:
    names = ["Zeta", "Alpha", "Mid"]
    for name in names:
        ledger.create({"name": name, "quantity": 1, "unit_cost": 1})
    assert [item.name for item in ledger.list()] == names


def test_update_merges_patch_and_keeps_identity(ledger: ItemLedger) -> None:
    item = ledger.create({"name": "Widget", "quantity": 10, "unit_cost": "2.50"})
    assert ledger.update(
        item.id,
        {"unit_cost": "3.00", "id": "hijack", "date_added": "1999-01-01T00:00:00Z"},
    )
    updated = ledger.get(item.id)
    assert updated is not None
    assert updated.id == item.id
    assert updated.date_added == item.date_added
    assert updated.unit_cost == Decimal("3.00")
    assert updated.quantity == 10
    assert updated.name == "Widget"


def test_update_missing_item_returns_false(ledger: ItemLedger, store: MemoryStore) -> None:
    assert ledger.update("itm_missing", {"name": "x"}) is False
    assert store.get_raw(ITEMS) is None


def test_invalid_update_leaves_record_unchanged(ledger: ItemLedger) -> None:
    item = ledger.create({"name": "Widget", "quantity": 10, "unit_cost": "2.50"})
    with pytest.raises(ValidationError):
        ledger.update(item.id, {"quantity": "lots"})
    assert ledger.get(item.id) == item


def test_delete_is_idempotent(ledger: ItemLedger) -> None:
    item = ledger.create({"name": "Widget", "quantity": 1, "unit_cost": 1})
    assert ledger.delete(item.id) is True
    assert ledger.delete(item.id) is False
    assert ledger.get(item.id) is None


def test_search_matches_name_or_category(ledger: ItemLedger) -> None:
    drill = ledger.create({"name": "Cordless Drill", "category": "Tools", "quantity": 1, "unit_cost": 90})
    paper = ledger.create({"name": "Paper", "category": "Office Supplies", "quantity": 1, "unit_cost": 5})
    assert ledger.search("drill") == [drill]
    assert ledger.search("OFFICE") == [paper]
    assert ledger.search("  ") == [drill, paper]


def test_available_skips_empty_stock(ledger: ItemLedger) -> None:
    stocked = ledger.create({"name": "Tape", "quantity": 2, "unit_cost": 1})
    ledger.create({"name": "Glue", "quantity": 0, "unit_cost": 1})
    assert ledger.available() == [stocked]


def test_legacy_records_are_readable(store: MemoryStore, ledger: ItemLedger) -> None:
    store.put_raw(
        ITEMS,
        '[{"id": "item_1", "name": "Old", "category": "Tools", "quantity": 3,'
        ' "unitCost": 1.5, "dateAdded": "2023-01-01T00:00:00.000Z"}]',
    )
    item = ledger.get("item_1")
    assert item is not None
    assert item.unit_cost == Decimal("1.5")
    assert ledger.update("item_1", {"quantity": 4})
    assert ledger.get("item_1").quantity == 4
    assert ledger.get("item_1").unit_cost == Decimal("1.5")


def test_total_value_is_quantity_times_cost(ledger: ItemLedger) -> None:
    item = ledger.create({"name": "Widget", "quantity": 10, "unit_cost": "2.50"})
    assert item.total_value == Decimal("25.00")
    assert "total_value" not in item.to_dict()

    empty = ledger.create({"name": "Glue", "quantity": 0, "unit_cost": "4.00"})
    assert empty.total_value == Decimal("0")


def test_non_finite_cost_record_is_skipped(store: MemoryStore, ledger: ItemLedger) -> None:
    store.put_raw(
        ITEMS,
        '[{"id": "item_nan", "name": "Broken", "quantity": 1, "unit_cost": "NaN"},'
        ' {"id": "item_inf", "name": "Broken", "quantity": 1, "unitCost": "Infinity"}]',
    )
    assert ledger.list() == []
    assert ledger.get("item_nan") is None
    assert ledger.get("item_inf") is None


def test_update_of_unreadable_record_raises_storage_error(
    store: MemoryStore, ledger: ItemLedger
) -> None:
    raw = '[{"id": "x", "name": "A", "quantity": "abc", "unitCost": 1}]'
    store.put_raw(ITEMS, raw)
    assert ledger.get("x") is None

    with pytest.raises(StorageError, match="unreadable item record: x") as excinfo:
        ledger.update("x", {"name": "B"})
    assert isinstance(excinfo.value.__cause__, ValueError)
    assert store.get_raw(ITEMS) == raw
