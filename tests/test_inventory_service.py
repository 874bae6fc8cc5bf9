from decimal import Decimal
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

import service_inventory as inv


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "inventory.sqlite"


def read_ids(entries, key="id"):
    return {entry[key] for entry in entries}


def test_item_lifecycle_and_snapshot(db_path: Path) -> None:
    item = inv.create_item(
        {
            "name": "Widget",
            "category": "Tools",
            "quantity": "10",
            "unitCost": "2.50",
            "description": "Spare parts",
        },
        db_path=db_path,
    )
    assert inv.get_item(item.id, db_path=db_path) == item
    assert inv.update_item(item.id, {"description": "Shelf B"}, db_path=db_path)
    assert inv.get_item(item.id, db_path=db_path).description == "Shelf B"

    snapshot = inv.get_snapshot(db_path=db_path)
    assert read_ids(snapshot["items"]) == {item.id}
    assert snapshot["items"][0]["unit_cost"] == "2.50"
    assert snapshot["items"][0]["total_value"] == "25.00"
    assert snapshot["categories"] == ["Electronics", "Office Supplies", "Tools", "Uncategorized"]
    assert snapshot["withdrawals"] == []

    assert inv.delete_item(item.id, db_path=db_path) is True
    assert inv.delete_item(item.id, db_path=db_path) is False
    assert inv.list_items(db_path=db_path) == []


def test_withdrawal_flow_persists_across_calls(db_path: Path) -> None:
    widget = inv.create_item(
        {"name": "Widget", "category": "Tools", "quantity": 10, "unit_cost": "2.50"},
        db_path=db_path,
    )
    withdrawal = inv.withdraw(widget.id, "3", "bench", db_path=db_path)
    assert withdrawal.total_cost == Decimal("7.50")
    assert inv.get_item(widget.id, db_path=db_path).quantity == 7

    with pytest.raises(inv.InsufficientStockError) as excinfo:
        inv.withdraw(widget.id, 8, db_path=db_path)
    assert excinfo.value.available == 7
    assert inv.get_item(widget.id, db_path=db_path).quantity == 7
    assert inv.list_withdrawals(db_path=db_path) == [withdrawal]

    quote = inv.preview_withdrawal(widget.id, 7, db_path=db_path)
    assert quote.allowed and quote.total_cost == Decimal("17.50")

    inv.withdraw(widget.id, 7, db_path=db_path)
    assert inv.list_available_items(db_path=db_path) == []


def test_categories_through_service(db_path: Path) -> None:
    assert inv.add_category("Kitchen", db_path=db_path) is True
    assert inv.add_category("KITCHEN", db_path=db_path) is False
    inv.create_item(
        {"name": "Kettle", "category": "Kitchen", "quantity": 1, "unit_cost": 20},
        db_path=db_path,
    )
    with pytest.raises(inv.CategoryInUseError):
        inv.delete_category("Kitchen", db_path=db_path)
    assert inv.delete_category("Electronics", db_path=db_path) is True
    assert inv.list_categories(db_path=db_path) == [
        "Office Supplies",
        "Tools",
        "Uncategorized",
        "Kitchen",
    ]


def test_search_and_reports(db_path: Path) -> None:
    drill = inv.create_item(
        {"name": "Cordless Drill", "category": "Tools", "quantity": 4, "unit_cost": 80},
        db_path=db_path,
    )
    paper = inv.create_item(
        {"name": "Printer Paper", "category": "Office Supplies", "quantity": 20, "unit_cost": "4.25"},
        db_path=db_path,
    )
    assert read_ids(i.to_dict() for i in inv.search_items("paper", db_path=db_path)) == {paper.id}

    inv.withdraw(drill.id, 1, db_path=db_path)
    inv.withdraw(paper.id, 4, db_path=db_path)

    tools_only = inv.filter_withdrawals(category="Tools", db_path=db_path)
    assert [w.item_id for w in tools_only] == [drill.id]

    summary = inv.summarize(inv.list_withdrawals(db_path=db_path))
    assert summary.count == 2
    assert summary.total_cost == Decimal("97.00")
    assert summary.most_withdrawn.item_name == "Printer Paper"

    report = inv.generate_report(category="Office Supplies", db_path=db_path)
    assert report.summary.total_quantity == 4
    assert [w.item_name for w in report.history] == ["Printer Paper"]


def test_validation_errors_surface(db_path: Path) -> None:
    with pytest.raises(inv.ValidationError):
        inv.create_item({"name": "Bad", "quantity": "NaN", "unit_cost": 1}, db_path=db_path)
    with pytest.raises(inv.NotFoundError):
        inv.withdraw("itm_missing", 1, db_path=db_path)
    assert inv.list_items(db_path=db_path) == []


def test_default_path_comes_from_config(tmp_path: Path, monkeypatch) -> None:
    target = tmp_path / "configured" / "stock.sqlite"
    monkeypatch.setenv("STOCKROOM_DB_PATH", str(target))
    inv.add_category("Garden")
    assert target.exists()
    assert "Garden" in inv.list_categories()


def test_reset_database_removes_storage(db_path: Path) -> None:
    inv.add_category("Garden", db_path=db_path)
    assert db_path.exists()
    inv.reset_database(db_path=db_path)
    assert not db_path.exists()
