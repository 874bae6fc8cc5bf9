"""Inventory service facade consumed by the presentation layer.

Every function opens the configured store, builds the ledgers on top of it
and performs a single operation, so callers (a form handler, a Tauri command,
a FastAPI route) need no state of their own.  Pass ``db_path`` to target a
specific SQLite file or ``store`` to supply any :class:`InventoryStore`, for
instance a :class:`~stockroom.storage.MemoryStore` in tests.

Business-rule failures raise the exceptions from :mod:`stockroom.errors`
before anything is written.  Boolean results mean "found and changed".
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Iterable, Mapping

from config.inventory import get_db_path
from stockroom import reports
from stockroom.categories import CategoryRegistry
from stockroom.errors import (
    CategoryInUseError,
    InsufficientStockError,
    InventoryError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from stockroom.items import ItemLedger
from stockroom.models import Item, Withdrawal, WithdrawalQuote
from stockroom.storage import InventoryStore, SQLiteStore
from stockroom.withdrawals import WithdrawalLedger

__all__ = [
    "CategoryInUseError",
    "InsufficientStockError",
    "InventoryError",
    "NotFoundError",
    "StorageError",
    "ValidationError",
    "add_category",
    "create_item",
    "delete_category",
    "delete_item",
    "filter_withdrawals",
    "generate_report",
    "get_item",
    "get_snapshot",
    "list_available_items",
    "list_categories",
    "list_items",
    "list_withdrawals",
    "preview_withdrawal",
    "reset_database",
    "search_items",
    "summarize",
    "update_item",
    "withdraw",
]


@dataclass(frozen=True, slots=True)
class _Ledgers:
    store: InventoryStore
    items: ItemLedger
    categories: CategoryRegistry
    withdrawals: WithdrawalLedger


def _resolve_store(
    db_path: str | Path | None, store: InventoryStore | None
) -> InventoryStore:
    if store is not None:
        return store
    return SQLiteStore(db_path if db_path is not None else get_db_path())


def _open(
    db_path: str | Path | None = None, store: InventoryStore | None = None
) -> _Ledgers:
    backend = _resolve_store(db_path, store)
    items = ItemLedger(backend)
    return _Ledgers(
        store=backend,
        items=items,
        categories=CategoryRegistry(backend, items),
        withdrawals=WithdrawalLedger(backend, items),
    )


# ---------------------------------------------------------------------------
# Items.


def create_item(
    draft: Mapping[str, Any],
    *,
    db_path: str | Path | None = None,
    store: InventoryStore | None = None,
) -> Item:
    return _open(db_path, store).items.create(draft)


def update_item(
    item_id: str,
    patch: Mapping[str, Any],
    *,
    db_path: str | Path | None = None,
    store: InventoryStore | None = None,
) -> bool:
    return _open(db_path, store).items.update(item_id, patch)


def delete_item(
    item_id: str,
    *,
    db_path: str | Path | None = None,
    store: InventoryStore | None = None,
) -> bool:
    return _open(db_path, store).items.delete(item_id)


def get_item(
    item_id: str,
    *,
    db_path: str | Path | None = None,
    store: InventoryStore | None = None,
) -> Item | None:
    return _open(db_path, store).items.get(item_id)


def list_items(
    *, db_path: str | Path | None = None, store: InventoryStore | None = None
) -> list[Item]:
    return _open(db_path, store).items.list()


def search_items(
    term: str | None,
    *,
    db_path: str | Path | None = None,
    store: InventoryStore | None = None,
) -> list[Item]:
    """Return items whose name or category contains ``term`` (any case)."""

    return _open(db_path, store).items.search(term)


def list_available_items(
    *, db_path: str | Path | None = None, store: InventoryStore | None = None
) -> list[Item]:
    """Return items that still have stock to withdraw."""

    return _open(db_path, store).items.available()


# ---------------------------------------------------------------------------
# Categories.


def add_category(
    name: str,
    *,
    db_path: str | Path | None = None,
    store: InventoryStore | None = None,
) -> bool:
    return _open(db_path, store).categories.add(name)


def delete_category(
    name: str,
    *,
    db_path: str | Path | None = None,
    store: InventoryStore | None = None,
) -> bool:
    return _open(db_path, store).categories.delete(name)


def list_categories(
    *, db_path: str | Path | None = None, store: InventoryStore | None = None
) -> list[str]:
    return _open(db_path, store).categories.list()


# ---------------------------------------------------------------------------
# Withdrawals and reports.


def withdraw(
    item_id: str,
    quantity: Any,
    notes: str | None = "",
    *,
    db_path: str | Path | None = None,
    store: InventoryStore | None = None,
) -> Withdrawal:
    return _open(db_path, store).withdrawals.withdraw(item_id, quantity, notes)


def preview_withdrawal(
    item_id: str,
    quantity: Any,
    *,
    db_path: str | Path | None = None,
    store: InventoryStore | None = None,
) -> WithdrawalQuote:
    return _open(db_path, store).withdrawals.preview(item_id, quantity)


def list_withdrawals(
    *, db_path: str | Path | None = None, store: InventoryStore | None = None
) -> list[Withdrawal]:
    return _open(db_path, store).withdrawals.list()


def filter_withdrawals(
    date_start: str | date | None = None,
    date_end: str | date | None = None,
    category: str | None = None,
    *,
    db_path: str | Path | None = None,
    store: InventoryStore | None = None,
) -> list[Withdrawal]:
    return _open(db_path, store).withdrawals.filter(date_start, date_end, category)


def summarize(withdrawals: Iterable[Withdrawal]) -> reports.WithdrawalSummary:
    return reports.summarize(withdrawals)


def generate_report(
    date_start: str | date | None = None,
    date_end: str | date | None = None,
    category: str | None = None,
    *,
    db_path: str | Path | None = None,
    store: InventoryStore | None = None,
) -> reports.WithdrawalReport:
    """Filter the withdrawal log and return its summary and history."""

    ledgers = _open(db_path, store)
    return reports.build_report(ledgers.withdrawals, date_start, date_end, category)


# ---------------------------------------------------------------------------
# Maintenance.


def get_snapshot(
    *, db_path: str | Path | None = None, store: InventoryStore | None = None
) -> dict[str, Any]:
    """Return every collection as plain dictionaries.

    Item entries also carry a derived ``total_value`` (quantity times unit cost).
    """

    ledgers = _open(db_path, store)
    return {
        "items": [
            {**item.to_dict(), "total_value": str(item.total_value)}
            for item in ledgers.items.list()
        ],
        "categories": ledgers.categories.list(),
        "withdrawals": [w.to_dict() for w in ledgers.withdrawals.list()],
    }


def reset_database(
    *, db_path: str | Path | None = None, store: InventoryStore | None = None
) -> None:
    _resolve_store(db_path, store).reset()
