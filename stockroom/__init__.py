"""Inventory and withdrawal ledger for a single-user stockroom."""

from .categories import DEFAULT_CATEGORIES, CategoryRegistry
from .errors import (
    CategoryInUseError,
    InsufficientStockError,
    InventoryError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from .items import ItemLedger
from .models import Item, Withdrawal, WithdrawalQuote
from .reports import (
    MostWithdrawn,
    WithdrawalReport,
    WithdrawalSummary,
    build_report,
    history,
    summarize,
)
from .storage import InventoryStore, MemoryStore, SQLiteStore
from .withdrawals import WithdrawalLedger

__all__ = [
    "DEFAULT_CATEGORIES",
    "CategoryInUseError",
    "CategoryRegistry",
    "InsufficientStockError",
    "InventoryError",
    "InventoryStore",
    "Item",
    "ItemLedger",
    "MemoryStore",
    "MostWithdrawn",
    "NotFoundError",
    "SQLiteStore",
    "StorageError",
    "ValidationError",
    "Withdrawal",
    "WithdrawalLedger",
    "WithdrawalQuote",
    "WithdrawalReport",
    "WithdrawalSummary",
    "build_report",
    "history",
    "summarize",
]
