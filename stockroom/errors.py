"""Exceptions raised by the stockroom ledgers."""

from __future__ import annotations

__all__ = [
    "InventoryError",
    "ValidationError",
    "NotFoundError",
    "InsufficientStockError",
    "CategoryInUseError",
    "StorageError",
]


class InventoryError(RuntimeError):
    """Base error for the inventory ledgers."""


class ValidationError(InventoryError):
    """Raised when input cannot be parsed or violates a field rule."""


class NotFoundError(InventoryError):
    """Raised when a referenced item cannot be located."""


class InsufficientStockError(InventoryError):
    """Raised when a withdrawal asks for more than the item holds."""

    def __init__(self, item_id: str, requested: int, available: int) -> None:
        super().__init__(
            f"Insufficient stock. Available: {available} (requested {requested})"
        )
        self.item_id = item_id
        self.requested = requested
        self.available = available


class CategoryInUseError(InventoryError):
    """Raised when deleting a category that items still reference."""

    def __init__(self, category: str, item_count: int) -> None:
        super().__init__(
            f"Cannot delete category '{category}': it is used by {item_count} item(s)"
        )
        self.category = category
        self.item_count = item_count


class StorageError(InventoryError):
    """Raised when persisted state cannot be written."""
