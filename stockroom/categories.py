"""Category registry.

Categories are plain names.  Uniqueness is case-insensitive, while the
in-use check at delete time compares the exact string stored on each item.
Items are not validated against the registry when created or edited.
"""

from __future__ import annotations

import logging

from .errors import CategoryInUseError, ValidationError
from .items import ItemLedger
from .storage import CATEGORIES, InventoryStore

__all__ = ["DEFAULT_CATEGORIES", "CategoryRegistry"]

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = ("Electronics", "Office Supplies", "Tools", "Uncategorized")


class CategoryRegistry:
    def __init__(self, store: InventoryStore, items: ItemLedger) -> None:
        self._store = store
        self._items = items

    def list(self) -> list[str]:
        """Return the registered names, seeded with the defaults on first use."""

        records = self._store.load(CATEGORIES, None)
        if records is None:
            return list(DEFAULT_CATEGORIES)
        return [str(name) for name in records if isinstance(name, str)]

    def exists(self, name: str) -> bool:
        lowered = (name or "").strip().lower()
        return any(existing.lower() == lowered for existing in self.list())

    def add(self, name: str) -> bool:
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValidationError("category name is required")
        with self._store.transaction() as session:
            records = session.load(CATEGORIES, None)
            if records is None:
                records = list(DEFAULT_CATEGORIES)
            lowered = cleaned.lower()
            if any(str(existing).lower() == lowered for existing in records):
                return False
            records.append(cleaned)
            session.save(CATEGORIES, records)
        logger.info("Added category %s", cleaned)
        return True

    def delete(self, name: str) -> bool:
        in_use = self._items.count_in_category(name)
        if in_use:
            logger.warning("Refusing to delete category %s used by %d item(s)", name, in_use)
            raise CategoryInUseError(name, in_use)
        with self._store.transaction() as session:
            records = session.load(CATEGORIES, None)
            if records is None:
                records = list(DEFAULT_CATEGORIES)
            remaining = [existing for existing in records if existing != name]
            if len(remaining) == len(records):
                return False
            session.save(CATEGORIES, remaining)
        logger.info("Deleted category %s", name)
        return True
