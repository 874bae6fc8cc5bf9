"""Item ledger: create, edit and remove stock-keeping units."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
import logging
from typing import Any, Callable, Mapping

from .errors import NotFoundError, StorageError, ValidationError
from .models import Item, format_timestamp, parse_cost, parse_quantity, utc_now
from .storage import ITEMS, InventoryStore, StoreSession

__all__ = ["DEFAULT_CATEGORY", "ItemLedger"]

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "Uncategorized"

_IMMUTABLE_FIELDS = ("id", "date_added", "dateAdded")


def _prepare_item_payload(data: Mapping[str, Any]) -> dict[str, Any]:
    name = str(data.get("name") or "").strip()
    if not name:
        raise ValidationError("item name is required")
    category = str(data.get("category") or "").strip() or DEFAULT_CATEGORY
    quantity = parse_quantity(data.get("quantity"))
    cost = data.get("unit_cost")
    if cost is None:
        cost = data.get("unitCost")
    unit_cost = parse_cost(cost)
    description = str(data.get("description") or "").strip()
    return {
        "name": name,
        "category": category,
        "quantity": quantity,
        "unit_cost": unit_cost,
        "description": description,
    }


class ItemLedger:
    """CRUD over item records held in the ``items`` collection."""

    def __init__(
        self,
        store: InventoryStore,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._clock = clock

    # Reads ---------------------------------------------------------------

    def list(self) -> list[Item]:
        return _decode_items(self._store.load(ITEMS, []))

    def get(self, item_id: str) -> Item | None:
        for item in self.list():
            if item.id == item_id:
                return item
        return None

    def search(self, term: str | None) -> list[Item]:
        """Return items whose name or category contains ``term``."""

        needle = (term or "").strip().lower()
        items = self.list()
        if not needle:
            return items
        return [
            item
            for item in items
            if needle in item.name.lower() or needle in item.category.lower()
        ]

    def available(self) -> list[Item]:
        return [item for item in self.list() if item.quantity > 0]

    def count_in_category(self, category: str) -> int:
        return sum(1 for item in self.list() if item.category == category)

    # Writes --------------------------------------------------------------

    def create(self, draft: Mapping[str, Any]) -> Item:
        payload = _prepare_item_payload(draft)
        with self._store.transaction() as session:
            records = session.load(ITEMS, [])
            item = Item(
                id=session.next_id("item", "itm"),
                date_added=format_timestamp(self._clock()),
                **payload,
            )
            records.append(item.to_dict())
            session.save(ITEMS, records)
        logger.info("Created item %s (%s)", item.id, item.name)
        return item

    def update(self, item_id: str, patch: Mapping[str, Any]) -> bool:
        with self._store.transaction() as session:
            records = session.load(ITEMS, [])
            index = _find(records, item_id)
            if index is None:
                return False
            before = _load_item(records, index)
            merged = before.to_dict()
            merged.update(
                {key: value for key, value in patch.items() if key not in _IMMUTABLE_FIELDS}
            )
            if "unitCost" in patch and "unit_cost" not in patch:
                merged["unit_cost"] = patch["unitCost"]
            payload = _prepare_item_payload(merged)
            after = Item(id=before.id, date_added=before.date_added, **payload)
            records[index] = after.to_dict()
            session.save(ITEMS, records)
        logger.info("Updated item %s", item_id)
        return True

    def delete(self, item_id: str) -> bool:
        with self._store.transaction() as session:
            records = session.load(ITEMS, [])
            index = _find(records, item_id)
            if index is None:
                return False
            remaining = [
                record
                for record in records
                if not (isinstance(record, Mapping) and record.get("id") == item_id)
            ]
            session.save(ITEMS, remaining)
        logger.info("Deleted item %s", item_id)
        return True

    # Used by the withdrawal ledger ---------------------------------------

    def fetch(self, session: StoreSession, item_id: str) -> Item:
        records = session.load(ITEMS, [])
        index = _find(records, item_id)
        if index is None:
            raise NotFoundError(f"item not found: {item_id}")
        return _load_item(records, index)

    def decrement(self, session: StoreSession, item_id: str, quantity: int) -> Item:
        """Stage a quantity reduction for ``item_id`` inside ``session``."""

        records = session.load(ITEMS, [])
        index = _find(records, item_id)
        if index is None:
            raise NotFoundError(f"item not found: {item_id}")
        item = _load_item(records, index)
        remaining = item.quantity - quantity
        if remaining < 0:
            raise ValidationError("quantity cannot become negative")
        after = replace(item, quantity=remaining)
        records[index] = after.to_dict()
        session.save(ITEMS, records)
        return after


def _find(records: list[Mapping[str, Any]], item_id: str) -> int | None:
    for index, record in enumerate(records):
        if isinstance(record, Mapping) and record.get("id") == item_id:
            return index
    return None


def _decode_items(records: list[Any]) -> list[Item]:
    items: list[Item] = []
    for record in records:
        try:
            items.append(Item.from_dict(record))
        except (KeyError, TypeError, ValueError, ArithmeticError):
            logger.warning("Skipping unreadable item record: %r", record)
    return items


def _load_item(records: list[Any], index: int) -> Item:
    record = records[index]
    try:
        return Item.from_dict(record)
    except (KeyError, TypeError, ValueError, ArithmeticError) as exc:
        raise StorageError(f"unreadable item record: {record.get('id')}") from exc
