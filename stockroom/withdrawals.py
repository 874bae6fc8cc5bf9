"""Withdrawal ledger.

A withdrawal removes stock from an item and appends an immutable record of
what was taken and what it cost at that moment.  Cost follows the last-cost
policy: the item's current ``unit_cost`` is frozen onto the record.  The
record append, the item decrement and the id sequence bump are staged in one
store transaction, so either all of them persist or none do.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
import logging
from typing import Any, Callable, Iterable

from .errors import InsufficientStockError, NotFoundError, ValidationError
from .formatting import format_currency
from .items import ItemLedger
from .models import (
    Withdrawal,
    WithdrawalQuote,
    format_timestamp,
    parse_quantity,
    parse_timestamp,
    utc_now,
)
from .storage import WITHDRAWALS, InventoryStore

__all__ = ["RANGE_END", "RANGE_START", "WithdrawalLedger", "date_range_bounds"]

logger = logging.getLogger(__name__)

RANGE_START = datetime(1970, 1, 1, tzinfo=timezone.utc)
RANGE_END = datetime(2100, 12, 31, tzinfo=timezone.utc)


def date_range_bounds(start: Any = None, end: Any = None) -> tuple[datetime, datetime]:
    """Return inclusive UTC bounds for a date-range filter.

    The end bound is pushed to the last millisecond of its calendar day so a
    filter ending on a given day keeps everything recorded that day.
    """

    lower = parse_timestamp(start) if start not in (None, "") else RANGE_START
    upper = parse_timestamp(end) if end not in (None, "") else RANGE_END
    upper = datetime.combine(upper.date(), time(23, 59, 59, 999000), tzinfo=timezone.utc)
    return lower, upper


class WithdrawalLedger:
    def __init__(
        self,
        store: InventoryStore,
        items: ItemLedger,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._items = items
        self._clock = clock

    def withdraw(self, item_id: str, quantity: Any, notes: str | None = "") -> Withdrawal:
        """Remove ``quantity`` units from ``item_id`` and record the withdrawal.

        Raises :class:`ValidationError` for a non-positive or non-integer
        quantity, :class:`NotFoundError` for an unknown item and
        :class:`InsufficientStockError` when the item holds fewer units than
        requested.  Nothing is written in any of those cases.
        """

        amount = parse_quantity(quantity, positive=True)
        with self._store.transaction() as session:
            item = self._items.fetch(session, item_id)
            if amount > item.quantity:
                logger.warning(
                    "Rejected withdrawal of %d from %s: %d available",
                    amount,
                    item_id,
                    item.quantity,
                )
                raise InsufficientStockError(item_id, amount, item.quantity)
            withdrawal = Withdrawal(
                id=session.next_id("withdrawal", "wdr"),
                item_id=item.id,
                item_name=item.name,
                category=item.category,
                quantity=amount,
                unit_cost=item.unit_cost,
                total_cost=amount * item.unit_cost,
                date=format_timestamp(self._clock()),
                notes=(notes or "").strip(),
            )
            records = session.load(WITHDRAWALS, [])
            records.append(withdrawal.to_dict())
            session.save(WITHDRAWALS, records)
            self._items.decrement(session, item.id, amount)
        logger.info(
            "Withdrawn %d x %s - Total: %s",
            withdrawal.quantity,
            withdrawal.item_name,
            format_currency(withdrawal.total_cost),
        )
        return withdrawal

    def preview(self, item_id: str, quantity: Any) -> WithdrawalQuote:
        """Return the cost a withdrawal would have without recording it."""

        item = self._items.get(item_id)
        if item is None:
            raise NotFoundError(f"item not found: {item_id}")
        try:
            requested = parse_quantity(quantity)
        except ValidationError:
            requested = 0
        return WithdrawalQuote(
            item_id=item.id,
            item_name=item.name,
            requested=requested,
            available=item.quantity,
            unit_cost=item.unit_cost,
            total_cost=requested * item.unit_cost,
        )

    def list(self) -> list[Withdrawal]:
        withdrawals: list[Withdrawal] = []
        for record in self._store.load(WITHDRAWALS, []):
            try:
                withdrawals.append(Withdrawal.from_dict(record))
            except (KeyError, TypeError, ValueError, ArithmeticError):
                logger.warning("Skipping unreadable withdrawal record: %r", record)
        return withdrawals

    def filter_by_date_range(
        self, start: str | date | None = None, end: str | date | None = None
    ) -> list[Withdrawal]:
        return _within(self.list(), *date_range_bounds(start, end))

    def filter_by_category(self, category: str) -> list[Withdrawal]:
        return [w for w in self.list() if w.category == category]

    def filter(
        self,
        start: str | date | None = None,
        end: str | date | None = None,
        category: str | None = None,
    ) -> list[Withdrawal]:
        withdrawals = self.list()
        if start not in (None, "") or end not in (None, ""):
            withdrawals = _within(withdrawals, *date_range_bounds(start, end))
        if category:
            withdrawals = [w for w in withdrawals if w.category == category]
        return withdrawals


def _within(
    withdrawals: Iterable[Withdrawal], lower: datetime, upper: datetime
) -> list[Withdrawal]:
    selected: list[Withdrawal] = []
    for withdrawal in withdrawals:
        try:
            when = withdrawal.timestamp
        except ValidationError:
            continue
        if lower <= when <= upper:
            selected.append(withdrawal)
    return selected
