"""Read-side aggregation over withdrawal records."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Iterable, Sequence

from .errors import ValidationError
from .formatting import format_currency
from .models import Withdrawal

if TYPE_CHECKING:
    from .withdrawals import WithdrawalLedger

__all__ = [
    "MostWithdrawn",
    "WithdrawalReport",
    "WithdrawalSummary",
    "build_report",
    "history",
    "summarize",
]

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True, slots=True)
class MostWithdrawn:
    item_name: str
    quantity: int


@dataclass(frozen=True, slots=True)
class WithdrawalSummary:
    count: int
    total_cost: Decimal
    total_quantity: int
    average_cost: Decimal | None
    most_withdrawn: MostWithdrawn | None

    @classmethod
    def empty(cls) -> "WithdrawalSummary":
        return cls(
            count=0,
            total_cost=Decimal("0"),
            total_quantity=0,
            average_cost=None,
            most_withdrawn=None,
        )

    @property
    def has_data(self) -> bool:
        return self.count > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "total_cost": str(self.total_cost),
            "total_quantity": self.total_quantity,
            "average_cost": None if self.average_cost is None else str(self.average_cost),
            "most_withdrawn": None
            if self.most_withdrawn is None
            else {
                "item_name": self.most_withdrawn.item_name,
                "quantity": self.most_withdrawn.quantity,
            },
            "has_data": self.has_data,
        }

    def describe(self) -> list[str]:
        """Return the summary as display lines."""

        if not self.has_data:
            return ["No data available for the selected filters."]
        lines = [
            f"Total Withdrawals: {self.count}",
            f"Total Cost: {format_currency(self.total_cost)}",
            f"Items Withdrawn: {self.total_quantity}",
            f"Average Cost: {format_currency(self.average_cost)}",
        ]
        if self.most_withdrawn is not None:
            lines.append(
                f"Most Withdrawn: {self.most_withdrawn.item_name}"
                f" ({self.most_withdrawn.quantity})"
            )
        return lines


@dataclass(frozen=True, slots=True)
class WithdrawalReport:
    summary: WithdrawalSummary
    history: tuple[Withdrawal, ...]
    filters: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "history": [withdrawal.to_dict() for withdrawal in self.history],
            "filters": dict(self.filters),
        }


def summarize(withdrawals: Iterable[Withdrawal]) -> WithdrawalSummary:
    """Compute totals for ``withdrawals``.

    An empty input yields :meth:`WithdrawalSummary.empty` rather than an
    undefined average.  The most withdrawn item is the name with the largest
    summed quantity; ties go to the alphabetically first name.
    """

    records = list(withdrawals)
    if not records:
        return WithdrawalSummary.empty()

    total_cost = sum((w.total_cost for w in records), Decimal("0"))
    total_quantity = sum(w.quantity for w in records)
    per_item: dict[str, int] = defaultdict(int)
    for withdrawal in records:
        per_item[withdrawal.item_name] += withdrawal.quantity
    name, quantity = min(per_item.items(), key=lambda entry: (-entry[1], entry[0]))

    return WithdrawalSummary(
        count=len(records),
        total_cost=total_cost,
        total_quantity=total_quantity,
        average_cost=total_cost / len(records),
        most_withdrawn=MostWithdrawn(item_name=name, quantity=quantity),
    )


def history(withdrawals: Iterable[Withdrawal]) -> list[Withdrawal]:
    """Return ``withdrawals`` newest first.

    Dates are compared as instants, so mixed precisions and offsets order
    correctly.  Records with an unreadable date go last.
    """

    return sorted(withdrawals, key=_history_key, reverse=True)


def _history_key(withdrawal: Withdrawal) -> tuple[bool, datetime, str]:
    try:
        return True, withdrawal.timestamp, withdrawal.id
    except ValidationError:
        return False, _OLDEST, withdrawal.id


def build_report(
    ledger: "WithdrawalLedger",
    start: Any = None,
    end: Any = None,
    category: str | None = None,
) -> WithdrawalReport:
    selected: Sequence[Withdrawal] = ledger.filter(start, end, category)
    filters = {
        key: value
        for key, value in (("start", start), ("end", end), ("category", category))
        if value not in (None, "")
    }
    return WithdrawalReport(
        summary=summarize(selected),
        history=tuple(history(selected)),
        filters=filters,
    )
