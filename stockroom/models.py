"""Record types and field parsing shared by the stockroom ledgers.

Items and withdrawals are persisted as flat JSON objects.  The dataclasses
below are the in-memory view of those objects; ``to_dict`` produces the stored
shape and ``from_dict`` reads it back.  ``from_dict`` also accepts the
camelCase field names written by the original browser application so that an
exported ``localStorage`` dump can be loaded without translation.

Input coming from forms is text.  The ``parse_*`` helpers turn that text into
typed values and raise :class:`~stockroom.errors.ValidationError` instead of
letting a half-parsed number reach persisted state.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from .errors import ValidationError

__all__ = [
    "Item",
    "Withdrawal",
    "WithdrawalQuote",
    "format_timestamp",
    "parse_cost",
    "parse_quantity",
    "parse_timestamp",
    "utc_now",
]


# ---------------------------------------------------------------------------
# Dataclasses modelling the persisted records.


@dataclass(frozen=True, slots=True)
class Item:
    id: str
    name: str
    category: str
    quantity: int
    unit_cost: Decimal
    date_added: str
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["unit_cost"] = str(self.unit_cost)
        return data

    @property
    def total_value(self) -> Decimal:
        """Stock value at the current cost basis."""

        return self.quantity * self.unit_cost

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Item":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            category=str(data.get("category") or ""),
            quantity=int(data.get("quantity") or 0),
            unit_cost=_stored_cost(_pick(data, "unit_cost", "unitCost", default="0")),
            date_added=str(_pick(data, "date_added", "dateAdded", default="")),
            description=str(data.get("description") or ""),
        )


@dataclass(frozen=True, slots=True)
class Withdrawal:
    """Historical record of stock removed from an item.

    ``item_name``, ``category`` and ``unit_cost`` are copied from the item when
    the withdrawal is recorded and never refreshed afterwards.
    """

    id: str
    item_id: str
    item_name: str
    category: str
    quantity: int
    unit_cost: Decimal
    total_cost: Decimal
    date: str
    notes: str = ""

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["unit_cost"] = str(self.unit_cost)
        data["total_cost"] = str(self.total_cost)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Withdrawal":
        quantity = int(data.get("quantity") or 0)
        unit_cost = _stored_cost(_pick(data, "unit_cost", "unitCost", default="0"))
        total = _pick(data, "total_cost", "totalCost", default=None)
        return cls(
            id=str(data["id"]),
            item_id=str(_pick(data, "item_id", "itemId", default="")),
            item_name=str(_pick(data, "item_name", "itemName", default="")),
            category=str(data.get("category") or ""),
            quantity=quantity,
            unit_cost=unit_cost,
            total_cost=_stored_cost(total) if total is not None else quantity * unit_cost,
            date=str(data.get("date") or ""),
            notes=str(data.get("notes") or ""),
        )

    @property
    def timestamp(self) -> datetime:
        return parse_timestamp(self.date)


@dataclass(frozen=True, slots=True)
class WithdrawalQuote:
    """Prospective cost of a withdrawal, computed without writing anything."""

    item_id: str
    item_name: str
    requested: int
    available: int
    unit_cost: Decimal
    total_cost: Decimal

    @property
    def allowed(self) -> bool:
        return 0 < self.requested <= self.available

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["unit_cost"] = str(self.unit_cost)
        data["total_cost"] = str(self.total_cost)
        data["allowed"] = self.allowed
        return data


# ---------------------------------------------------------------------------
# Helper utilities.


def _pick(data: Mapping[str, Any], *keys: str, default: Any) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _stored_cost(value: Any) -> Decimal:
    amount = Decimal(str(value))
    if not amount.is_finite():
        raise ValueError(f"non-finite amount in stored record: {value!r}")
    return amount


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc).replace(microsecond=0)
    return value.isoformat().replace("+00:00", "Z")


def parse_timestamp(value: Any) -> datetime:
    """Return ``value`` as an aware UTC datetime.

    Accepts datetimes, dates (midnight) and ISO-8601 text with or without a
    trailing ``Z``.  Naive values are taken to be UTC.
    """

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime.combine(value, time.min)
    else:
        text = str(value or "").strip()
        if not text:
            raise ValidationError("timestamp is required")
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValidationError(f"invalid timestamp: {value!r}") from exc
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_quantity(value: Any, *, field: str = "quantity", positive: bool = False) -> int:
    """Parse a whole-number quantity from form input.

    Integral text such as ``"7"`` or ``" 7 "`` is accepted, as are ints and
    integral floats.  Booleans, fractions, blanks and negative numbers are not.
    """

    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a whole number")
    if isinstance(value, int):
        number = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{field} must be a whole number")
        number = int(value)
    else:
        text = str(value).strip()
        try:
            number = int(text)
        except ValueError as exc:
            raise ValidationError(f"{field} must be a whole number, got {value!r}") from exc
    if positive and number <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    if number < 0:
        raise ValidationError(f"{field} cannot be negative")
    return number


def parse_cost(value: Any, *, field: str = "unit_cost") -> Decimal:
    """Parse a non-negative, finite money amount."""

    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, Decimal):
        amount = value
    else:
        text = str(value).strip()
        try:
            amount = Decimal(text)
        except InvalidOperation as exc:
            raise ValidationError(f"{field} must be a number, got {value!r}") from exc
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    return amount
