"""Display helpers for money and timestamps (USD, en-US)."""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from .models import parse_timestamp

__all__ = ["format_currency", "format_date"]

_CENT = Decimal("0.01")


def format_currency(amount: Any) -> str:
    """Return ``amount`` as ``$1,234.50`` (negative values as ``-$1.00``)."""

    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    value = value.quantize(_CENT, rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def format_date(timestamp: str | datetime) -> str:
    dt = parse_timestamp(timestamp)
    return f"{dt:%b} {dt.day}, {dt.year}, {dt:%I:%M %p}"
