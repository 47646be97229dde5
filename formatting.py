"""Display helpers for currency and percentage values."""
from __future__ import annotations

from typing import Any

from config import CURRENCY_SYMBOL
from engine import round_value


def format_currency(value: Any) -> str:
    """Format a value as a dollar amount with thousands separators, e.g. $1,200.00."""
    amount = round_value(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}{CURRENCY_SYMBOL}{abs(amount):,.2f}"


def format_percentage(value: Any) -> str:
    return f"{round_value(value):.2f}%"
