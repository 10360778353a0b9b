"""Display helpers: currency with Indian digit grouping, short dates."""

from datetime import date, datetime
from typing import Optional, Union

from .calculator import to_number


def _group_indian(digits: str) -> str:
    # last three digits, then groups of two: 1,18,000
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_currency(amount, symbol: str = "₹") -> str:
    """Format an amount with 2 decimals, e.g. 118000 -> '₹1,18,000.00'."""
    value = to_number(amount)
    sign = "-" if value < 0 else ""
    whole, _, fraction = f"{abs(value):.2f}".partition(".")
    return f"{sign}{symbol}{_group_indian(whole)}.{fraction}"


def format_date(value: Optional[Union[date, datetime, str]]) -> str:
    """'2026-10-19' -> '19 Oct 2026'. Empty input gives an empty string."""
    if not value:
        return ""
    if isinstance(value, str):
        value = date.fromisoformat(value[:10])
    return f"{value.day} {value:%b %Y}"
