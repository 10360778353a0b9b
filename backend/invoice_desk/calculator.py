"""
Invoice totals.

recompute() is the single place where item amounts, subtotal, tax and total
are derived. Callers run it after every change to the item list or the tax
rate; nothing else touches the money fields.

Values keep full float precision here. Rounding to 2 decimals only happens
when amounts are formatted for display (see formatting.py).
"""

import math
import re
from typing import List, NamedTuple, Sequence

from .models import Invoice, LineItem

# leading numeric prefix, same leniency as a browser number parser
_NUMBER_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


class InvoiceTotals(NamedTuple):
    items: List[LineItem]
    subtotal: float
    tax_amount: float
    total: float


def to_number(value) -> float:
    """
    Coerce raw form input into a float.

    Empty, non-numeric, NaN and infinite values all become 0 so that a
    total can never turn into NaN.
    """
    if value is None or isinstance(value, bool):
        return 0.0

    if isinstance(value, (int, float)):
        number = float(value)
    else:
        match = _NUMBER_PREFIX.match(str(value))
        if not match:
            return 0.0
        number = float(match.group(1))

    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def recompute(items: Sequence[LineItem], tax_rate) -> InvoiceTotals:
    """Derive item amounts and invoice totals. Input items are not mutated."""
    new_items: List[LineItem] = []
    subtotal = 0.0

    for item in items:
        amount = to_number(item.quantity) * to_number(item.rate)
        subtotal += amount
        new_items.append(item.model_copy(update={"amount": amount}))

    tax_amount = subtotal * (to_number(tax_rate) / 100)
    total = subtotal + tax_amount

    return InvoiceTotals(new_items, subtotal, tax_amount, total)


def apply_totals(invoice: Invoice) -> Invoice:
    """Return a copy of the invoice with freshly derived money fields."""
    totals = recompute(invoice.items, invoice.tax_rate)
    return invoice.model_copy(
        update={
            "items": totals.items,
            "subtotal": totals.subtotal,
            "tax_amount": totals.tax_amount,
            "total": totals.total,
        }
    )
