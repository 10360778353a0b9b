"""
Invoice numbers and default dates for new drafts.

Numbers look like INV-2610-004: two-digit year, two-digit month, then the
count of known invoices plus one. They come from the local list, not from a
persisted counter, so two drafts opened at the same time can collide.
"""

from datetime import date, timedelta
from typing import Optional, Tuple


def generate_invoice_number(existing_count: int, today: Optional[date] = None) -> str:
    """Build the display number for the next invoice."""
    today = today or date.today()
    return f"INV-{today:%y%m}-{existing_count + 1:03d}"


def default_dates(today: Optional[date] = None, due_in_days: int = 30) -> Tuple[date, date]:
    """Issue date is today; due date follows the payment terms."""
    today = today or date.today()
    return today, today + timedelta(days=due_in_days)
