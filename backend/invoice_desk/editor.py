"""
Invoice form session.

InvoiceEditor holds the invoice being created or edited and keeps its
totals current: every item or tax-rate change is followed by an explicit
recompute(). Edits to other fields leave the totals alone.
"""

import logging
from datetime import date
from typing import Any, Dict, Optional

from .calculator import apply_totals
from .exceptions import InvoiceDeskError
from .models import Invoice, LineItem
from .numbering import default_dates, generate_invoice_number
from .validator import InvoiceFormValidator

logger = logging.getLogger(__name__)

ITEM_FIELDS = {"description", "quantity", "rate"}
# derived or lifecycle-owned fields the form may not set directly
READ_ONLY_FIELDS = {"id", "invoice_number", "items", "subtotal", "tax_amount", "total", "status", "created_at"}


class EditorError(InvoiceDeskError):
    """An edit the form does not allow (last item, read-only field...)."""


class InvoiceEditor:
    def __init__(
        self,
        default_tax_rate: float = 18.0,
        payment_terms_days: int = 30,
        validator: Optional[InvoiceFormValidator] = None,
    ):
        self.default_tax_rate = default_tax_rate
        self.payment_terms_days = payment_terms_days
        self.validator = validator or InvoiceFormValidator()

        self.invoice = self._blank()
        self.is_editing = False
        self.errors: Dict[str, str] = {}

    def _blank(self) -> Invoice:
        return apply_totals(Invoice(tax_rate=self.default_tax_rate, items=[LineItem()]))

    @property
    def current_invoice_id(self) -> Optional[str]:
        return self.invoice.id if self.is_editing else None

    # ------------------------------------------------------------------
    # Opening the form
    # ------------------------------------------------------------------
    def reset(self) -> None:
        self.invoice = self._blank()
        self.is_editing = False
        self.errors = {}

    def open_new(self, existing_count: int, today: Optional[date] = None) -> Invoice:
        """Start a fresh draft with a generated number and default dates."""
        self.reset()
        issue_date, due_date = default_dates(today, self.payment_terms_days)
        self.invoice = self.invoice.model_copy(
            update={
                "invoice_number": generate_invoice_number(existing_count, today),
                "issue_date": issue_date,
                "due_date": due_date,
            }
        )
        return self.invoice

    def open_existing(self, invoice: Invoice) -> Invoice:
        if not invoice.id:
            raise EditorError("Only saved invoices can be edited")
        self.reset()
        items = invoice.items or [LineItem()]
        self.invoice = apply_totals(invoice.model_copy(update={"items": items}))
        self.is_editing = True
        return self.invoice

    # ------------------------------------------------------------------
    # Field edits
    # ------------------------------------------------------------------
    def set_field(self, name: str, value: Any) -> Invoice:
        """Change a plain field (client, dates, notes). No recompute."""
        if name == "tax_rate":
            return self.set_tax_rate(value)
        if name in READ_ONLY_FIELDS or name not in Invoice.model_fields:
            raise EditorError(f"Field cannot be edited: {name}")

        data = self.invoice.model_dump()
        data[name] = value
        self.invoice = Invoice.model_validate(data)
        self.errors.pop(name, None)
        return self.invoice

    def set_tax_rate(self, value: Any) -> Invoice:
        data = self.invoice.model_dump()
        data["tax_rate"] = value
        self.invoice = apply_totals(Invoice.model_validate(data))
        self.errors.pop("tax_rate", None)
        return self.invoice

    # ------------------------------------------------------------------
    # Line items
    # ------------------------------------------------------------------
    def add_item(self) -> Invoice:
        items = list(self.invoice.items) + [LineItem()]
        return self._replace_items(items)

    def update_item(self, index: int, **fields: Any) -> Invoice:
        unknown = set(fields) - ITEM_FIELDS
        if unknown:
            raise EditorError(f"Unknown item field(s): {', '.join(sorted(unknown))}")

        items = list(self.invoice.items)
        self._check_index(index)
        items[index] = LineItem.model_validate({**items[index].model_dump(), **fields})
        return self._replace_items(items)

    def remove_item(self, index: int) -> Invoice:
        """Drop one line. The form always keeps at least one."""
        self._check_index(index)
        if len(self.invoice.items) <= 1:
            raise EditorError("An invoice needs at least one item")

        items = list(self.invoice.items)
        del items[index]
        return self._replace_items(items)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.invoice.items):
            raise EditorError(f"No item at position {index}")

    def _replace_items(self, items) -> Invoice:
        self.invoice = apply_totals(self.invoice.model_copy(update={"items": items}))
        return self.invoice

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    def validate(self) -> Dict[str, str]:
        self.errors = self.validator.validate(self.invoice)
        return self.errors

    @property
    def is_valid(self) -> bool:
        return not self.validate()
