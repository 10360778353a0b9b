"""
Form validation for invoices.

Runs before every save. The result is a plain mapping of field key to a
message so the form can show each error next to its input:

    {"client_email": "Email address is invalid",
     "item-0-description": "Description is required",
     "items": "Please complete all item details"}

Due dates earlier than the issue date are accepted on purpose; the form has
never enforced an ordering.
"""

from typing import Dict
import logging

from email_validator import validate_email, EmailNotValidError

from .calculator import to_number
from .exceptions import InvoiceValidationError
from .models import Invoice

logger = logging.getLogger(__name__)


class InvoiceFormValidator:
    """
    Field-level checks on a candidate invoice.

    Rough grouping:
    - client: name and email present, email well formed
    - dates: issue and due date present
    - items: every line has a description, no negative quantity or rate
    - tax: rate between 0 and 100
    """

    REQUIRED_DATES = {
        "issue_date": "Issue date is required",
        "due_date": "Due date is required",
    }
    MAX_TAX_RATE = 100

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------
    def validate(self, invoice: Invoice) -> Dict[str, str]:
        """Run all checks for one invoice. Empty dict means valid."""
        errors: Dict[str, str] = {}

        errors.update(self._check_client(invoice))
        errors.update(self._check_dates(invoice))
        errors.update(self._check_items(invoice))
        errors.update(self._check_tax_rate(invoice))

        if errors:
            logger.debug("Invoice %s failed validation: %s", invoice.invoice_number, sorted(errors))
        return errors

    def ensure_valid(self, invoice: Invoice) -> None:
        """Raise InvoiceValidationError if the invoice has any field errors."""
        errors = self.validate(invoice)
        if errors:
            raise InvoiceValidationError(errors)

    # ------------------------------------------------------------------
    # Individual rule implementations
    # ------------------------------------------------------------------
    def _check_client(self, invoice: Invoice) -> Dict[str, str]:
        errors: Dict[str, str] = {}

        if not invoice.client_name.strip():
            errors["client_name"] = "Client name is required"

        email = invoice.client_email.strip()
        if not email:
            errors["client_email"] = "Client email is required"
        elif not self._is_valid_email(email):
            errors["client_email"] = "Email address is invalid"

        return errors

    def _check_dates(self, invoice: Invoice) -> Dict[str, str]:
        errors: Dict[str, str] = {}

        for field_name, message in self.REQUIRED_DATES.items():
            if getattr(invoice, field_name) is None:
                errors[field_name] = message

        return errors

    def _check_items(self, invoice: Invoice) -> Dict[str, str]:
        """Every item needs a description and non-negative numbers; one summary error on top."""
        errors: Dict[str, str] = {}

        for idx, item in enumerate(invoice.items):
            if not item.description.strip():
                errors[f"item-{idx}-description"] = "Description is required"
            # non-numeric input counts as 0, which is allowed
            if to_number(item.quantity) < 0:
                errors[f"item-{idx}-quantity"] = "Quantity cannot be negative"
            if to_number(item.rate) < 0:
                errors[f"item-{idx}-rate"] = "Rate cannot be negative"

        if errors:
            errors["items"] = "Please complete all item details"

        return errors

    def _check_tax_rate(self, invoice: Invoice) -> Dict[str, str]:
        if not 0 <= to_number(invoice.tax_rate) <= self.MAX_TAX_RATE:
            return {"tax_rate": "Tax rate must be between 0 and 100"}
        return {}

    @staticmethod
    def _is_valid_email(email: str) -> bool:
        # syntax only, no DNS lookups
        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError:
            return False
        return True
