"""
Exception types used across Invoice Desk.

Two families matter to callers:
- local problems (validation, lifecycle) that block an action
- remote problems (anything the record collaborator throws)
"""

from typing import Dict


class InvoiceDeskError(Exception):
    """Base class for everything raised by this package."""


class InvoiceValidationError(InvoiceDeskError):
    """Form validation failed; `errors` maps field keys to messages."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        super().__init__("Please fill in all required fields")


class InvalidTransitionError(InvoiceDeskError):
    """A status action is not allowed from the invoice's current state."""


class InvoiceNotFoundError(InvoiceDeskError):
    """No invoice exists with the requested id."""

    def __init__(self, invoice_id: str):
        self.invoice_id = invoice_id
        super().__init__(f"Invoice not found: {invoice_id}")


class RecordStoreError(InvoiceDeskError):
    """Raised by record collaborators when a call fails."""


class RecordNotFoundError(RecordStoreError):
    """A record id passed to the collaborator does not exist."""


class RemoteOperationError(InvoiceDeskError):
    """
    Generic "failed to X" error surfaced to users.

    The underlying collaborator error is kept as __cause__ for logging.
    """

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Failed to {operation}")
