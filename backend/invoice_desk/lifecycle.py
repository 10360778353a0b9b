r"""
Status lifecycle for invoices.

    draft --mark_sent--> sent --mark_paid--> paid
      \                   |
       +--mark_overdue----+--> overdue

paid is terminal. mark_overdue exists only as a programmatic transition and
is never offered as a user action.
"""

import logging
from typing import Dict, List, NamedTuple, Tuple

from .exceptions import InvalidTransitionError
from .models import Invoice, InvoiceStatus

logger = logging.getLogger(__name__)

MARK_SENT = "mark_sent"
MARK_PAID = "mark_paid"
MARK_OVERDUE = "mark_overdue"


class Transition(NamedTuple):
    sources: Tuple[InvoiceStatus, ...]
    target: InvoiceStatus
    label: str
    user_facing: bool


TRANSITIONS: Dict[str, Transition] = {
    MARK_SENT: Transition((InvoiceStatus.DRAFT,), InvoiceStatus.SENT, "Mark as Sent", True),
    MARK_PAID: Transition((InvoiceStatus.SENT,), InvoiceStatus.PAID, "Mark as Paid", True),
    MARK_OVERDUE: Transition(
        (InvoiceStatus.DRAFT, InvoiceStatus.SENT), InvoiceStatus.OVERDUE, "Mark as Overdue", False
    ),
}


class InvoiceLifecycle:
    """Gatekeeper for status changes."""

    def available_actions(self, status: InvoiceStatus) -> List[str]:
        """User-facing actions for a status: at most one forward step."""
        status = InvoiceStatus(status)
        return [
            name
            for name, t in TRANSITIONS.items()
            if t.user_facing and status in t.sources
        ]

    def can_apply(self, invoice: Invoice, action: str) -> bool:
        transition = TRANSITIONS.get(action)
        if transition is None or not invoice.id:
            return False
        return invoice.status in transition.sources

    def transition(self, invoice: Invoice, action: str) -> Invoice:
        """Return a copy of the invoice moved to the action's target status."""
        transition = TRANSITIONS.get(action)
        if transition is None:
            raise InvalidTransitionError(f"Unknown action: {action}")

        if not invoice.id:
            raise InvalidTransitionError(
                f"Invoice must be saved before '{transition.label}'"
            )

        if invoice.status not in transition.sources:
            raise InvalidTransitionError(
                f"Cannot '{transition.label}' an invoice that is {invoice.status.value}"
            )

        logger.info(
            "Invoice %s: %s -> %s", invoice.id, invoice.status.value, transition.target.value
        )
        return invoice.model_copy(update={"status": transition.target})

    def mark_sent(self, invoice: Invoice) -> Invoice:
        return self.transition(invoice, MARK_SENT)

    def mark_paid(self, invoice: Invoice) -> Invoice:
        return self.transition(invoice, MARK_PAID)

    def mark_overdue(self, invoice: Invoice) -> Invoice:
        return self.transition(invoice, MARK_OVERDUE)


def action_label(action: str) -> str:
    """Button text for an action name."""
    return TRANSITIONS[action].label
