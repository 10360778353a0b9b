"""
Per-session dashboard controller.

InvoiceWorkspace is what a front end drives: it keeps the session's copy of
the invoice list, which view is showing (list, create or detail), the form
editor, and the notifications the user should see. Local state only changes
after a remote call succeeds; a failure adds an error notification and
leaves everything as it was.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional

from .config import Settings
from .dashboard import compute_dashboard_stats
from .editor import InvoiceEditor
from .exceptions import InvalidTransitionError, InvoiceNotFoundError, RemoteOperationError
from .lifecycle import MARK_OVERDUE, MARK_PAID, MARK_SENT, InvoiceLifecycle
from .models import DashboardStats, Invoice, Notification

logger = logging.getLogger(__name__)

LIST_VIEW = "list"
CREATE_VIEW = "create"
DETAIL_VIEW = "detail"

_LOG_LEVELS = {"success": logging.INFO, "info": logging.INFO, "error": logging.ERROR}

STATUS_MESSAGES = {
    MARK_SENT: "Invoice marked as sent!",
    MARK_PAID: "Invoice marked as paid!",
    MARK_OVERDUE: "Invoice marked as overdue",
}


class InvoiceWorkspace:
    def __init__(self, service, settings: Optional[Settings] = None):
        settings = settings or Settings()
        self.service = service
        self.lifecycle = service.lifecycle
        self.editor = InvoiceEditor(
            default_tax_rate=settings.default_tax_rate,
            payment_terms_days=settings.payment_terms_days,
        )

        self.invoices: List[Invoice] = []
        self.view_mode = LIST_VIEW
        self.selected: Optional[Invoice] = None
        self.busy = False
        self.notifications: List[Notification] = []

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------
    def notify(self, level: str, message: str) -> None:
        logger.log(_LOG_LEVELS.get(level, logging.INFO), "[%s] %s", level, message)
        self.notifications.append(Notification(level=level, message=message))

    @contextmanager
    def _busy(self) -> Iterator[None]:
        # the triggering control stays disabled while a call is in flight
        self.busy = True
        try:
            yield
        finally:
            self.busy = False

    # ------------------------------------------------------------------
    # List and navigation
    # ------------------------------------------------------------------
    def refresh(self) -> List[Invoice]:
        """Re-fetch the whole list. On failure the previous list stays."""
        try:
            self.invoices = self.service.list_invoices()
        except RemoteOperationError as exc:
            self.notify("error", str(exc))
        return self.invoices

    def back_to_list(self) -> None:
        self.editor.reset()
        self.selected = None
        self.view_mode = LIST_VIEW
        self.refresh()

    def start_new(self) -> Invoice:
        self.selected = None
        self.view_mode = CREATE_VIEW
        return self.editor.open_new(len(self.invoices))

    def start_edit(self, invoice_id: str) -> Optional[Invoice]:
        invoice = self._load(invoice_id)
        if invoice is None:
            return None
        self.view_mode = CREATE_VIEW
        return self.editor.open_existing(invoice)

    def view(self, invoice_id: str) -> Optional[Invoice]:
        invoice = self._load(invoice_id)
        if invoice is None:
            return None
        self.selected = invoice
        self.view_mode = DETAIL_VIEW
        return invoice

    def _load(self, invoice_id: str) -> Optional[Invoice]:
        try:
            invoice = self.service.get_invoice(invoice_id)
        except RemoteOperationError as exc:
            self.notify("error", str(exc))
            return None
        if invoice is None:
            self.notify("error", str(InvoiceNotFoundError(invoice_id)))
        return invoice

    # ------------------------------------------------------------------
    # Saving and deleting
    # ------------------------------------------------------------------
    def save(self) -> Optional[Invoice]:
        """Validate, then create or update. Returns the stored invoice."""
        if self.editor.validate():
            self.notify("error", "Please fill in all required fields")
            return None

        editing_id = self.editor.current_invoice_id
        with self._busy():
            try:
                if editing_id:
                    saved = self.service.update_invoice(editing_id, self.editor.invoice)
                else:
                    saved = self.service.create_invoice(self.editor.invoice)
            except RemoteOperationError as exc:
                self.notify("error", str(exc))
                return None

        self.notify(
            "success",
            "Invoice updated successfully!" if editing_id else "Invoice created successfully!",
        )
        self.back_to_list()
        return saved

    def delete(self, invoice_id: str) -> bool:
        with self._busy():
            try:
                self.service.delete_invoice(invoice_id)
            except RemoteOperationError as exc:
                self.notify("error", str(exc))
                return False

        self.invoices = [inv for inv in self.invoices if inv.id != invoice_id]
        if self.selected is not None and self.selected.id == invoice_id:
            self.selected = None
            self.view_mode = LIST_VIEW
        self.notify("success", "Invoice deleted successfully!")
        return True

    # ------------------------------------------------------------------
    # Status actions
    # ------------------------------------------------------------------
    def available_actions(self, invoice_id: str) -> List[str]:
        invoice = self._find(invoice_id)
        if invoice is None:
            return []
        return self.lifecycle.available_actions(invoice.status)

    def _find(self, invoice_id: str) -> Optional[Invoice]:
        if self.selected is not None and self.selected.id == invoice_id:
            return self.selected
        return next((inv for inv in self.invoices if inv.id == invoice_id), None)

    def change_status(self, invoice_id: str, action: str) -> Optional[Invoice]:
        try:
            changed = self.service.change_status(invoice_id, action)
        except (RemoteOperationError, InvalidTransitionError, InvoiceNotFoundError) as exc:
            self.notify("error", str(exc))
            return None

        self.invoices = [
            inv.model_copy(update={"status": changed.status}) if inv.id == invoice_id else inv
            for inv in self.invoices
        ]
        if self.selected is not None and self.selected.id == invoice_id:
            self.selected = self.selected.model_copy(update={"status": changed.status})

        self.notify("success", STATUS_MESSAGES[action])
        return changed

    def mark_sent(self, invoice_id: str) -> Optional[Invoice]:
        return self.change_status(invoice_id, MARK_SENT)

    def mark_paid(self, invoice_id: str) -> Optional[Invoice]:
        return self.change_status(invoice_id, MARK_PAID)

    def mark_overdue(self, invoice_id: str) -> Optional[Invoice]:
        return self.change_status(invoice_id, MARK_OVERDUE)

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------
    def stats(self) -> DashboardStats:
        return compute_dashboard_stats(self.invoices)
