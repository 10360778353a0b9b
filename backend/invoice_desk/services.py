"""
Invoice, item and client services on top of the record collaborators.

Records are stored with the hosted API's field names (camelCase, plus a
`Name` column every table has). Line items live in their own table and
point at their invoice through the `invoice` field. Editing an invoice
replaces its items wholesale: delete all, then bulk-create the current set.

Every collaborator failure is logged and re-raised as RemoteOperationError
with a generic "Failed to <operation>" message.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

from .calculator import apply_totals
from .exceptions import (
    InvoiceDeskError,
    InvoiceNotFoundError,
    RecordStoreError,
    RemoteOperationError,
)
from .lifecycle import InvoiceLifecycle
from .models import Client, Invoice, InvoiceStatus, LineItem
from .records import ID_FIELD, Record, RecordCollaborator

logger = logging.getLogger(__name__)

# model field -> record field
INVOICE_FIELDS = {
    "invoice_number": "invoiceNumber",
    "issue_date": "issueDate",
    "due_date": "dueDate",
    "client_name": "clientName",
    "client_email": "clientEmail",
    "client_address": "clientAddress",
    "notes": "notes",
    "subtotal": "subtotal",
    "tax_rate": "taxRate",
    "tax_amount": "taxAmount",
    "total": "total",
    "status": "status",
    "created_at": "createdAt",
}

ITEM_NAME_LENGTH = 50


@contextmanager
def remote_operation(operation: str) -> Iterator[None]:
    """Collapse any collaborator failure into RemoteOperationError."""
    try:
        yield
    except RecordStoreError as exc:
        logger.error("Error during %s: %s", operation, exc, exc_info=True)
        raise RemoteOperationError(operation) from exc
    except InvoiceDeskError:
        raise
    except Exception as exc:
        logger.error("Error during %s: %s", operation, exc, exc_info=True)
        raise RemoteOperationError(operation) from exc


# ----------------------------------------------------------------------
# Record <-> model conversion
# ----------------------------------------------------------------------
def invoice_to_record(invoice: Invoice) -> Record:
    data = invoice.model_dump(mode="json", exclude={"id", "items"})
    record = {INVOICE_FIELDS[name]: value for name, value in data.items()}
    record["Name"] = invoice.invoice_number
    return record


def invoice_from_record(record: Record, items: Optional[List[LineItem]] = None) -> Invoice:
    """Build an Invoice from a stored record. Items are [] unless passed."""
    fields: Dict[str, Any] = {
        name: record[key] for name, key in INVOICE_FIELDS.items() if record.get(key) is not None
    }
    return Invoice(id=str(record[ID_FIELD]), items=items or [], **fields)


def item_to_record(item: LineItem, invoice_id: str) -> Record:
    return {
        "Name": item.description[:ITEM_NAME_LENGTH],
        "description": item.description,
        "quantity": item.quantity,
        "rate": item.rate,
        "amount": item.amount,
        "invoice": invoice_id,
    }


def item_from_record(record: Record) -> LineItem:
    return LineItem(
        description=record.get("description") or "",
        quantity=record.get("quantity"),
        rate=record.get("rate"),
        amount=record.get("amount") or 0.0,
    )


# ----------------------------------------------------------------------
# Invoices
# ----------------------------------------------------------------------
class InvoiceService:
    """CRUD and status changes for invoices and their line items."""

    def __init__(
        self,
        invoices: RecordCollaborator,
        items: RecordCollaborator,
        lifecycle: Optional[InvoiceLifecycle] = None,
    ):
        self.invoices = invoices
        self.items = items
        self.lifecycle = lifecycle or InvoiceLifecycle()

    # -- reads ------------------------------------------------------------
    def list_invoices(
        self,
        status: Optional[InvoiceStatus] = None,
        client_name: Optional[str] = None,
    ) -> List[Invoice]:
        """All invoices, newest issue date first. Items are not loaded."""
        filters = []
        if status:
            filters.append(
                {"fieldName": "status", "operator": "ExactMatch", "values": [InvoiceStatus(status).value]}
            )
        if client_name:
            filters.append(
                {"fieldName": "clientName", "operator": "Contains", "values": [client_name]}
            )

        with remote_operation("load invoices"):
            records = self.invoices.list(
                filters=filters or None,
                order_by=[{"field": "issueDate", "direction": "DESC"}],
            )
        return [invoice_from_record(r) for r in records]

    def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        """One invoice with its items, or None if it does not exist."""
        with remote_operation("load invoice details"):
            record = self.invoices.get_by_id(invoice_id)
            if record is None:
                return None
            item_records = self._item_records(invoice_id)

        return invoice_from_record(record, [item_from_record(r) for r in item_records])

    def _item_records(self, invoice_id: str) -> List[Record]:
        return self.items.list(
            filters=[{"fieldName": "invoice", "operator": "ExactMatch", "values": [invoice_id]}]
        )

    # -- writes -----------------------------------------------------------
    def create_invoice(self, invoice: Invoice) -> Invoice:
        """Persist a new draft and its items; returns the stored invoice."""
        invoice = apply_totals(invoice).model_copy(
            update={
                "id": None,
                "status": InvoiceStatus.DRAFT,
                "created_at": datetime.now(timezone.utc),
            }
        )

        with remote_operation("create invoice"):
            record = self.invoices.create(invoice_to_record(invoice))
        invoice_id = str(record[ID_FIELD])

        try:
            self.items.create_many([item_to_record(i, invoice_id) for i in invoice.items])
        except Exception as exc:
            logger.error("Error creating items for invoice %s: %s", invoice_id, exc, exc_info=True)
            self._discard_invoice_record(invoice_id)
            raise RemoteOperationError("create invoice") from exc

        logger.info("Created invoice %s (id=%s)", invoice.invoice_number, invoice_id)
        return invoice_from_record(record, invoice.items)

    def _discard_invoice_record(self, invoice_id: str) -> None:
        # roll back the half-created invoice so the list never shows it
        try:
            self.invoices.delete(invoice_id)
        except Exception:
            logger.exception("Could not roll back invoice %s after item failure", invoice_id)

    def update_invoice(self, invoice_id: str, invoice: Invoice) -> Invoice:
        """
        Update the invoice record and replace all of its items.

        If the item replacement fails, the previous record fields and items
        are put back before the error is raised.
        """
        invoice = apply_totals(invoice)

        with remote_operation("update invoice"):
            previous = self.invoices.get_by_id(invoice_id)
            old_items = self._item_records(invoice_id)
            record = self.invoices.update(invoice_id, invoice_to_record(invoice))

        try:
            self._delete_items(invoice_id)
            self.items.create_many([item_to_record(i, invoice_id) for i in invoice.items])
        except Exception as exc:
            logger.error("Error replacing items for invoice %s: %s", invoice_id, exc, exc_info=True)
            self._restore_invoice(invoice_id, previous, old_items)
            raise RemoteOperationError("update invoice") from exc

        logger.info("Updated invoice %s (id=%s)", invoice.invoice_number, invoice_id)
        return invoice_from_record(record, invoice.items)

    def _restore_invoice(self, invoice_id: str, previous: Optional[Record], old_items: List[Record]) -> None:
        try:
            if previous is not None:
                self.invoices.update(invoice_id, previous)

            old_ids = {str(r[ID_FIELD]) for r in old_items}
            current = self._item_records(invoice_id)
            current_ids = {str(r[ID_FIELD]) for r in current}

            extra = [rid for rid in current_ids if rid not in old_ids]
            if extra:
                self.items.delete(extra)
            missing = [
                {k: v for k, v in r.items() if k != ID_FIELD}
                for r in old_items
                if str(r[ID_FIELD]) not in current_ids
            ]
            if missing:
                self.items.create_many(missing)
        except Exception:
            logger.exception("Could not restore invoice %s after item failure", invoice_id)

    def _delete_items(self, invoice_id: str) -> None:
        ids = [str(r[ID_FIELD]) for r in self._item_records(invoice_id)]
        if ids:
            self.items.delete(ids)

    def delete_invoice(self, invoice_id: str) -> bool:
        with remote_operation("delete invoice"):
            self._delete_items(invoice_id)
            self.invoices.delete(invoice_id)

        logger.info("Deleted invoice id=%s", invoice_id)
        return True

    # -- lifecycle --------------------------------------------------------
    def change_status(self, invoice_id: str, action: str) -> Invoice:
        """Apply a lifecycle action and store the new status in place."""
        current = self.get_invoice(invoice_id)
        if current is None:
            raise InvoiceNotFoundError(invoice_id)

        changed = self.lifecycle.transition(current, action)

        with remote_operation("update invoice"):
            self.invoices.update(invoice_id, {"status": changed.status.value})
        return changed

    def mark_sent(self, invoice_id: str) -> Invoice:
        return self.change_status(invoice_id, "mark_sent")

    def mark_paid(self, invoice_id: str) -> Invoice:
        return self.change_status(invoice_id, "mark_paid")

    def mark_overdue(self, invoice_id: str) -> Invoice:
        return self.change_status(invoice_id, "mark_overdue")


# ----------------------------------------------------------------------
# Clients
# ----------------------------------------------------------------------
def _client_from_record(record: Record) -> Client:
    return Client(
        id=str(record[ID_FIELD]),
        name=record.get("Name") or "",
        email=record.get("email") or "",
        address=record.get("address") or "",
    )


class ClientService:
    """Small client directory used to prefill invoices."""

    def __init__(self, clients: RecordCollaborator):
        self.clients = clients

    def list_clients(self, search: str = "") -> List[Client]:
        filters = None
        if search:
            filters = [{"fieldName": "Name", "operator": "Contains", "values": [search]}]

        with remote_operation("load clients"):
            records = self.clients.list(filters=filters)
        return [_client_from_record(r) for r in records]

    def get_client(self, client_id: str) -> Optional[Client]:
        with remote_operation("load client details"):
            record = self.clients.get_by_id(client_id)
        return _client_from_record(record) if record else None

    def create_client(self, client: Client) -> Client:
        fields = {"Name": client.name, "email": client.email, "address": client.address}
        with remote_operation("create client"):
            record = self.clients.create(fields)
        return _client_from_record(record)
