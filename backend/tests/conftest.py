from datetime import date

import pytest

from invoice_desk.exceptions import RecordStoreError
from invoice_desk.models import Invoice, LineItem
from invoice_desk.records import InMemoryRecordStore
from invoice_desk.services import InvoiceService


def make_invoice(**overrides) -> Invoice:
    fields = dict(
        invoice_number="INV-2610-001",
        issue_date=date(2026, 10, 19),
        due_date=date(2026, 11, 18),
        client_name="Acme Studio",
        client_email="billing@acme.io",
        client_address="12 MG Road, Bengaluru",
        items=[LineItem(description="Design", quantity=2, rate=500)],
        tax_rate=18,
    )
    fields.update(overrides)
    return Invoice(**fields)


@pytest.fixture
def invoice_store():
    return InMemoryRecordStore("invoice")


@pytest.fixture
def item_store():
    return InMemoryRecordStore("invoice_item")


@pytest.fixture
def service(invoice_store, item_store):
    return InvoiceService(invoice_store, item_store)


class BrokenStore:
    """Collaborator whose every call fails like an unreachable backend."""

    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise RecordStoreError("backend unreachable")

        return fail
