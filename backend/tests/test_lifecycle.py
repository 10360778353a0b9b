"""Tests for the draft -> sent -> paid status gate."""

import warnings
from pathlib import Path

import pytest

from invoice_desk import lifecycle as lifecycle_module

from invoice_desk.exceptions import InvalidTransitionError
from invoice_desk.lifecycle import (
    MARK_OVERDUE,
    MARK_PAID,
    MARK_SENT,
    InvoiceLifecycle,
    action_label,
)
from invoice_desk.models import Invoice, InvoiceStatus

lifecycle = InvoiceLifecycle()


def saved(status=InvoiceStatus.DRAFT) -> Invoice:
    return Invoice(id="7", invoice_number="INV-2610-007", status=status)


def test_new_invoices_start_as_draft():
    assert Invoice().status == InvoiceStatus.DRAFT


def test_each_status_exposes_one_forward_action():
    assert lifecycle.available_actions(InvoiceStatus.DRAFT) == [MARK_SENT]
    assert lifecycle.available_actions(InvoiceStatus.SENT) == [MARK_PAID]
    assert lifecycle.available_actions(InvoiceStatus.PAID) == []
    assert lifecycle.available_actions(InvoiceStatus.OVERDUE) == []


def test_overdue_is_never_offered_as_action():
    for status in InvoiceStatus:
        assert MARK_OVERDUE not in lifecycle.available_actions(status)


def test_draft_to_sent_to_paid():
    invoice = lifecycle.mark_sent(saved())
    assert invoice.status == InvoiceStatus.SENT
    assert lifecycle.available_actions(invoice.status) == [MARK_PAID]

    invoice = lifecycle.mark_paid(invoice)
    assert invoice.status == InvoiceStatus.PAID
    assert lifecycle.available_actions(invoice.status) == []


def test_transition_returns_copy():
    original = saved()
    lifecycle.mark_sent(original)
    assert original.status == InvoiceStatus.DRAFT


def test_paid_is_terminal():
    paid = saved(InvoiceStatus.PAID)
    for action in (MARK_SENT, MARK_PAID, MARK_OVERDUE):
        with pytest.raises(InvalidTransitionError):
            lifecycle.transition(paid, action)


def test_cannot_skip_sent():
    with pytest.raises(InvalidTransitionError):
        lifecycle.mark_paid(saved())


def test_unsaved_invoice_cannot_change_status():
    with pytest.raises(InvalidTransitionError, match="saved"):
        lifecycle.mark_sent(Invoice())


@pytest.mark.parametrize("status", [InvoiceStatus.DRAFT, InvoiceStatus.SENT])
def test_overdue_reachable_from_unpaid(status):
    assert lifecycle.mark_overdue(saved(status)).status == InvoiceStatus.OVERDUE


def test_unknown_action():
    with pytest.raises(InvalidTransitionError):
        lifecycle.transition(saved(), "archive")


def test_can_apply():
    assert lifecycle.can_apply(saved(), MARK_SENT)
    assert not lifecycle.can_apply(saved(), MARK_PAID)
    assert not lifecycle.can_apply(Invoice(), MARK_SENT)


def test_action_labels():
    assert action_label(MARK_SENT) == "Mark as Sent"
    assert action_label(MARK_PAID) == "Mark as Paid"


def test_module_source_compiles_without_warnings():
    source = Path(lifecycle_module.__file__).read_text(encoding="utf-8")
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        compile(source, lifecycle_module.__file__, "exec")
