"""Summary numbers for the dashboard header."""

from typing import Iterable

from .calculator import to_number
from .models import DashboardStats, Invoice, InvoiceStatus

PENDING_STATUSES = (InvoiceStatus.DRAFT, InvoiceStatus.SENT)


def compute_dashboard_stats(invoices: Iterable[Invoice]) -> DashboardStats:
    """
    Recompute all dashboard numbers from the full invoice set.

    - pending: draft or sent
    - revenue: totals of paid invoices only
    - clients: distinct client emails
    """
    invoices = list(invoices)

    pending = sum(1 for inv in invoices if inv.status in PENDING_STATUSES)
    revenue = sum(
        to_number(inv.total) for inv in invoices if inv.status == InvoiceStatus.PAID
    )
    clients = {inv.client_email for inv in invoices}

    return DashboardStats(
        total_invoices=len(invoices),
        pending_payments=pending,
        total_revenue=revenue,
        active_clients=len(clients),
    )
