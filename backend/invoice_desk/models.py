"""
Data models for Invoice Desk.

The schema covers what the billing dashboard works with:
- invoices and their line items (as edited in the form)
- the status lifecycle values
- derived dashboard numbers and the client directory

Quantities, rates and the tax rate keep whatever the user typed
(numbers or strings). The calculator coerces them when totals are derived.
"""

from typing import Optional, List, Union
from datetime import datetime, date
from enum import Enum

from pydantic import BaseModel, Field, field_validator


RawNumber = Union[float, str, None]


class InvoiceStatus(str, Enum):
    """Lifecycle states of an invoice."""
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"


class LineItem(BaseModel):
    """
    Single billable row on an invoice.

    Fields:
    - description: what was sold (product/service)
    - quantity: how many units (raw input, coerced on recompute)
    - rate: price per unit (raw input, coerced on recompute)
    - amount: quantity * rate, always derived by the calculator
    """

    description: str = ""
    quantity: RawNumber = 1.0
    rate: RawNumber = 0.0
    amount: float = 0.0

    class Config:
        json_schema_extra = {
            "example": {
                "description": "Logo design",
                "quantity": 2,
                "rate": 500,
                "amount": 1000.0,
            }
        }


class Invoice(BaseModel):
    """
    Main invoice model shared by the editor, the services and the API.

    Breakdown of the fields:

    1) Identifiers
       - id: assigned by the record store, None until persisted
       - invoice_number: display number like INV-2610-004

    2) Client
       - client_name / client_email / client_address

    3) Dates
       - issue_date: when the invoice was created
       - due_date: when payment is expected

    4) Money fields (derived, never set by hand)
       - subtotal: sum of item amounts
       - tax_amount: subtotal * tax_rate / 100
       - total: subtotal + tax_amount

    5) Lifecycle
       - status: draft, sent, paid or overdue
    """

    id: Optional[str] = Field(None, description="Record id from the store")
    invoice_number: str = Field("", description="Display invoice number")

    # Dates
    issue_date: Optional[date] = Field(None, description="Date the invoice was issued")
    due_date: Optional[date] = Field(None, description="Payment due date")

    # Client
    client_name: str = Field("", description="Name of the client being billed")
    client_email: str = Field("", description="Client contact email")
    client_address: str = Field("", description="Client billing address")

    # Items and extra info
    items: List[LineItem] = Field(
        default_factory=lambda: [LineItem()],
        description="Ordered list of invoice lines",
    )
    notes: str = Field("", description="Free text printed on the invoice")

    # Financial details
    tax_rate: RawNumber = Field(18.0, description="Tax percentage (0-100)")
    subtotal: float = Field(0.0, description="Sum of all item amounts")
    tax_amount: float = Field(0.0, description="Tax on the subtotal")
    total: float = Field(0.0, description="Subtotal plus tax")

    status: InvoiceStatus = Field(InvoiceStatus.DRAFT, description="Lifecycle state")
    created_at: Optional[datetime] = Field(None, description="When the invoice was first saved")

    @field_validator("issue_date", "due_date", mode="before")
    @classmethod
    def blank_date_is_missing(cls, v):
        """Form inputs send '' for an untouched date picker."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("client_name", "client_email", "client_address", "notes", mode="before")
    @classmethod
    def none_text_is_blank(cls, v):
        return "" if v is None else v

    class Config:
        json_schema_extra = {
            "example": {
                "invoice_number": "INV-2610-001",
                "issue_date": "2026-10-19",
                "due_date": "2026-11-18",
                "client_name": "Acme Studio",
                "client_email": "billing@acme.io",
                "client_address": "12 MG Road, Bengaluru",
                "items": [
                    {"description": "Design", "quantity": 2, "rate": 500, "amount": 1000.0}
                ],
                "notes": "Thank you for your business",
                "tax_rate": 18,
                "subtotal": 1000.0,
                "tax_amount": 180.0,
                "total": 1180.0,
                "status": "draft",
            }
        }


class DashboardStats(BaseModel):
    """Summary numbers shown on the dashboard. Derived, never stored."""

    total_invoices: int = 0
    pending_payments: int = 0
    total_revenue: float = 0.0
    active_clients: int = 0


class Client(BaseModel):
    """Entry in the client directory."""

    id: Optional[str] = None
    name: str
    email: str = ""
    address: str = ""


class Notification(BaseModel):
    """A transient user-facing message (success, error or info)."""

    level: str = Field(..., description="success, error or info")
    message: str
    created_at: datetime = Field(default_factory=datetime.now)
