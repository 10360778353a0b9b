"""
FastAPI server for Invoice Desk.

Main endpoints:
- GET    /health                  → quick health check
- GET    /invoices                → list (filter by status / client name)
- POST   /invoices                → create a draft
- GET    /invoices/{id}           → one invoice with items
- PUT    /invoices/{id}           → update invoice and replace items
- DELETE /invoices/{id}           → delete invoice and its items
- POST   /invoices/{id}/send|pay|overdue → status changes
- POST   /invoices/preview        → recompute totals without saving
- POST   /invoices/validate       → field errors for a candidate invoice
- GET    /dashboard               → summary numbers
- GET    /clients, POST /clients  → client directory
"""

from typing import Dict, List, Optional
from datetime import datetime
import logging

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from invoice_desk.calculator import apply_totals
from invoice_desk.config import Settings, get_settings
from invoice_desk.dashboard import compute_dashboard_stats
from invoice_desk.exceptions import (
    InvalidTransitionError,
    InvoiceNotFoundError,
    InvoiceValidationError,
    RemoteOperationError,
)
from invoice_desk.lifecycle import MARK_OVERDUE, MARK_PAID, MARK_SENT, InvoiceLifecycle
from invoice_desk.models import Client, DashboardStats, Invoice, InvoiceStatus
from invoice_desk.numbering import generate_invoice_number
from invoice_desk.records import HttpRecordClient, InMemoryRecordStore, build_http_client
from invoice_desk.services import ClientService, InvoiceService
from invoice_desk.validator import InvoiceFormValidator

logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Invoice Desk API",
    description="Create, track and get paid for invoices",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # in a real deployment this should be restricted
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

validator = InvoiceFormValidator()
lifecycle = InvoiceLifecycle()


# ----------------------------------------------------------------------
# Collaborator wiring
# ----------------------------------------------------------------------
_stores: Dict[str, object] = {}


def _store(table: str, settings: Settings):
    """One collaborator per table, built on first use."""
    if table not in _stores:
        if settings.records_api_url:
            if "_http" not in _stores:
                _stores["_http"] = build_http_client(
                    settings.records_api_url,
                    api_key=settings.records_api_key,
                    project_id=settings.records_project_id,
                    timeout=settings.request_timeout,
                )
            _stores[table] = HttpRecordClient(_stores["_http"], table)
        else:
            _stores[table] = InMemoryRecordStore(table)
    return _stores[table]


def get_invoice_service(settings: Settings = Depends(get_settings)) -> InvoiceService:
    return InvoiceService(
        _store("invoice", settings), _store("invoice_item", settings), lifecycle
    )


def get_client_service(settings: Settings = Depends(get_settings)) -> ClientService:
    return ClientService(_store("client", settings))


def _require(invoice: Optional[Invoice], invoice_id: str) -> Invoice:
    if invoice is None:
        raise InvoiceNotFoundError(invoice_id)
    return invoice


# ----------------------------------------------------------------------
# Basic endpoints
# ----------------------------------------------------------------------
@app.get("/")
async def root():
    """Root endpoint with a bit of info."""
    return {
        "service": "invoice-desk",
        "version": "1.0.0",
        "endpoints": {
            "health": "/health",
            "invoices": "/invoices",
            "dashboard": "/dashboard",
            "clients": "/clients",
        },
        "docs": "/docs",
    }


@app.get("/health")
async def health():
    """Simple health check used by tests/monitoring."""
    return {
        "status": "ok",
        "service": "invoice-desk",
        "timestamp": datetime.utcnow().isoformat(),
    }


# ----------------------------------------------------------------------
# Form helpers (no persistence)
# ----------------------------------------------------------------------
@app.post("/invoices/preview")
def preview_invoice(invoice: Invoice):
    """Return the invoice with item amounts and totals recomputed."""
    return apply_totals(invoice).model_dump(mode="json")


@app.post("/invoices/validate")
def validate_invoice(invoice: Invoice):
    errors = validator.validate(invoice)
    return {"is_valid": not errors, "errors": errors}


@app.get("/invoices/next-number")
def next_invoice_number(service: InvoiceService = Depends(get_invoice_service)):
    count = len(service.list_invoices())
    return {"invoice_number": generate_invoice_number(count)}


# ----------------------------------------------------------------------
# Invoices
# ----------------------------------------------------------------------
@app.get("/invoices")
def list_invoices(
    status: Optional[InvoiceStatus] = None,
    client_name: Optional[str] = None,
    service: InvoiceService = Depends(get_invoice_service),
):
    invoices = service.list_invoices(status=status, client_name=client_name)
    return [inv.model_dump(mode="json") for inv in invoices]


@app.post("/invoices", status_code=201)
def create_invoice(invoice: Invoice, service: InvoiceService = Depends(get_invoice_service)):
    validator.ensure_valid(invoice)
    return service.create_invoice(invoice).model_dump(mode="json")


@app.get("/invoices/{invoice_id}")
def get_invoice(invoice_id: str, service: InvoiceService = Depends(get_invoice_service)):
    return _require(service.get_invoice(invoice_id), invoice_id).model_dump(mode="json")


@app.put("/invoices/{invoice_id}")
def update_invoice(
    invoice_id: str,
    invoice: Invoice,
    service: InvoiceService = Depends(get_invoice_service),
):
    current = _require(service.get_invoice(invoice_id), invoice_id)
    validator.ensure_valid(invoice)
    # status only moves through the lifecycle endpoints
    invoice = invoice.model_copy(
        update={"status": current.status, "created_at": current.created_at}
    )
    return service.update_invoice(invoice_id, invoice).model_dump(mode="json")


@app.delete("/invoices/{invoice_id}")
def delete_invoice(invoice_id: str, service: InvoiceService = Depends(get_invoice_service)):
    _require(service.get_invoice(invoice_id), invoice_id)
    service.delete_invoice(invoice_id)
    return {"deleted": invoice_id}


@app.get("/invoices/{invoice_id}/actions")
def invoice_actions(invoice_id: str, service: InvoiceService = Depends(get_invoice_service)):
    invoice = _require(service.get_invoice(invoice_id), invoice_id)
    return {"status": invoice.status.value, "actions": lifecycle.available_actions(invoice.status)}


def _transition(invoice_id: str, action: str, service: InvoiceService):
    return service.change_status(invoice_id, action).model_dump(mode="json")


@app.post("/invoices/{invoice_id}/send")
def mark_sent(invoice_id: str, service: InvoiceService = Depends(get_invoice_service)):
    return _transition(invoice_id, MARK_SENT, service)


@app.post("/invoices/{invoice_id}/pay")
def mark_paid(invoice_id: str, service: InvoiceService = Depends(get_invoice_service)):
    return _transition(invoice_id, MARK_PAID, service)


@app.post("/invoices/{invoice_id}/overdue")
def mark_overdue(invoice_id: str, service: InvoiceService = Depends(get_invoice_service)):
    return _transition(invoice_id, MARK_OVERDUE, service)


# ----------------------------------------------------------------------
# Dashboard and clients
# ----------------------------------------------------------------------
@app.get("/dashboard", response_model=DashboardStats)
def dashboard(service: InvoiceService = Depends(get_invoice_service)):
    return compute_dashboard_stats(service.list_invoices())


@app.get("/clients", response_model=List[Client])
def list_clients(search: str = "", service: ClientService = Depends(get_client_service)):
    return service.list_clients(search)


@app.post("/clients", response_model=Client, status_code=201)
def create_client(client: Client, service: ClientService = Depends(get_client_service)):
    if not client.name.strip():
        raise HTTPException(status_code=422, detail="Client name is required")
    return service.create_client(client)


# ----------------------------------------------------------------------
# Error handlers
# ----------------------------------------------------------------------
@app.exception_handler(InvoiceValidationError)
async def validation_error_handler(request: Request, exc: InvoiceValidationError):
    return JSONResponse(status_code=422, content={"message": str(exc), "errors": exc.errors})


@app.exception_handler(InvalidTransitionError)
async def transition_error_handler(request: Request, exc: InvalidTransitionError):
    return JSONResponse(status_code=409, content={"message": str(exc)})


@app.exception_handler(InvoiceNotFoundError)
async def not_found_handler(request: Request, exc: InvoiceNotFoundError):
    return JSONResponse(status_code=404, content={"message": str(exc)})


@app.exception_handler(RemoteOperationError)
async def remote_error_handler(request: Request, exc: RemoteOperationError):
    logger.error("Remote operation failed: %s", exc)
    return JSONResponse(status_code=502, content={"message": str(exc)})


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Catch-all exception handler to avoid leaking stack traces."""
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": str(exc),
            "timestamp": datetime.utcnow().isoformat(),
        },
    )
