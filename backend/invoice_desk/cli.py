"""
CLI entrypoint for Invoice Desk.

Commands:
- list       → table of invoices (optionally filtered by status)
- show       → one invoice with its items and next action
- create     → validate a JSON draft and save it
- send / pay / overdue → move an invoice through its lifecycle
- delete     → remove an invoice and its items
- stats      → dashboard summary

Data lives in a local JSON file (--data, or INVOICE_DESK_DATA_FILE).
"""

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from .config import get_settings
from .dashboard import compute_dashboard_stats
from .editor import ITEM_FIELDS, EditorError, InvoiceEditor
from .exceptions import InvalidTransitionError, InvoiceNotFoundError, RemoteOperationError
from .formatting import format_currency, format_date
from .lifecycle import MARK_OVERDUE, MARK_PAID, MARK_SENT, action_label
from .models import InvoiceStatus
from .records import InMemoryRecordStore
from .services import InvoiceService

app = typer.Typer(help="Invoice Desk - create invoices and track payments")
console = Console()
logger = logging.getLogger(__name__)

STATUS_STYLES = {
    InvoiceStatus.DRAFT: "white",
    InvoiceStatus.SENT: "blue",
    InvoiceStatus.PAID: "green",
    InvoiceStatus.OVERDUE: "red",
}

DataOption = typer.Option(None, "--data", help="JSON data file (defaults to settings)")


# ----------------------------------------------------------------------
# Helper functions
# ----------------------------------------------------------------------
def _service(data: Optional[Path]) -> InvoiceService:
    path = data or Path(get_settings().data_file)
    return InvoiceService(
        InMemoryRecordStore("invoice", path),
        InMemoryRecordStore("invoice_item", path),
    )


def _money(amount) -> str:
    return format_currency(amount, get_settings().currency_symbol)


def _status(status: InvoiceStatus) -> str:
    style = STATUS_STYLES.get(status, "white")
    return f"[{style}]{status.value.capitalize()}[/{style}]"


def _fail(message: str) -> None:
    console.print(f"[red]✗ {message}[/red]")
    raise typer.Exit(code=1)


def _describe(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    )


def _change_status(invoice_id: str, action: str, data: Optional[Path]) -> None:
    try:
        invoice = _service(data).change_status(invoice_id, action)
    except (InvalidTransitionError, InvoiceNotFoundError, RemoteOperationError) as exc:
        _fail(str(exc))
    console.print(
        f"[green]✓ {invoice.invoice_number} is now {invoice.status.value}[/green]"
    )


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")):
    level = "DEBUG" if verbose else get_settings().log_level
    logging.basicConfig(level=level)


# ----------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------
@app.command(name="list")
def list_invoices(
    status: Optional[InvoiceStatus] = typer.Option(None, "--status", help="Only this status"),
    data: Optional[Path] = DataOption,
):
    """
    List invoices, newest first.

    Example:
      invoice-desk list --status sent
    """
    try:
        invoices = _service(data).list_invoices(status=status)
    except RemoteOperationError as exc:
        _fail(str(exc))

    table = Table(title="Invoices", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", width=6)
    table.add_column("Number", style="cyan")
    table.add_column("Client")
    table.add_column("Issued")
    table.add_column("Due")
    table.add_column("Total", justify="right")
    table.add_column("Status")

    for inv in invoices:
        table.add_row(
            inv.id,
            inv.invoice_number,
            inv.client_name,
            format_date(inv.issue_date),
            format_date(inv.due_date),
            _money(inv.total),
            _status(inv.status),
        )

    console.print(table)
    console.print(f"[dim]{len(invoices)} invoice(s)[/dim]")


@app.command()
def show(invoice_id: str = typer.Argument(..., help="Invoice id"), data: Optional[Path] = DataOption):
    """Show one invoice with its line items."""
    service = _service(data)
    try:
        invoice = service.get_invoice(invoice_id)
    except RemoteOperationError as exc:
        _fail(str(exc))
    if invoice is None:
        _fail(f"Invoice not found: {invoice_id}")

    console.print(f"\n[bold cyan]{invoice.invoice_number}[/bold cyan]  {_status(invoice.status)}")
    console.print(f"Bill to: {invoice.client_name} <{invoice.client_email}>")
    if invoice.client_address:
        console.print(f"         {invoice.client_address}")
    console.print(
        f"Issued {format_date(invoice.issue_date)}, due {format_date(invoice.due_date)}\n"
    )

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Description")
    table.add_column("Qty", justify="right")
    table.add_column("Rate", justify="right")
    table.add_column("Amount", justify="right")
    for item in invoice.items:
        table.add_row(item.description, str(item.quantity), _money(item.rate), _money(item.amount))
    console.print(table)

    console.print(f"  Subtotal: {_money(invoice.subtotal)}")
    console.print(f"  Tax ({invoice.tax_rate}%): {_money(invoice.tax_amount)}")
    console.print(f"  [bold]Total: {_money(invoice.total)}[/bold]")
    if invoice.notes:
        console.print(f"\n[dim]{invoice.notes}[/dim]")

    actions = service.lifecycle.available_actions(invoice.status)
    if actions:
        console.print(f"\nNext: {', '.join(action_label(a) for a in actions)}")


@app.command()
def create(
    input: Path = typer.Option(..., "--input", help="JSON file with the invoice draft"),
    data: Optional[Path] = DataOption,
):
    """
    Create an invoice from a JSON draft.

    The number and default dates are generated the same way the form does;
    everything in the file overrides the defaults.

    Example:
      invoice-desk create --input draft.json
    """
    if not input.exists():
        _fail(f"File not found: {input}")

    try:
        with input.open("r", encoding="utf-8") as f:
            raw = json.load(f)
    except json.JSONDecodeError as exc:
        _fail(f"Invalid JSON in {input}: {exc}")
    if not isinstance(raw, dict):
        _fail(f"Expected a JSON object in {input}")

    settings = get_settings()
    service = _service(data)
    editor = InvoiceEditor(settings.default_tax_rate, settings.payment_terms_days)

    try:
        editor.open_new(len(service.list_invoices()))
        for name, value in raw.items():
            if name != "items":
                editor.set_field(name, value)
        for idx, item in enumerate(raw.get("items", [])):
            if idx > 0:
                editor.add_item()
            editor.update_item(idx, **{k: v for k, v in item.items() if k in ITEM_FIELDS})
    except ValidationError as exc:
        _fail(f"Invalid value in {input}: {_describe(exc)}")
    except (EditorError, RemoteOperationError) as exc:
        _fail(str(exc))

    errors = editor.validate()
    if errors:
        table = Table(title="Please fill in all required fields", header_style="bold red")
        table.add_column("Field", style="cyan")
        table.add_column("Problem", style="yellow")
        for field_key, message in errors.items():
            table.add_row(field_key, message)
        console.print(table)
        raise typer.Exit(code=1)

    try:
        saved = service.create_invoice(editor.invoice)
    except RemoteOperationError as exc:
        _fail(str(exc))

    console.print(
        f"[green]✓ Created {saved.invoice_number} (id {saved.id}), total {_money(saved.total)}[/green]"
    )


@app.command()
def send(invoice_id: str = typer.Argument(...), data: Optional[Path] = DataOption):
    """Mark a draft invoice as sent."""
    _change_status(invoice_id, MARK_SENT, data)


@app.command()
def pay(invoice_id: str = typer.Argument(...), data: Optional[Path] = DataOption):
    """Mark a sent invoice as paid."""
    _change_status(invoice_id, MARK_PAID, data)


@app.command()
def overdue(invoice_id: str = typer.Argument(...), data: Optional[Path] = DataOption):
    """Flag an unpaid invoice as overdue."""
    _change_status(invoice_id, MARK_OVERDUE, data)


@app.command()
def delete(invoice_id: str = typer.Argument(...), data: Optional[Path] = DataOption):
    """Delete an invoice and its items."""
    try:
        _service(data).delete_invoice(invoice_id)
    except RemoteOperationError as exc:
        _fail(str(exc))
    console.print(f"[green]✓ Deleted invoice {invoice_id}[/green]")


@app.command()
def stats(data: Optional[Path] = DataOption):
    """Dashboard summary: counts, pending payments and revenue."""
    try:
        summary = compute_dashboard_stats(_service(data).list_invoices())
    except RemoteOperationError as exc:
        _fail(str(exc))

    console.print("\n[bold]Summary:[/bold]")
    console.print(f"  Total invoices:   {summary.total_invoices}")
    console.print(f"  [yellow]Pending payments: {summary.pending_payments}[/yellow]")
    console.print(f"  [green]Total revenue:    {_money(summary.total_revenue)}[/green]")
    console.print(f"  Active clients:   {summary.active_clients}\n")


if __name__ == "__main__":
    app()
