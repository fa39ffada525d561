"""CLI interface for composing and reviewing invoices."""

import asyncio
import json
import logging
from typing import Callable, NoReturn, Optional

import typer
from rich.console import Console
from rich.table import Table

from hisaab import __version__
from .config import HisaabConfig, get_config
from .editor import InvoiceEditor
from .exceptions import HisaabError
from .models import Invoice, InvoiceTotals
from .pricing import compute_pricing
from .repositories import create_repository
from .services.invoice_service import InvoiceService

app = typer.Typer(
    name="hisaab",
    help="""
    [bold]Hisaab Invoice CLI[/bold]

    Compose invoices from line items, derive trade prices and track payments.

    [cyan]Examples:[/cyan]
      hisaab new "Shop 12 March" --date 2026-03-12
      hisaab add-item <ID> --name Panadol --qty 10 --rate 120 --discount=-5
      hisaab add-payment <ID> --narration Cash --amount 500
      hisaab show <ID>

    Row numbers start at 1, as shown by [bold]hisaab show[/bold].
    """,
    no_args_is_help=True,
)

console = Console()
logger = logging.getLogger(__name__)

UserOption = typer.Option(
    None,
    "--user",
    "-u",
    help="Username whose invoices to use (default: HISAAB_USERNAME or 'default')",
)
VerboseOption = typer.Option(False, "--verbose", "-v", help="Enable debug logging")


def _setup(verbose: bool) -> HisaabConfig:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    return get_config()


def _service(config: HisaabConfig) -> InvoiceService:
    return InvoiceService(config, create_repository(config))


def _money(config: HisaabConfig, value: float) -> str:
    return f"{config.currency_symbol} {value:,.2f}"


def _fail(exc: Exception) -> NoReturn:
    console.print(f"\n[bold red]✗ Error:[/bold red] {exc}")
    raise typer.Exit(code=1)


def _edit(
    invoice_id: str,
    user: Optional[str],
    verbose: bool,
    change: Callable[[InvoiceEditor], None],
) -> Invoice:
    """Open a stored invoice, apply one change and save the whole snapshot."""
    config = _setup(verbose)
    service = _service(config)
    username = user or config.username
    try:
        editor = service.open_session(username, invoice_id)
        change(editor)
        invoice = asyncio.run(service.save_session(username, editor))
    except (HisaabError, ValueError) as e:
        _fail(e)
    _print_invoice(config, invoice, editor.totals())
    return invoice


def _print_invoice(config: HisaabConfig, invoice: Invoice, totals: InvoiceTotals) -> None:
    console.print(
        f"[bold]{invoice.name}[/bold]  [dim]{invoice.id}[/dim]  "
        f"{invoice.date.isoformat()}  [cyan]{invoice.status.value}[/cyan]"
    )

    items = Table(show_header=True, header_style="bold")
    for column in ("#", "Item Name", "Qty", "Rate", "T.P", "Disc %", "Unit Total", "Total Amt"):
        items.add_column(column, justify="left" if column == "Item Name" else "right")
    for idx, item in enumerate(invoice.items, start=1):
        items.add_row(
            str(idx),
            item.name,
            f"{item.quantity:g}",
            f"{item.rate:.2f}",
            f"{item.trade_price:.2f}",
            "-" if item.discount_percent == 0 else f"{item.discount_percent:g}%",
            f"{item.effective_unit_price:.2f}",
            f"{item.line_total:.2f}",
        )
    console.print(items)

    if invoice.payments:
        payments = Table(show_header=True, header_style="bold")
        payments.add_column("#", justify="right")
        payments.add_column("Narration")
        payments.add_column("Amount", justify="right")
        for idx, payment in enumerate(invoice.payments, start=1):
            payments.add_row(str(idx), payment.narration, _money(config, payment.amount))
        console.print(payments)

    console.print(f"Currency: {config.get_currency_label()}")
    console.print(f"Total Amount: [bold]{_money(config, totals.grand_total)}[/bold]")
    console.print(f"Paid: {_money(config, totals.total_paid)}")
    console.print(f"Balance Due: [bold]{_money(config, totals.remaining_balance)}[/bold]")


@app.command("list")
def list_invoices(
    search: Optional[str] = typer.Option(
        None, "--search", "-s", help="Filter by name or date fragment"
    ),
    user: Optional[str] = UserOption,
    verbose: bool = VerboseOption,
):
    """List invoices, newest date first."""
    config = _setup(verbose)
    username = user or config.username
    try:
        invoices = _service(config).list_invoices(username, search)
    except HisaabError as e:
        _fail(e)

    if not invoices:
        console.print("[dim]No invoices found[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    for column in ("ID", "Name", "Date", "Status", "Total", "Balance"):
        table.add_column(column)
    for inv in invoices:
        table.add_row(
            inv.id,
            inv.name,
            inv.date.isoformat(),
            inv.status.value,
            _money(config, inv.total_amount),
            _money(config, inv.remaining_balance),
        )
    console.print(table)


@app.command()
def show(
    invoice_id: str = typer.Argument(..., help="Invoice ID"),
    as_json: bool = typer.Option(False, "--json", help="Print the stored JSON snapshot"),
    user: Optional[str] = UserOption,
    verbose: bool = VerboseOption,
):
    """Show one invoice with its items, payments and balance."""
    config = _setup(verbose)
    username = user or config.username
    try:
        invoice = _service(config).get_invoice(username, invoice_id)
    except HisaabError as e:
        _fail(e)

    if as_json:
        print(json.dumps(invoice.model_dump(mode="json", by_alias=True), indent=2))
        return
    _print_invoice(config, invoice, InvoiceEditor.from_invoice(invoice).totals())


@app.command()
def new(
    name: str = typer.Argument(..., help="Invoice name"),
    date: Optional[str] = typer.Option(None, "--date", "-d", help="Invoice date (YYYY-MM-DD)"),
    user: Optional[str] = UserOption,
    verbose: bool = VerboseOption,
):
    """Create an invoice seeded with one blank row."""
    config = _setup(verbose)
    service = _service(config)
    username = user or config.username
    editor = service.new_session()
    try:
        editor.set_name(name)
        if date:
            editor.set_date(date)
        invoice = asyncio.run(service.save_session(username, editor))
    except (HisaabError, ValueError) as e:
        _fail(e)
    console.print(f"[bold green]✓ Created invoice[/bold green] {invoice.id}")


@app.command()
def rename(
    invoice_id: str = typer.Argument(..., help="Invoice ID"),
    name: str = typer.Argument(..., help="New invoice name"),
    date: Optional[str] = typer.Option(None, "--date", "-d", help="New date (YYYY-MM-DD)"),
    user: Optional[str] = UserOption,
    verbose: bool = VerboseOption,
):
    """Change an invoice's name and optionally its date."""

    def change(editor: InvoiceEditor) -> None:
        editor.set_name(name)
        if date:
            editor.set_date(date)

    _edit(invoice_id, user, verbose, change)


@app.command("add-item")
def add_item(
    invoice_id: str = typer.Argument(..., help="Invoice ID"),
    name: str = typer.Option("", "--name", "-n", help="Item name"),
    qty: float = typer.Option(0.0, "--qty", "-q", help="Quantity"),
    rate: float = typer.Option(0.0, "--rate", "-r", help="Nominal unit rate"),
    discount: float = typer.Option(
        0.0, "--discount", help="Signed percent: negative discounts, positive surcharges"
    ),
    user: Optional[str] = UserOption,
    verbose: bool = VerboseOption,
):
    """Append a line item, filling the blank first row if it is still empty."""

    def change(editor: InvoiceEditor) -> None:
        last = editor.items[-1]
        if len(editor.items) == 1 and not last.name and last.quantity == 0 and last.rate == 0:
            index = 0
        else:
            editor.add_item()
            index = len(editor.items) - 1
        editor.update_item(index, "name", name)
        editor.update_item(index, "quantity", qty)
        editor.update_item(index, "rate", rate)
        editor.update_item(index, "discount_percent", discount)

    _edit(invoice_id, user, verbose, change)


@app.command("update-item")
def update_item(
    invoice_id: str = typer.Argument(..., help="Invoice ID"),
    row: int = typer.Argument(..., help="Row number (from 1)"),
    field: str = typer.Argument(..., help="name, quantity, rate or discount_percent"),
    value: str = typer.Argument(..., help="New value; use -- before negative numbers"),
    user: Optional[str] = UserOption,
    verbose: bool = VerboseOption,
):
    """Set one field of a line item."""
    _edit(invoice_id, user, verbose, lambda e: e.update_item(row - 1, field, value))


@app.command("duplicate-item")
def duplicate_item(
    invoice_id: str = typer.Argument(..., help="Invoice ID"),
    row: int = typer.Argument(..., help="Row number (from 1)"),
    user: Optional[str] = UserOption,
    verbose: bool = VerboseOption,
):
    """Copy a line item directly below itself."""
    _edit(invoice_id, user, verbose, lambda e: e.duplicate_item(row - 1))


@app.command("delete-item")
def delete_item(
    invoice_id: str = typer.Argument(..., help="Invoice ID"),
    row: int = typer.Argument(..., help="Row number (from 1)"),
    user: Optional[str] = UserOption,
    verbose: bool = VerboseOption,
):
    """Remove a line item (the last remaining row is kept)."""
    _edit(invoice_id, user, verbose, lambda e: e.delete_item(row - 1))


@app.command("add-payment")
def add_payment(
    invoice_id: str = typer.Argument(..., help="Invoice ID"),
    narration: str = typer.Option("", "--narration", "-n", help="Payment description"),
    amount: float = typer.Option(0.0, "--amount", "-a", help="Amount received"),
    user: Optional[str] = UserOption,
    verbose: bool = VerboseOption,
):
    """Record a payment against an invoice."""

    def change(editor: InvoiceEditor) -> None:
        editor.add_payment()
        index = len(editor.payments) - 1
        editor.update_payment(index, "narration", narration)
        editor.update_payment(index, "amount", amount)

    _edit(invoice_id, user, verbose, change)


@app.command("update-payment")
def update_payment(
    invoice_id: str = typer.Argument(..., help="Invoice ID"),
    row: int = typer.Argument(..., help="Payment number (from 1)"),
    field: str = typer.Argument(..., help="narration or amount"),
    value: str = typer.Argument(..., help="New value"),
    user: Optional[str] = UserOption,
    verbose: bool = VerboseOption,
):
    """Set one field of a payment."""
    _edit(invoice_id, user, verbose, lambda e: e.update_payment(row - 1, field, value))


@app.command("delete-payment")
def delete_payment(
    invoice_id: str = typer.Argument(..., help="Invoice ID"),
    row: int = typer.Argument(..., help="Payment number (from 1)"),
    user: Optional[str] = UserOption,
    verbose: bool = VerboseOption,
):
    """Remove a payment."""
    _edit(invoice_id, user, verbose, lambda e: e.delete_payment(row - 1))


@app.command("toggle-status")
def toggle_status(
    invoice_id: str = typer.Argument(..., help="Invoice ID"),
    user: Optional[str] = UserOption,
    verbose: bool = VerboseOption,
):
    """Switch an invoice between Pending and Paid."""
    config = _setup(verbose)
    username = user or config.username
    try:
        invoice = _service(config).toggle_status(username, invoice_id)
    except HisaabError as e:
        _fail(e)
    console.print(f"Invoice {invoice.id} is now [bold]{invoice.status.value}[/bold]")


@app.command()
def delete(
    invoice_id: str = typer.Argument(..., help="Invoice ID"),
    user: Optional[str] = UserOption,
    verbose: bool = VerboseOption,
):
    """Delete an invoice."""
    config = _setup(verbose)
    username = user or config.username
    try:
        _service(config).remove_invoice(username, invoice_id)
    except HisaabError as e:
        _fail(e)
    console.print(f"[bold green]✓ Deleted invoice[/bold green] {invoice_id}")


@app.command()
def price(
    qty: float = typer.Option(1.0, "--qty", "-q", help="Quantity"),
    rate: float = typer.Option(..., "--rate", "-r", help="Nominal unit rate"),
    discount: float = typer.Option(0.0, "--discount", help="Signed discount percent"),
    verbose: bool = VerboseOption,
):
    """Preview the derived pricing for a single line."""
    config = _setup(verbose)
    pricing = compute_pricing(
        quantity=qty,
        rate=rate,
        discount_percent=discount,
        negative_inputs=config.negative_inputs,
    )
    console.print(f"T.P: {pricing.trade_price:.2f}")
    console.print(f"Unit Total: {pricing.effective_unit_price:.2f}")
    console.print(f"Total Amt: {pricing.line_total:.2f}")


@app.command()
def version():
    """Show version information."""
    console.print(f"hisaab version {__version__}")


if __name__ == "__main__":
    app()
