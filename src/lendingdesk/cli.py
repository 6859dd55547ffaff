"""Command-line interface for lendingdesk.

Built with Typer for commands and Rich for output.
"""

import logging
from datetime import date
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .auth import StaticAdminSession
from .config import get_config
from .desk import LendingDesk
from .money import format_amount
from .results import Result
from .rules.schemas import BorrowingRulesUpdate

# Create the main app
app = typer.Typer(
    name="lendingdesk",
    help="Lend books and CDs, track overdue items and collect fines.",
    no_args_is_help=True,
)

# Create sub-apps for command groups
rules_app = typer.Typer(help="Show or change borrowing rules.")
app.add_typer(rules_app, name="rules")
patron_app = typer.Typer(help="Register and manage patrons.")
app.add_typer(patron_app, name="patron")
item_app = typer.Typer(help="Manage the media catalogue.")
app.add_typer(item_app, name="item")
policy_app = typer.Typer(help="Show or change fines and loan periods per media type.")
app.add_typer(policy_app, name="policy")

# Rich console for pretty output
console = Console()


# ============================================================================
# Helper Functions
# ============================================================================


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[bold yellow]Warning:[/bold yellow] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[dim]{message}[/dim]")


def setup_logging(level: str) -> None:
    """Route library logging through rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def open_desk(admin: bool = False) -> LendingDesk:
    """Build a desk from the environment configuration."""
    config = get_config()
    errors = config.validate()
    if errors:
        for error in errors:
            print_error(error)
        raise typer.Exit(1)

    setup_logging(config.log_level)
    return LendingDesk.from_config(config, auth=StaticAdminSession(admin), console=console)


def parse_date(value: Optional[str]) -> date:
    """Parse a YYYY-MM-DD option, defaulting to today."""
    if not value:
        return date.today()
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"Invalid date: {value} (expected YYYY-MM-DD)")


def exit_on_failure(result: Result) -> None:
    """Print the failure and exit with status 1 if the result failed."""
    if not result:
        print_error(f"{result.message} ({result.error.value})")
        raise typer.Exit(1)


def format_fine_table(fines: list, title: str = "Fines") -> Table:
    """Create a rich table for displaying fines."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Loan", style="dim")
    table.add_column("Amount", justify="right")
    table.add_column("Paid", justify="right", style="green")
    table.add_column("Remaining", justify="right", style="red")
    table.add_column("Reason", max_width=50)

    for fine in fines:
        table.add_row(
            fine.id,
            fine.loan_id or "-",
            format_amount(fine.amount),
            format_amount(fine.paid_amount),
            format_amount(fine.remaining_balance),
            fine.reason or "-",
        )

    return table


# ============================================================================
# Lending Commands
# ============================================================================


@app.command()
def borrow(
    patron_id: str = typer.Argument(..., help="Patron ID"),
    item_id: str = typer.Argument(..., help="Item ID"),
    media_type: str = typer.Option("BOOK", "--type", "-t", help="Media type of the item"),
    on: Optional[str] = typer.Option(None, "--on", help="Borrow date (YYYY-MM-DD), default today"),
) -> None:
    """Lend an item to a patron."""
    as_of = parse_date(on)
    desk = open_desk()
    try:
        result = desk.borrow(patron_id, item_id, media_type, as_of)
        exit_on_failure(result)
        loan = result.value
        print_success(f"Loan {loan.id} created")
        console.print(f"  Due: {loan.due_date}")
    finally:
        desk.close()


@app.command("return")
def return_item(
    loan_id: str = typer.Argument(..., help="Loan ID"),
    on: Optional[str] = typer.Option(None, "--on", help="Return date (YYYY-MM-DD), default today"),
) -> None:
    """Return a borrowed item."""
    as_of = parse_date(on)
    desk = open_desk()
    try:
        result = desk.return_item(loan_id, as_of)
        exit_on_failure(result)
        receipt = result.value
        print_success(f"Loan {receipt.loan_id} returned")
        if receipt.days_overdue:
            print_warning(f"Returned {receipt.days_overdue} day(s) late")
        if receipt.fine_id:
            console.print(f"  Fine {receipt.fine_id}: {format_amount(receipt.fine_amount)}")
    finally:
        desk.close()


@app.command()
def pay(
    fine_id: str = typer.Argument(..., help="Fine ID"),
    amount: str = typer.Argument(..., help="Amount tendered, e.g. 10.00"),
) -> None:
    """Pay all or part of a fine."""
    desk = open_desk()
    try:
        result = desk.pay_fine(fine_id, amount)
        exit_on_failure(result)
        receipt = result.value
        print_success(f"Applied {format_amount(receipt.applied)} to fine {receipt.fine_id}")
        if receipt.refund > 0:
            console.print(f"  Refund due: {format_amount(receipt.refund)}")
        if not receipt.fully_paid:
            console.print(f"  Remaining: {format_amount(receipt.remaining_balance)}")
        if receipt.borrowing_restored:
            console.print("  [green]Borrowing privileges restored[/green]")
    finally:
        desk.close()


@app.command()
def fine(
    patron_id: str = typer.Argument(..., help="Patron ID"),
    amount: str = typer.Argument(..., help="Fine amount, e.g. 5.00"),
    reason: str = typer.Argument(..., help="Reason for the fine"),
) -> None:
    """Apply a fine that is not tied to a loan."""
    desk = open_desk()
    try:
        result = desk.apply_adhoc_fine(patron_id, amount, reason)
        exit_on_failure(result)
        print_success(f"Fine {result.value.id} of {format_amount(result.value.amount)} applied")
    finally:
        desk.close()


@app.command()
def fines(
    patron_id: str = typer.Argument(..., help="Patron ID"),
    all_fines: bool = typer.Option(False, "--all", "-a", help="Include paid fines"),
) -> None:
    """Show a patron's fines and unpaid balance by media type."""
    desk = open_desk()
    try:
        if desk.patrons.get(patron_id) is None:
            print_error(f"Patron not found: {patron_id}")
            raise typer.Exit(1)

        found = desk.fines.get_patron_fines(patron_id) if all_fines else desk.get_unpaid_fines(patron_id)
        if not found:
            print_info("No fines.")
            return

        console.print(format_fine_table(found, title=f"Fines for {patron_id}"))

        breakdown = desk.get_fine_breakdown(patron_id)
        for group in breakdown.groups:
            console.print(f"  {group.media_type}: {group.count} unpaid, {format_amount(group.total)}")
        console.print(f"[bold]Total unpaid:[/bold] {format_amount(breakdown.total_unpaid)}")
    finally:
        desk.close()


@app.command("can-borrow")
def can_borrow(
    patron_id: str = typer.Argument(..., help="Patron ID"),
    on: Optional[str] = typer.Option(None, "--on", help="Check as of date (YYYY-MM-DD), default today"),
) -> None:
    """Check whether a patron may borrow."""
    as_of = parse_date(on)
    desk = open_desk()
    try:
        result = desk.can_borrow(patron_id, as_of)
        if result.valid:
            print_success(result.message)
        else:
            print_warning(result.message)
            raise typer.Exit(1)
    finally:
        desk.close()


@app.command()
def overdue(
    on: Optional[str] = typer.Option(None, "--on", help="Report date (YYYY-MM-DD), default today"),
) -> None:
    """List overdue loans across all patrons."""
    as_of = parse_date(on)
    desk = open_desk()
    try:
        report = desk.get_overdue_report(as_of)
        if not report.loans:
            print_info(f"No overdue loans as of {as_of}.")
            return

        table = Table(title=f"Overdue as of {as_of}", show_header=True, header_style="bold magenta")
        table.add_column("Loan", style="dim", no_wrap=True)
        table.add_column("Patron", style="cyan")
        table.add_column("Item", style="green")
        table.add_column("Type")
        table.add_column("Due", style="yellow")
        table.add_column("Days", justify="right", style="red")
        for loan in report.loans:
            table.add_row(
                loan.id,
                loan.patron_id,
                loan.item_id,
                loan.media_type,
                loan.due_date.isoformat(),
                str(loan.days_overdue),
            )
        console.print(table)
        console.print(
            f"{report.total_overdue} overdue, oldest {report.oldest_overdue_days} day(s)"
        )
    finally:
        desk.close()


@app.command()
def remind(
    patron_id: Optional[str] = typer.Argument(None, help="Patron ID (default: every patron)"),
    on: Optional[str] = typer.Option(None, "--on", help="Reminder date (YYYY-MM-DD), default today"),
    admin: bool = typer.Option(False, "--admin", help="Run with an admin session"),
) -> None:
    """Send overdue reminders."""
    as_of = parse_date(on)
    desk = open_desk(admin)
    try:
        if patron_id:
            result = desk.send_reminder_to_patron(patron_id, as_of)
            exit_on_failure(result)
            print_success(result.message)
        else:
            sent = desk.send_overdue_reminders(as_of)
            print_success(f"Sent reminders to {sent} patron(s)")
    finally:
        desk.close()


# ============================================================================
# Rules Commands
# ============================================================================


def _show_rules(desk: LendingDesk) -> None:
    rules = desk.get_borrowing_rules()
    body = (
        f"Max loans per patron: {rules.max_loans_per_patron}\n"
        f"Loan period: {rules.loan_period_days} days\n"
        f"Restrict for overdue items: {'Yes' if rules.restrict_for_overdue else 'No'}\n"
        f"Restrict for unpaid fines: {'Yes' if rules.restrict_for_unpaid_fines else 'No'}"
    )
    console.print(Panel(body, title="[bold]Borrowing Rules[/bold]", expand=False))


@rules_app.command("show")
def rules_show() -> None:
    """Show the current borrowing rules."""
    desk = open_desk()
    try:
        _show_rules(desk)
    finally:
        desk.close()


@rules_app.command("set")
def rules_set(
    max_loans: Optional[int] = typer.Option(None, "--max-loans", help="Max open loans per patron"),
    loan_period: Optional[int] = typer.Option(None, "--loan-period", help="Default loan period in days"),
    restrict_overdue: Optional[bool] = typer.Option(
        None, "--restrict-overdue/--no-restrict-overdue", help="Block patrons with overdue items"
    ),
    restrict_fines: Optional[bool] = typer.Option(
        None, "--restrict-fines/--no-restrict-fines", help="Block patrons with unpaid fines"
    ),
    admin: bool = typer.Option(False, "--admin", help="Run with an admin session"),
) -> None:
    """Change borrowing rules (admin)."""
    try:
        update = BorrowingRulesUpdate(
            max_loans_per_patron=max_loans,
            loan_period_days=loan_period,
            restrict_for_overdue=restrict_overdue,
            restrict_for_unpaid_fines=restrict_fines,
        )
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)

    desk = open_desk(admin)
    try:
        exit_on_failure(desk.update_borrowing_rules(update))
        print_success("Borrowing rules updated")
        _show_rules(desk)
    finally:
        desk.close()


# ============================================================================
# Patron Commands
# ============================================================================


@patron_app.command("add")
def patron_add(
    name: str = typer.Argument(..., help="Patron name"),
    email: Optional[str] = typer.Option(None, "--email", "-e", help="Email address"),
    patron_id: Optional[str] = typer.Option(None, "--id", help="Patron ID (generated if omitted)"),
) -> None:
    """Register a new patron."""
    desk = open_desk()
    try:
        result = desk.register_patron(name, email, patron_id)
        exit_on_failure(result)
        print_success(f"Registered {result.value.name}")
        console.print(f"  ID: {result.value.id}")
    finally:
        desk.close()


@patron_app.command("deactivate")
def patron_deactivate(
    patron_id: str = typer.Argument(..., help="Patron ID"),
    admin: bool = typer.Option(False, "--admin", help="Run with an admin session"),
) -> None:
    """Unregister a patron with no loans and no unpaid fines (admin)."""
    desk = open_desk(admin)
    try:
        result = desk.unregister_patron(patron_id)
        exit_on_failure(result)
        print_success(result.message)
    finally:
        desk.close()


@patron_app.command("reactivate")
def patron_reactivate(
    patron_id: str = typer.Argument(..., help="Patron ID"),
    admin: bool = typer.Option(False, "--admin", help="Run with an admin session"),
) -> None:
    """Reactivate an unregistered patron (admin)."""
    desk = open_desk(admin)
    try:
        result = desk.reactivate_patron(patron_id)
        exit_on_failure(result)
        print_success(result.message)
    finally:
        desk.close()


@patron_app.command("list")
def patron_list(
    inactive: bool = typer.Option(False, "--inactive", "-i", help="List unregistered patrons"),
) -> None:
    """List patrons."""
    desk = open_desk()
    try:
        patrons = desk.patrons.list_inactive() if inactive else desk.patrons.list_active()
        if not patrons:
            print_info("No patrons found.")
            return

        table = Table(title="Patrons", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="dim", no_wrap=True)
        table.add_column("Name", style="cyan")
        table.add_column("Email", style="green")
        table.add_column("Loans", justify="right")
        table.add_column("Unpaid", justify="right", style="red")
        table.add_column("Can borrow", justify="center")
        for patron in patrons:
            table.add_row(
                patron.id,
                patron.name,
                patron.email or "-",
                str(len(patron.get_loan_ids())),
                format_amount(desk.get_total_unpaid(patron.id)),
                "Yes" if desk.patrons.is_eligible(patron.id) else "No",
            )
        console.print(table)
    finally:
        desk.close()


# ============================================================================
# Item Commands
# ============================================================================


@item_app.command("add")
def item_add(
    title: str = typer.Argument(..., help="Item title"),
    media_type: str = typer.Option("BOOK", "--type", "-t", help="Media type"),
    item_id: Optional[str] = typer.Option(None, "--id", help="Item ID, e.g. an ISBN"),
) -> None:
    """Add an item to the catalogue."""
    desk = open_desk()
    try:
        result = desk.add_item(title, media_type, item_id)
        exit_on_failure(result)
        print_success(f"Added {result.value.media_type} {result.value.title}")
        console.print(f"  ID: {result.value.id}")
    finally:
        desk.close()


@item_app.command("list")
def item_list(
    media_type: Optional[str] = typer.Option(None, "--type", "-t", help="Filter by media type"),
    available: bool = typer.Option(False, "--available", help="Only items on the shelf"),
) -> None:
    """List catalogue items."""
    desk = open_desk()
    try:
        items = desk.list_items(media_type, available_only=available)
        if not items:
            print_info("No items found.")
            return

        table = Table(title="Items", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="dim", no_wrap=True)
        table.add_column("Title", style="cyan", max_width=40)
        table.add_column("Type")
        table.add_column("Status", justify="center")
        for item in items:
            status = "[green]available[/green]" if item.available else "[yellow]on loan[/yellow]"
            table.add_row(item.id, item.title, item.media_type, status)
        console.print(table)
    finally:
        desk.close()


# ============================================================================
# Policy Commands
# ============================================================================


@policy_app.command("show")
def policy_show() -> None:
    """Show the fine and loan period for each media type."""
    desk = open_desk()
    try:
        table = Table(title="Media Policies", show_header=True, header_style="bold magenta")
        table.add_column("Media type", style="cyan")
        table.add_column("Fine", justify="right", style="red")
        table.add_column("Loan period", justify="right")
        media_types = sorted(
            set(desk.policies.registered_media_types()) | set(desk.periods.registered_media_types())
        )
        for media_type in media_types:
            table.add_row(
                media_type,
                format_amount(desk.policies.flat_fine(media_type)),
                f"{desk.periods.period_for(media_type)} days",
            )
        console.print(table)
    finally:
        desk.close()


@policy_app.command("set")
def policy_set(
    media_type: str = typer.Argument(..., help="Media type, e.g. DVD"),
    amount: str = typer.Argument(..., help="Flat fine for an overdue item"),
    loan_period: Optional[int] = typer.Option(None, "--loan-period", help="Loan period in days"),
    admin: bool = typer.Option(False, "--admin", help="Run with an admin session"),
) -> None:
    """Register or change the fine for a media type (admin)."""
    desk = open_desk(admin)
    try:
        result = desk.register_fine_policy(media_type, amount, loan_period)
        exit_on_failure(result)
        print_success(result.message)
    finally:
        desk.close()


# ============================================================================
# Version Command
# ============================================================================


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__

    console.print(f"lendingdesk version {__version__}")


# ============================================================================
# Main Entry Point
# ============================================================================


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
