"""CLI entry point for allot."""

import logging

import typer
from rich.logging import RichHandler

from allot.commands.admin import backup_command, export_command, init_command
from allot.commands.budget import income_command, refresh_command, spend_command, status_command
from allot.commands.categories import category_add_command, category_remove_command, category_update_command
from allot.commands.expenses import expense_add_command, expense_remove_command, expense_update_command

app = typer.Typer(
    name="allot",
    help="allot - split your income across percentage-based categories",
    add_completion=False,
)

expense_app = typer.Typer(help="Manage monthly fixed expenses.")
category_app = typer.Typer(help="Manage percentage-based budget categories.")
app.add_typer(expense_app, name="expense")
app.add_typer(category_app, name="category")


def configure_logging(verbose: bool) -> None:
    """Send log records through rich; DEBUG when verbose, WARNING otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """allot - split your income across percentage-based categories."""
    configure_logging(verbose)


@app.command(name="init")
def init(
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite existing database and config"),
    migrate: bool = typer.Option(False, "--migrate", help="Update the database schema only"),
) -> None:
    """Initialize allot database and configuration."""
    init_command(force, migrate)


@app.command(name="backup")
def backup(
    output_dir: str = typer.Option(None, "--output", "-o", help="Backup directory (default: beside the database)"),
) -> None:
    """Backup your database and configuration files."""
    backup_command(output_dir)


@app.command(name="export")
def export(
    output: str = typer.Option(None, "--output", "-o", help="Write JSON to this file instead of the terminal"),
) -> None:
    """Export your budget as JSON."""
    export_command(output)


@app.command()
def status() -> None:
    """Show your balance, fixed expenses and categories."""
    status_command()


@app.command()
def income(
    amount: str,
    supplemental: bool = typer.Option(
        False, "--supplemental", "-s", help="Add on top of existing allocations instead of a paycheck"
    ),
) -> None:
    """Record income and distribute it across your categories."""
    income_command(amount, supplemental)


@app.command()
def spend(
    category: str,
    amount: str,
) -> None:
    """Record spending from a category (id, number or name)."""
    spend_command(category, amount)


@app.command()
def refresh() -> None:
    """Charge fixed expenses that have fallen due."""
    refresh_command()


@expense_app.command(name="add")
def expense_add(
    name: str,
    amount: str,
    due: str = typer.Option(None, "--due", help="Next due date (YYYY-MM-DD, default: today)"),
) -> None:
    """Add a monthly fixed expense."""
    expense_add_command(name, amount, due)


@expense_app.command(name="update")
def expense_update(
    expense: str,
    name: str = typer.Option(None, "--name", help="New name"),
    amount: str = typer.Option(None, "--amount", help="New monthly amount"),
    due: str = typer.Option(None, "--due", help="New next due date (YYYY-MM-DD)"),
) -> None:
    """Update a fixed expense (id, number or name)."""
    expense_update_command(expense, name, amount, due)


@expense_app.command(name="remove")
def expense_remove(expense: str) -> None:
    """Remove a fixed expense (id, number or name)."""
    expense_remove_command(expense)


@category_app.command(name="add")
def category_add(name: str, percentage: int) -> None:
    """Add a category taking a percentage of available funds."""
    category_add_command(name, percentage)


@category_app.command(name="update")
def category_update(category: str, percentage: int) -> None:
    """Change a category's percentage (id, number or name)."""
    category_update_command(category, percentage)


@category_app.command(name="remove")
def category_remove(category: str) -> None:
    """Remove a category (id, number or name)."""
    category_remove_command(category)


if __name__ == "__main__":
    app()
