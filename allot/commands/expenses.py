"""Fixed expense commands."""

import sys
from datetime import date

from allot.commands.common import console, format_money, open_engine, report_result, require_money, resolve_expense
from allot.dates import parse_date
from allot.domain.events import PersistError


def _require_date(value: str) -> date:
    try:
        return parse_date(value)
    except ValueError:
        console.print(f"[red]Invalid date: {value} (expected YYYY-MM-DD)[/red]")
        sys.exit(1)


def expense_add_command(name: str, amount_str: str, due: str | None = None) -> None:
    """Add a monthly fixed expense."""
    amount = require_money(amount_str)
    due_date = _require_date(due) if due else date.today()
    engine, config = open_engine()

    try:
        result = engine.add_fixed_expense(name, amount, due_date)
    except PersistError as e:
        console.print(f"[red]{e}[/red]", style="bold")
        sys.exit(1)

    report_result(result, f"Added {name.strip()} ({format_money(amount, config['currency_symbol'])} monthly)")
    added = result.state.fixed_expenses[-1]
    console.print(f"[dim]Next due: {added.next_due_date.isoformat()}  ID: {added.id}[/dim]")


def expense_update_command(
    expense_ref: str,
    name: str | None = None,
    amount_str: str | None = None,
    due: str | None = None,
) -> None:
    """Update a fixed expense's name, amount or due date."""
    amount = require_money(amount_str) if amount_str is not None else None
    due_date = _require_date(due) if due else None
    engine, _ = open_engine()

    expense = resolve_expense(engine.state, expense_ref)
    if expense is None:
        console.print(f"[yellow]No fixed expense matching '{expense_ref}'[/yellow]")
        return

    try:
        result = engine.update_fixed_expense(expense.id, name=name, amount=amount, due_date=due_date)
    except PersistError as e:
        console.print(f"[red]{e}[/red]", style="bold")
        sys.exit(1)

    report_result(result, f"Updated {expense.name}")


def expense_remove_command(expense_ref: str) -> None:
    """Remove a fixed expense."""
    engine, _ = open_engine()

    expense = resolve_expense(engine.state, expense_ref)
    if expense is None:
        console.print(f"[yellow]No fixed expense matching '{expense_ref}'[/yellow]")
        return

    try:
        result = engine.remove_fixed_expense(expense.id)
    except PersistError as e:
        console.print(f"[red]{e}[/red]", style="bold")
        sys.exit(1)

    report_result(result, f"Removed {expense.name}")
