"""Budget commands: status, income, spending and refresh."""

import sys

from rich.table import Table

from allot.commands.common import (
    console,
    format_money,
    open_engine,
    report_result,
    require_money,
    resolve_category,
)
from allot.domain.budget import BudgetSummary
from allot.domain.events import PersistError
from allot.domain.models import IncomeKind


def show_budget_status(summary: BudgetSummary, symbol: str) -> None:
    """Render the budget summary and category table."""
    console.print("[bold cyan]Budget Status[/bold cyan]\n")

    console.print(f"[bold]Balance:[/bold]           {format_money(summary.balance, symbol)}")
    console.print(f"[bold]Fixed Expenses:[/bold]    {format_money(summary.total_fixed_expenses, symbol)}")
    console.print(f"[bold]Still to Pay:[/bold]      {format_money(summary.reserved_for_expenses, symbol)}")
    console.print(f"[bold]Available:[/bold]         {format_money(summary.available_for_allocation, symbol)}")
    console.print(f"[bold]Total Allocated:[/bold]   {format_money(summary.total_allocated, symbol)}")
    console.print(f"[bold]Total Remaining:[/bold]   {format_money(summary.total_remaining, symbol)}")

    if summary.fixed_expenses:
        console.print("\n[bold]Fixed Expenses:[/bold]\n")
        expense_table = Table(show_header=True, header_style="bold")
        expense_table.add_column("#", style="dim", justify="right")
        expense_table.add_column("Name", style="white")
        expense_table.add_column("Amount", justify="right")
        expense_table.add_column("Next Due", style="cyan")
        expense_table.add_column("Paid", justify="center")
        expense_table.add_column("ID", style="dim")

        for idx, expense in enumerate(summary.fixed_expenses, 1):
            expense_table.add_row(
                str(idx),
                expense.name,
                format_money(expense.amount, symbol),
                expense.next_due_date.isoformat(),
                "[green]✓[/green]" if expense.charged_this_cycle else "",
                expense.id,
            )
        console.print(expense_table)

    if not summary.categories:
        console.print("\n[dim]No categories yet. Use 'allot category add' to create one[/dim]")
        return

    console.print("\n[bold]Categories:[/bold]\n")
    table = Table(show_header=True, header_style="bold")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Category", style="white")
    table.add_column("%", justify="right")
    table.add_column("Allocated", justify="right")
    table.add_column("Spent", justify="right")
    table.add_column("Remaining", justify="right")
    table.add_column("ID", style="dim")

    for idx, category in enumerate(summary.categories, 1):
        if category.remaining_amount == 0 and category.allocated_amount > 0:
            remaining_display = f"[red]{format_money(category.remaining_amount, symbol)}[/red]"
        elif category.remaining_amount == category.allocated_amount:
            remaining_display = f"[dim]{format_money(category.remaining_amount, symbol)}[/dim]"
        else:
            remaining_display = f"[green]{format_money(category.remaining_amount, symbol)}[/green]"

        table.add_row(
            str(idx),
            category.name,
            str(category.percentage),
            format_money(category.allocated_amount, symbol),
            format_money(category.spent_amount, symbol),
            remaining_display,
            category.id,
        )

    console.print(table)

    if summary.unallocated_percentage > 0:
        console.print(f"\n[yellow]{summary.unallocated_percentage}% not assigned to any category[/yellow]")


def status_command() -> None:
    """Show the current budget."""
    engine, config = open_engine()
    try:
        engine.refresh()
    except PersistError as e:
        console.print(f"[red]{e}[/red]", style="bold")
        sys.exit(1)
    show_budget_status(engine.summary(), config["currency_symbol"])


def income_command(amount_str: str, supplemental: bool = False) -> None:
    """Record income and distribute it across categories."""
    amount = require_money(amount_str)
    engine, config = open_engine()
    kind = IncomeKind.SUPPLEMENTAL if supplemental else IncomeKind.PAYCHECK

    try:
        result = engine.add_income(amount, kind)
    except PersistError as e:
        console.print(f"[red]{e}[/red]", style="bold")
        sys.exit(1)

    symbol = config["currency_symbol"]
    report_result(result, f"Recorded {kind.value} income of {format_money(amount, symbol)}")
    console.print(f"[dim]Available for allocation: {format_money(result.state.available_for_allocation, symbol)}[/dim]")


def spend_command(category_ref: str, amount_str: str) -> None:
    """Record spending against a category."""
    amount = require_money(amount_str)
    engine, config = open_engine()

    category = resolve_category(engine.state, category_ref)
    # Unknown refs fall through to the engine's NOT_FOUND outcome
    category_id = category.id if category is not None else category_ref

    try:
        result = engine.record_category_spend(category_id, amount)
    except PersistError as e:
        console.print(f"[red]{e}[/red]", style="bold")
        sys.exit(1)

    symbol = config["currency_symbol"]
    spent_in = category.name if category is not None else category_ref
    report_result(result, f"Spent {format_money(amount, symbol)} from {spent_in}")

    updated = result.state.find_category(category_id)
    if updated is not None:
        console.print(f"[dim]Remaining: {format_money(updated.remaining_amount, symbol)}[/dim]")


def refresh_command() -> None:
    """Charge any fixed expenses that fell due."""
    engine, config = open_engine()
    before = engine.state.balance

    try:
        result = engine.refresh()
    except PersistError as e:
        console.print(f"[red]{e}[/red]", style="bold")
        sys.exit(1)

    if not result.changed:
        console.print("[dim]No fixed expenses due[/dim]")
        return

    charged = before - result.state.balance
    console.print(f"[green]✓ Charged {format_money(charged, config['currency_symbol'])} in fixed expenses[/green]")
