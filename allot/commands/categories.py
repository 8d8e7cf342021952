"""Budget category commands."""

import sys

from allot.commands.common import console, format_money, open_engine, report_result, resolve_category
from allot.domain.events import PersistError


def category_add_command(name: str, percentage: int) -> None:
    """Add a percentage-based category."""
    engine, config = open_engine()

    try:
        result = engine.add_category(name, percentage)
    except PersistError as e:
        console.print(f"[red]{e}[/red]", style="bold")
        sys.exit(1)

    report_result(result, f"Added {name.strip()} at {percentage}%")
    added = result.state.categories[-1]
    console.print(
        f"[dim]Allocated: {format_money(added.allocated_amount, config['currency_symbol'])}  ID: {added.id}[/dim]"
    )


def category_update_command(category_ref: str, percentage: int) -> None:
    """Change a category's percentage."""
    engine, _ = open_engine()

    category = resolve_category(engine.state, category_ref)
    if category is None:
        console.print(f"[yellow]No category matching '{category_ref}'[/yellow]")
        return

    try:
        result = engine.update_category_percentage(category.id, percentage)
    except PersistError as e:
        console.print(f"[red]{e}[/red]", style="bold")
        sys.exit(1)

    report_result(result, f"{category.name} now at {percentage}%")


def category_remove_command(category_ref: str) -> None:
    """Remove a category."""
    engine, _ = open_engine()

    category = resolve_category(engine.state, category_ref)
    if category is None:
        console.print(f"[yellow]No category matching '{category_ref}'[/yellow]")
        return

    try:
        result = engine.remove_category(category.id)
    except PersistError as e:
        console.print(f"[red]{e}[/red]", style="bold")
        sys.exit(1)

    report_result(result, f"Removed {category.name}")
