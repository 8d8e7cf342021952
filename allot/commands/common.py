"""Helpers shared by the CLI commands."""

import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path

from rich.console import Console

from allot.config import ConfigError, get_allocation_policy, get_configured_db_path, load_config
from allot.domain.models import BudgetCategory, BudgetState, FixedExpense, Money
from allot.engine import BudgetEngine, CommandResult
from allot.store.state_store import SqliteStateStore

console = Console()


def parse_money(amount_str: str) -> Decimal | None:
    """Parse a money string into an exact decimal.

    Args:
        amount_str: Amount such as "12.50" or "£1,200".

    Returns:
        Decimal amount, or None if invalid or negative.
    """
    cleaned = amount_str.strip().lstrip("£$€").replace(",", "")
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount < 0:
        return None
    return amount


def require_money(amount_str: str) -> Decimal:
    """Parse a money argument or exit with an error."""
    amount = parse_money(amount_str)
    if amount is None:
        console.print(f"[red]Invalid amount: {amount_str}[/red]")
        sys.exit(1)
    return amount


def format_money(amount: Money, symbol: str = "£") -> str:
    if amount < 0:
        return f"-{symbol}{abs(amount):,.2f}"
    return f"{symbol}{amount:,.2f}"


def open_engine(config_path: Path | None = None) -> tuple[BudgetEngine, dict]:
    """Build an engine from the user's config and database.

    Returns:
        Tuple of (engine, config).
    """
    config = load_config(config_path)
    try:
        policy = get_allocation_policy(config)
    except ConfigError as e:
        console.print(f"[red]{e}[/red]", style="bold")
        sys.exit(1)

    store = SqliteStateStore(get_configured_db_path(config))
    return BudgetEngine(store, policy=policy), config


def resolve_category(state: BudgetState, ref: str) -> BudgetCategory | None:
    """Find a category by id, 1-based index, or name (case-insensitive)."""
    category = state.find_category(ref)
    if category is not None:
        return category

    if ref.isdigit():
        idx = int(ref) - 1
        if 0 <= idx < len(state.categories):
            return state.categories[idx]
        return None

    for category in state.categories:
        if category.name.lower() == ref.strip().lower():
            return category
    return None


def resolve_expense(state: BudgetState, ref: str) -> FixedExpense | None:
    """Find a fixed expense by id, 1-based index, or name (case-insensitive)."""
    expense = state.find_expense(ref)
    if expense is not None:
        return expense

    if ref.isdigit():
        idx = int(ref) - 1
        if 0 <= idx < len(state.fixed_expenses):
            return state.fixed_expenses[idx]
        return None

    for expense in state.fixed_expenses:
        if expense.name.lower() == ref.strip().lower():
            return expense
    return None


def report_result(result: CommandResult, success_message: str) -> None:
    """Print a command outcome, exiting 1 on failure."""
    if result.error is not None:
        console.print(f"[red]{result.error.message}[/red]")
        sys.exit(1)

    console.print(f"[green]✓ {success_message}[/green]")
