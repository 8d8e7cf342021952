"""Pure functions for budget state transitions.

This module contains the functional core for budget commands:
- No I/O operations (no database, no console, no files)
- No clock: "today" is always passed in
- Every transition returns a new BudgetState, never mutates one
- Validation happens before any change is built

Transitions return a (new_state, error) tuple. On error the original state
object is returned unchanged.
"""

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal

from allot.dates import add_months, count_due_cycles
from allot.domain.allocation import distribute_increment, reallocate
from allot.domain.events import BudgetError, ErrorKind
from allot.domain.models import (
    MAX_TOTAL_PERCENTAGE,
    AllocationPolicy,
    BudgetCategory,
    BudgetState,
    CategoryId,
    ExpenseId,
    FixedExpense,
    IncomeKind,
    Money,
    to_money,
)

Transition = tuple[BudgetState, BudgetError | None]


@dataclass(frozen=True)
class BudgetSummary:
    """Immutable read-only projection of a budget snapshot."""

    balance: Money
    total_fixed_expenses: Money
    reserved_for_expenses: Money
    available_for_allocation: Money
    total_allocated: Money
    total_remaining: Money
    total_spent: Money
    unallocated_percentage: int
    categories: tuple[BudgetCategory, ...]
    fixed_expenses: tuple[FixedExpense, ...]


def validate_name(name: str) -> tuple[str, BudgetError | None]:
    """Trim a name and reject blank ones.

    Returns:
        Tuple of (trimmed_name, error).
    """
    trimmed = name.strip()
    if not trimmed:
        return trimmed, BudgetError(ErrorKind.INVALID_INPUT, "Name must not be blank")
    return trimmed, None


def validate_amount(amount: Decimal) -> BudgetError | None:
    if amount <= 0:
        return BudgetError(ErrorKind.INVALID_INPUT, "Amount must be positive")
    return None


def validate_percentage(percentage: int, other_total: int) -> BudgetError | None:
    """Validate a category percentage against the rest of the budget.

    Args:
        percentage: Proposed percentage for one category.
        other_total: Sum of every other category's percentage.

    Returns:
        None if valid, otherwise the error.
    """
    if percentage < 1:
        return BudgetError(ErrorKind.INVALID_INPUT, "Percentage must be at least 1")

    if other_total + percentage > MAX_TOTAL_PERCENTAGE:
        available = MAX_TOTAL_PERCENTAGE - other_total
        return BudgetError(
            ErrorKind.PERCENTAGE_EXCEEDED,
            f"Percentages would total {other_total + percentage}%. Only {available}% left to assign",
        )

    return None


def roll_forward_due_expenses(state: BudgetState, today: date) -> BudgetState:
    """Charge every fixed expense that fell due on or before today.

    Each elapsed monthly cycle subtracts the expense amount from the balance
    once, and the due date moves forward by whole months on the expense's
    anchor day until it is strictly after today. The result depends only on
    today, not on how many times the function ran before.

    Args:
        state: Current snapshot.
        today: The current date.

    Returns:
        New snapshot, or the same object when nothing was due.
    """
    balance = state.balance
    changed = False
    expenses: list[FixedExpense] = []

    for expense in state.fixed_expenses:
        cycles = count_due_cycles(expense.next_due_date, today, expense.anchor_day)
        if cycles == 0:
            expenses.append(expense)
            continue

        changed = True
        balance = to_money(balance - expense.amount * cycles)
        day = expense.anchor_day
        expenses.append(
            replace(
                expense,
                next_due_date=add_months(expense.next_due_date, cycles, day),
                due_day=day,
                last_charged_date=add_months(expense.next_due_date, cycles - 1, day),
            )
        )

    if not changed:
        return state

    return replace(state, balance=balance, fixed_expenses=tuple(expenses))


def rebalance(state: BudgetState) -> BudgetState:
    """Re-derive all category allocations from the available pool."""
    return replace(state, categories=reallocate(state.categories, state.available_for_allocation))


def apply_income(state: BudgetState, amount: Decimal, kind: IncomeKind, policy: AllocationPolicy) -> Transition:
    """Add income to the balance and distribute it.

    Under RECOMPUTE, and for paychecks under INCREMENTAL_SUPPLEMENTAL, every
    category is re-derived from the new available pool. Supplemental income
    under INCREMENTAL_SUPPLEMENTAL only adds the new amount's shares.

    Args:
        state: Current snapshot (already rolled forward).
        amount: Income amount.
        kind: Paycheck or supplemental.
        policy: Engine allocation policy.

    Returns:
        Tuple of (new_state, error).
    """
    error = validate_amount(amount)
    if error:
        return state, error

    amount = to_money(amount)
    updated = replace(state, balance=to_money(state.balance + amount), last_income_kind=kind)

    if policy is AllocationPolicy.INCREMENTAL_SUPPLEMENTAL and kind is IncomeKind.SUPPLEMENTAL:
        return replace(updated, categories=distribute_increment(updated.categories, amount)), None

    return rebalance(updated), None


def _rebalance_for_expenses(state: BudgetState, policy: AllocationPolicy) -> BudgetState:
    # Income-based budgets only show a smaller available figure
    if policy.balance_based:
        return rebalance(state)
    return state


def add_fixed_expense(
    state: BudgetState,
    expense_id: ExpenseId,
    name: str,
    amount: Decimal,
    due_date: date,
    policy: AllocationPolicy,
) -> Transition:
    """Append a fixed expense.

    Returns:
        Tuple of (new_state, error).
    """
    trimmed, error = validate_name(name)
    if error:
        return state, error

    error = validate_amount(amount)
    if error:
        return state, error

    expense = FixedExpense(
        id=expense_id, name=trimmed, amount=to_money(amount), next_due_date=due_date, due_day=due_date.day
    )
    updated = replace(state, fixed_expenses=state.fixed_expenses + (expense,))
    return _rebalance_for_expenses(updated, policy), None


def update_fixed_expense(
    state: BudgetState,
    expense_id: str,
    policy: AllocationPolicy,
    name: str | None = None,
    amount: Decimal | None = None,
    due_date: date | None = None,
) -> Transition:
    """Update a fixed expense's name, amount and/or due date.

    An unknown id is a silent no-op: the original state is returned with no
    error.

    Returns:
        Tuple of (new_state, error).
    """
    existing = state.find_expense(expense_id)
    if existing is None:
        return state, None

    changes: dict[str, object] = {}
    if name is not None:
        trimmed, error = validate_name(name)
        if error:
            return state, error
        changes["name"] = trimmed

    if amount is not None:
        error = validate_amount(amount)
        if error:
            return state, error
        changes["amount"] = to_money(amount)

    if due_date is not None:
        changes["next_due_date"] = due_date
        changes["due_day"] = due_date.day

    if not changes:
        return state, None

    updated_expense = replace(existing, **changes)
    expenses = tuple(updated_expense if e.id == expense_id else e for e in state.fixed_expenses)
    return _rebalance_for_expenses(replace(state, fixed_expenses=expenses), policy), None


def update_fixed_expense_due_date(
    state: BudgetState, expense_id: str, due_date: date, policy: AllocationPolicy
) -> Transition:
    return update_fixed_expense(state, expense_id, policy, due_date=due_date)


def remove_fixed_expense(state: BudgetState, expense_id: str, policy: AllocationPolicy) -> Transition:
    """Remove a fixed expense. An unknown id is a silent no-op."""
    if state.find_expense(expense_id) is None:
        return state, None

    expenses = tuple(e for e in state.fixed_expenses if e.id != expense_id)
    return _rebalance_for_expenses(replace(state, fixed_expenses=expenses), policy), None


def add_category(state: BudgetState, category_id: CategoryId, name: str, percentage: int) -> Transition:
    """Append a category and re-derive every allocation.

    Returns:
        Tuple of (new_state, error). PERCENTAGE_EXCEEDED when the total
        would pass 100%.
    """
    trimmed, error = validate_name(name)
    if error:
        return state, error

    error = validate_percentage(percentage, state.total_percentage)
    if error:
        return state, error

    category = BudgetCategory(id=category_id, name=trimmed, percentage=percentage)
    return rebalance(replace(state, categories=state.categories + (category,))), None


def update_category_percentage(state: BudgetState, category_id: str, percentage: int) -> Transition:
    """Change a category's percentage and re-derive every allocation.

    An unknown id is a silent no-op once the percentage itself is valid.

    Returns:
        Tuple of (new_state, error).
    """
    other_total = sum(c.percentage for c in state.categories if c.id != category_id)
    error = validate_percentage(percentage, other_total)
    if error:
        return state, error

    if state.find_category(category_id) is None:
        return state, None

    categories = tuple(
        replace(c, percentage=percentage) if c.id == category_id else c for c in state.categories
    )
    return rebalance(replace(state, categories=categories)), None


def remove_category(state: BudgetState, category_id: str) -> Transition:
    """Remove a category and re-derive the rest. An unknown id is a no-op."""
    if state.find_category(category_id) is None:
        return state, None

    categories = tuple(c for c in state.categories if c.id != category_id)
    return rebalance(replace(state, categories=categories)), None


def record_spend(state: BudgetState, category_id: str, amount: Decimal, policy: AllocationPolicy) -> Transition:
    """Deduct a spend from a category's remaining amount.

    All checks run before anything changes: a failed spend leaves both the
    category and the balance untouched.

    Returns:
        Tuple of (new_state, error).
    """
    error = validate_amount(amount)
    if error:
        return state, error

    category = state.find_category(category_id)
    if category is None:
        return state, BudgetError(ErrorKind.NOT_FOUND, f"Category not found: {category_id}")

    amount = to_money(amount)
    new_remaining = to_money(category.remaining_amount - amount)
    if new_remaining < 0:
        return state, BudgetError(
            ErrorKind.INSUFFICIENT_REMAINING,
            f"Not enough left in {category.name}. Available: {category.remaining_amount:,.2f}",
        )

    categories = tuple(
        replace(c, remaining_amount=new_remaining) if c.id == category_id else c for c in state.categories
    )
    balance = to_money(state.balance - amount) if policy.balance_based else state.balance
    return replace(state, balance=balance, categories=categories), None


def compute_budget_summary(state: BudgetState) -> BudgetSummary:
    """Compute the read-only projection shown to the user.

    Args:
        state: Current snapshot.

    Returns:
        BudgetSummary with derived totals.
    """
    total_allocated = state.total_allocated
    total_remaining = state.total_remaining

    return BudgetSummary(
        balance=state.balance,
        total_fixed_expenses=state.total_fixed_expenses,
        reserved_for_expenses=state.reserved_for_expenses,
        available_for_allocation=state.available_for_allocation,
        total_allocated=total_allocated,
        total_remaining=total_remaining,
        total_spent=to_money(total_allocated - total_remaining),
        unallocated_percentage=MAX_TOTAL_PERCENTAGE - state.total_percentage,
        categories=state.categories,
        fixed_expenses=state.fixed_expenses,
    )
