"""Domain type definitions for allot.

These types describe the budget snapshot the engine works on:
- Money: exact decimal amount, normalized to 2 places (half-up)
- ExpenseId / CategoryId: opaque identifiers
- FixedExpense, BudgetCategory, BudgetState: immutable snapshot values
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import NewType

from allot.dates import add_months

# Money amounts are exact decimals, never binary floats
Money = NewType("Money", Decimal)

ExpenseId = NewType("ExpenseId", str)

CategoryId = NewType("CategoryId", str)

CENT = Decimal("0.01")

# Precision used for intermediate percentage ratios before the final rounding
RATIO_PLACES = 6

MAX_TOTAL_PERCENTAGE = 100


def to_money(value: Decimal | int | str) -> Money:
    """Normalize a value to a 2-place Money amount.

    Args:
        value: Decimal, integer or decimal string.

    Returns:
        Money rounded half-up to 2 decimal places.

    Raises:
        TypeError: If value is a float (binary floats lose precision).
        decimal.InvalidOperation: If a string is not a valid decimal.
    """
    if isinstance(value, float):
        raise TypeError("Money cannot be built from a float, use Decimal or str")
    return Money(Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))


ZERO = to_money(0)


class IncomeKind(str, Enum):
    """How an income entry should be distributed."""

    PAYCHECK = "paycheck"
    SUPPLEMENTAL = "supplemental"


class AllocationPolicy(str, Enum):
    """Allocation policy for the engine.

    RECOMPUTE is balance-based: fixed expenses roll forward against the
    balance, spending reduces the balance, and every change re-derives
    category allocations from the available pool.

    INCREMENTAL_SUPPLEMENTAL is income-based: the balance is total income,
    supplemental income is distributed on top of existing allocations and
    fixed expenses only reduce the displayed available figure.
    """

    RECOMPUTE = "recompute"
    INCREMENTAL_SUPPLEMENTAL = "incremental_supplemental"

    @property
    def balance_based(self) -> bool:
        return self is AllocationPolicy.RECOMPUTE


@dataclass(frozen=True)
class FixedExpense:
    """Immutable recurring monthly expense.

    due_day is the day of month the expense is anchored on. It differs from
    next_due_date.day once a due date has been clamped to a short month
    (31st -> Feb 28). last_charged_date is the due date of the most recent
    cycle charged against the balance.
    """

    id: ExpenseId
    name: str
    amount: Money
    next_due_date: date
    due_day: int | None = None
    last_charged_date: date | None = None

    @property
    def anchor_day(self) -> int:
        return self.due_day if self.due_day is not None else self.next_due_date.day

    @property
    def charged_this_cycle(self) -> bool:
        """True when the cycle ending at next_due_date has been paid already."""
        if self.last_charged_date is None:
            return False
        return self.last_charged_date >= add_months(self.next_due_date, -1, self.anchor_day)


@dataclass(frozen=True)
class BudgetCategory:
    """Immutable percentage-based spending category."""

    id: CategoryId
    name: str
    percentage: int
    allocated_amount: Money = ZERO
    remaining_amount: Money = ZERO

    @property
    def spent_amount(self) -> Money:
        return Money(self.allocated_amount - self.remaining_amount)


@dataclass(frozen=True)
class BudgetState:
    """Immutable budget snapshot (the aggregate root).

    Commands never mutate a snapshot, they build a new one with
    dataclasses.replace. Expense and category order is insertion order.
    """

    balance: Money = ZERO
    fixed_expenses: tuple[FixedExpense, ...] = field(default_factory=tuple)
    categories: tuple[BudgetCategory, ...] = field(default_factory=tuple)
    last_income_kind: IncomeKind | None = None

    @property
    def total_fixed_expenses(self) -> Money:
        return to_money(sum((e.amount for e in self.fixed_expenses), Decimal(0)))

    @property
    def reserved_for_expenses(self) -> Money:
        """Fixed expenses still to be charged for their current cycle.

        An expense already charged against the balance for the cycle that
        ends at its next due date is not held back a second time.
        """
        unpaid = (e.amount for e in self.fixed_expenses if not e.charged_this_cycle)
        return to_money(sum(unpaid, Decimal(0)))

    @property
    def available_for_allocation(self) -> Money:
        available = self.balance - self.reserved_for_expenses
        return to_money(max(available, Decimal(0)))

    @property
    def total_percentage(self) -> int:
        return sum(c.percentage for c in self.categories)

    @property
    def total_allocated(self) -> Money:
        return to_money(sum((c.allocated_amount for c in self.categories), Decimal(0)))

    @property
    def total_remaining(self) -> Money:
        return to_money(sum((c.remaining_amount for c in self.categories), Decimal(0)))

    def find_expense(self, expense_id: str) -> FixedExpense | None:
        for expense in self.fixed_expenses:
            if expense.id == expense_id:
                return expense
        return None

    def find_category(self, category_id: str) -> BudgetCategory | None:
        for category in self.categories:
            if category.id == category_id:
                return category
        return None
