"""Domain models and types for allot.

This package contains the functional core:
- Pure functions with no side effects
- No I/O operations
- Easy to test
- Business logic separated from infrastructure
"""

from allot.domain.events import BudgetError, BudgetEvent, ErrorKind, PersistError
from allot.domain.models import (
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

__all__ = [
    "AllocationPolicy",
    "BudgetCategory",
    "BudgetError",
    "BudgetEvent",
    "BudgetState",
    "CategoryId",
    "ErrorKind",
    "ExpenseId",
    "FixedExpense",
    "IncomeKind",
    "Money",
    "PersistError",
    "to_money",
]
