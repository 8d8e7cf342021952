"""Outcome events and error taxonomy for budget commands."""

from dataclasses import dataclass
from enum import Enum


class BudgetEvent(str, Enum):
    """One event is emitted per completed command."""

    INCOME_RECORDED = "income_recorded"
    FIXED_EXPENSE_ADDED = "fixed_expense_added"
    FIXED_EXPENSE_UPDATED = "fixed_expense_updated"
    FIXED_EXPENSE_REMOVED = "fixed_expense_removed"
    CATEGORY_ADDED = "category_added"
    CATEGORY_UPDATED = "category_updated"
    CATEGORY_REMOVED = "category_removed"
    SPEND_RECORDED = "spend_recorded"
    EXPENSES_ROLLED_FORWARD = "expenses_rolled_forward"
    INVALID_INPUT = "invalid_input"
    INVALID_SPEND = "invalid_spend"
    INVALID_CATEGORY_PERCENTAGE = "invalid_category_percentage"


class ErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    PERCENTAGE_EXCEEDED = "percentage_exceeded"
    INSUFFICIENT_REMAINING = "insufficient_remaining"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class BudgetError:
    """Immutable validation failure, returned rather than raised."""

    kind: ErrorKind
    message: str


class PersistError(Exception):
    """Raised when the storage collaborator fails to save a snapshot."""
