"""Database query functions and the snapshot encoding.

A snapshot is encoded as a plain dictionary of strings and integers. Every
amount is a decimal string such as "1000.00", never a float. The same
encoding is used by the sqlite tables and by `allot export`.
"""

import sqlite3
import uuid
from datetime import date
from pathlib import Path
from typing import Any

from allot.dates import parse_date
from allot.domain.models import (
    BudgetCategory,
    BudgetState,
    CategoryId,
    ExpenseId,
    FixedExpense,
    IncomeKind,
    to_money,
)
from allot.store.schema import get_db_path

BALANCE_KEY = "balance"
LAST_INCOME_KIND_KEY = "last_income_kind"


def _connect(db_path: Path | None = None) -> sqlite3.Connection:
    """Create a database connection with row factory.

    Args:
        db_path: Path to the database file. If None, uses default location.

    Returns:
        Database connection with row_factory configured.
    """
    if db_path is None:
        db_path = get_db_path()
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def snapshot_to_dict(state: BudgetState) -> dict[str, Any]:
    """Encode a snapshot with exact decimal strings.

    Args:
        state: Snapshot to encode.

    Returns:
        JSON-compatible dictionary.
    """
    return {
        BALANCE_KEY: str(state.balance),
        LAST_INCOME_KIND_KEY: state.last_income_kind.value if state.last_income_kind else None,
        "fixed_expenses": [
            {
                "id": expense.id,
                "name": expense.name,
                "amount": str(expense.amount),
                "due_date": expense.next_due_date.isoformat(),
                "due_day": expense.due_day,
                "last_charged_date": expense.last_charged_date.isoformat() if expense.last_charged_date else None,
            }
            for expense in state.fixed_expenses
        ],
        "categories": [
            {
                "id": category.id,
                "name": category.name,
                "percentage": category.percentage,
                "allocated": str(category.allocated_amount),
                "remaining": str(category.remaining_amount),
            }
            for category in state.categories
        ],
    }


def snapshot_from_dict(data: dict[str, Any], today: date | None = None) -> BudgetState:
    """Decode a snapshot produced by snapshot_to_dict.

    Missing ids are regenerated and a missing due date falls back to today.

    Args:
        data: Encoded snapshot.
        today: Fallback due date. If None, uses date.today().

    Returns:
        Decoded BudgetState.

    Raises:
        KeyError, TypeError, ValueError, decimal.InvalidOperation: If the
        data is malformed.
    """
    if today is None:
        today = date.today()

    expenses = []
    for item in data.get("fixed_expenses") or []:
        due_raw = item.get("due_date")
        charged_raw = item.get("last_charged_date")
        due_day = item.get("due_day")
        expenses.append(
            FixedExpense(
                id=ExpenseId(item.get("id") or str(uuid.uuid4())),
                name=item["name"],
                amount=to_money(item["amount"]),
                next_due_date=parse_date(due_raw) if due_raw else today,
                due_day=int(due_day) if due_day is not None else None,
                last_charged_date=parse_date(charged_raw) if charged_raw else None,
            )
        )

    categories = []
    for item in data.get("categories") or []:
        categories.append(
            BudgetCategory(
                id=CategoryId(item.get("id") or str(uuid.uuid4())),
                name=item["name"],
                percentage=int(item["percentage"]),
                allocated_amount=to_money(item.get("allocated") or "0"),
                remaining_amount=to_money(item.get("remaining") or "0"),
            )
        )

    kind_raw = data.get(LAST_INCOME_KIND_KEY)

    return BudgetState(
        balance=to_money(data.get(BALANCE_KEY) or "0"),
        fixed_expenses=tuple(expenses),
        categories=tuple(categories),
        last_income_kind=IncomeKind(kind_raw) if kind_raw else None,
    )


def save_snapshot(snapshot: dict[str, Any], db_path: Path | None = None) -> None:
    """Replace the stored snapshot in a single transaction.

    Args:
        snapshot: Encoded snapshot from snapshot_to_dict.
        db_path: Path to the database file. If None, uses default location.

    Raises:
        sqlite3.Error: If database operation fails.
    """
    with _connect(db_path) as conn:
        cursor = conn.cursor()
        try:
            cursor.execute("DELETE FROM fixed_expenses")
            cursor.execute("DELETE FROM categories")

            cursor.executemany(
                "INSERT OR REPLACE INTO budget_meta (key, value) VALUES (?, ?)",
                [
                    (BALANCE_KEY, snapshot[BALANCE_KEY]),
                    (LAST_INCOME_KIND_KEY, snapshot[LAST_INCOME_KIND_KEY]),
                ],
            )

            cursor.executemany(
                "INSERT INTO fixed_expenses (position, id, name, amount, due_date, due_day, last_charged_date) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                [
                    (
                        position,
                        item["id"],
                        item["name"],
                        item["amount"],
                        item["due_date"],
                        item["due_day"],
                        item["last_charged_date"],
                    )
                    for position, item in enumerate(snapshot["fixed_expenses"])
                ],
            )

            cursor.executemany(
                "INSERT INTO categories (position, id, name, percentage, allocated, remaining) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                [
                    (
                        position,
                        item["id"],
                        item["name"],
                        item["percentage"],
                        item["allocated"],
                        item["remaining"],
                    )
                    for position, item in enumerate(snapshot["categories"])
                ],
            )
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise


def load_snapshot(db_path: Path | None = None) -> dict[str, Any] | None:
    """Read the stored snapshot.

    Args:
        db_path: Path to the database file. If None, uses default location.

    Returns:
        Encoded snapshot, or None if nothing has been saved yet.

    Raises:
        sqlite3.Error: If database operation fails.
    """
    with _connect(db_path) as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT key, value FROM budget_meta")
        meta = {row["key"]: row["value"] for row in cursor.fetchall()}
        if BALANCE_KEY not in meta:
            return None

        cursor.execute(
            "SELECT id, name, amount, due_date, due_day, last_charged_date FROM fixed_expenses ORDER BY position"
        )
        expenses = [dict(row) for row in cursor.fetchall()]

        cursor.execute(
            "SELECT id, name, percentage, allocated, remaining FROM categories ORDER BY position"
        )
        categories = [dict(row) for row in cursor.fetchall()]

    return {
        BALANCE_KEY: meta[BALANCE_KEY],
        LAST_INCOME_KIND_KEY: meta.get(LAST_INCOME_KIND_KEY),
        "fixed_expenses": expenses,
        "categories": categories,
    }


def backup_database(db_path: Path, target: Path) -> None:
    """Copy the database with sqlite's online backup.

    A snapshot being saved while the copy runs cannot leave a torn file.

    Args:
        db_path: Database to copy.
        target: Destination file, created or overwritten.

    Raises:
        sqlite3.Error: If either database cannot be opened or copied.
    """
    source = sqlite3.connect(db_path)
    try:
        destination = sqlite3.connect(target)
        try:
            source.backup(destination)
        finally:
            destination.close()
    finally:
        source.close()
