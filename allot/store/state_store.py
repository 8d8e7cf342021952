"""Storage collaborators for the budget engine.

The engine only needs two operations: load the last snapshot (or None) and
save a new one. Loading never fails hard; malformed data is logged and
treated as "no snapshot" so the engine starts from a zeroed state.
"""

import logging
import sqlite3
from decimal import InvalidOperation
from pathlib import Path
from typing import Protocol

from allot.domain.models import BudgetState
from allot.store.queries import load_snapshot, save_snapshot, snapshot_from_dict, snapshot_to_dict
from allot.store.schema import database_exists, get_db_path, init_database

logger = logging.getLogger(__name__)

_MALFORMED_ERRORS = (KeyError, TypeError, ValueError, InvalidOperation)


class StateStore(Protocol):
    def load(self) -> BudgetState | None: ...

    def save(self, state: BudgetState) -> None: ...


class SqliteStateStore:
    """Persist snapshots in the sqlite database."""

    def __init__(self, db_path: Path | None = None) -> None:
        self.db_path = db_path if db_path is not None else get_db_path()

    def load(self) -> BudgetState | None:
        if not database_exists(self.db_path):
            return None

        try:
            # Brings databases from older versions up to the current schema
            init_database(self.db_path)
            raw = load_snapshot(self.db_path)
        except sqlite3.Error as e:
            logger.warning("Could not read budget snapshot from %s: %s", self.db_path, e)
            return None

        if raw is None:
            return None

        try:
            return snapshot_from_dict(raw)
        except _MALFORMED_ERRORS as e:
            logger.warning("Ignoring malformed budget snapshot in %s: %s", self.db_path, e)
            return None

    def save(self, state: BudgetState) -> None:
        """Write the snapshot, creating the schema on first use.

        Raises:
            sqlite3.Error: If the write fails.
        """
        init_database(self.db_path)
        save_snapshot(snapshot_to_dict(state), self.db_path)


class InMemoryStateStore:
    """Keep the last saved snapshot in memory."""

    def __init__(self, initial: BudgetState | None = None, fail_on_save: bool = False) -> None:
        self.saved: BudgetState | None = initial
        self.fail_on_save = fail_on_save
        self.save_count = 0

    def load(self) -> BudgetState | None:
        return self.saved

    def save(self, state: BudgetState) -> None:
        if self.fail_on_save:
            raise OSError("Simulated storage failure")
        self.saved = state
        self.save_count += 1
