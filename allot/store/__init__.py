"""Database store layer - provides persistence for the application.

This module re-exports the storage collaborators and query functions.
"""

from allot.store.queries import load_snapshot, save_snapshot, snapshot_from_dict, snapshot_to_dict
from allot.store.schema import database_exists, get_db_path, init_database
from allot.store.state_store import InMemoryStateStore, SqliteStateStore, StateStore

__all__ = [
    # Schema
    "database_exists",
    "get_db_path",
    "init_database",
    # Queries
    "load_snapshot",
    "save_snapshot",
    "snapshot_from_dict",
    "snapshot_to_dict",
    # Collaborators
    "InMemoryStateStore",
    "SqliteStateStore",
    "StateStore",
]
