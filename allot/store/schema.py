"""Database schema initialization and migrations."""

import os
import sqlite3
from pathlib import Path


def get_xdg_data_home() -> Path:
    """Get XDG data directory, with fallback to ~/.local/share."""
    xdg_data = os.environ.get("XDG_DATA_HOME")
    if xdg_data:
        return Path(xdg_data)
    return Path.home() / ".local" / "share"


def get_db_path() -> Path:
    """Get the default database path (XDG compliant)."""
    return get_xdg_data_home() / "allot" / "allot.db"


def database_exists(db_path: Path | None = None) -> bool:
    """Check if the database file exists.

    Args:
        db_path: Path to check. If None, uses default location.

    Returns:
        True if database exists, False otherwise.
    """
    if db_path is None:
        db_path = get_db_path()
    return db_path.exists()


def init_database(db_path: Path | None = None) -> None:
    """Initialize the database with the required schema.

    Amounts are stored as TEXT decimal strings so no precision is lost to
    binary floating point.

    Args:
        db_path: Path to the database file. If None, uses default location.

    Raises:
        sqlite3.Error: If database initialization fails.
    """
    if db_path is None:
        db_path = get_db_path()

    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()

    try:
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS budget_meta (
                key TEXT PRIMARY KEY,
                value TEXT
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS fixed_expenses (
                position INTEGER PRIMARY KEY,
                id TEXT NOT NULL UNIQUE,
                name TEXT NOT NULL,
                amount TEXT NOT NULL,
                due_date TEXT,
                due_day INTEGER,
                last_charged_date TEXT
            )
        """
        )

        # Migrations for databases created before expenses kept their anchor day
        cursor.execute("PRAGMA table_info(fixed_expenses)")
        columns = [row[1] for row in cursor.fetchall()]

        if "due_day" not in columns:
            cursor.execute("ALTER TABLE fixed_expenses ADD COLUMN due_day INTEGER")

        if "last_charged_date" not in columns:
            cursor.execute("ALTER TABLE fixed_expenses ADD COLUMN last_charged_date TEXT")

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS categories (
                position INTEGER PRIMARY KEY,
                id TEXT NOT NULL UNIQUE,
                name TEXT NOT NULL,
                percentage INTEGER NOT NULL,
                allocated TEXT NOT NULL,
                remaining TEXT NOT NULL
            )
        """
        )

        conn.commit()

    except sqlite3.Error:
        conn.rollback()
        raise
    finally:
        conn.close()
