"""Admin commands for init, backup and export."""

import json
import shutil
import sqlite3
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

from allot.commands.common import console, open_engine
from allot.config import create_default_config, get_config_path, get_configured_db_path, load_config
from allot.store.queries import backup_database, snapshot_to_dict
from allot.store.schema import init_database


def _locate_files() -> tuple[Path, dict[str, Any], Path]:
    """Return the config path, its loaded values and the database it points at."""
    config_path = get_config_path()
    config = load_config(config_path)
    return config_path, config, get_configured_db_path(config)


def backup_command(output_dir: str | None = None) -> None:
    """Back up the budget database and, when there is one, the config file.

    Backups go next to the configured database unless a directory is given.
    """
    config_path, _, db_path = _locate_files()

    if not db_path.exists():
        console.print(f"[red]No budget database at {db_path}. Run 'allot init' first.[/red]", style="bold")
        sys.exit(1)

    backup_dir = Path(output_dir).expanduser() if output_dir else db_path.parent / "backups"
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    db_backup = backup_dir / f"{db_path.stem}_{stamp}.db"

    try:
        backup_dir.mkdir(parents=True, exist_ok=True)
        backup_database(db_path, db_backup)
        console.print(f"[green]✓[/green] Budget saved to: {db_backup}")

        if config_path.exists():
            config_backup = backup_dir / f"config_{stamp}.toml"
            shutil.copy2(config_path, config_backup)
            console.print(f"[green]✓[/green] Config saved to: {config_backup}")
        else:
            console.print("[dim]No config file, defaults in use[/dim]")

    except sqlite3.Error as e:
        console.print(f"[red]Backup failed: {e}[/red]", style="bold")
        sys.exit(1)
    except OSError as e:
        console.print(f"[red]Backup failed: {e}[/red]", style="bold")
        sys.exit(1)


def run_migration(db_path: Path) -> None:
    """Bring an existing database up to the current schema."""
    console.print(f"[cyan]Updating schema of {db_path}...[/cyan]")
    init_database(db_path)
    console.print("[green]✓[/green] Database schema is up to date")


def run_full_init(db_path: Path, config_path: Path, config: dict[str, Any]) -> None:
    """Write a fresh config and an empty database.

    A custom db_path from the previous config is carried over so the new
    config keeps pointing at the database created here.
    """
    console.print(f"[cyan]Writing config to {config_path}...[/cyan]")
    create_default_config(config_path, config.get("db_path"))
    console.print("[green]✓[/green] Config file created (permissions: 600)")

    if db_path.exists():
        db_path.unlink()
    console.print(f"[cyan]Creating budget database at {db_path}...[/cyan]")
    init_database(db_path)
    console.print("[green]✓[/green] Database initialized")

    console.print("\n[green]Ready. Add income with 'allot income' to get started.[/green]", style="bold")


def init_command(force: bool = False, migrate: bool = False) -> None:
    """Create the allot config and database, or migrate an existing database."""
    config_path, config, db_path = _locate_files()
    db_exists = db_path.exists()
    config_exists = config_path.exists()

    try:
        if migrate:
            if not db_exists:
                console.print(f"[red]No database to migrate at {db_path}[/red]", style="bold")
                sys.exit(1)
            run_migration(db_path)
            return

        if not force and (db_exists or config_exists):
            console.print("[red]Already initialized:[/red]", style="bold")
            if db_exists:
                console.print(f"  Database: {db_path}")
            if config_exists:
                console.print(f"  Config: {config_path}")
            console.print("\n[yellow]Use --force to start over, or --migrate to update the schema[/yellow]")
            sys.exit(1)

        run_full_init(db_path, config_path, config)

    except sqlite3.Error as e:
        console.print(f"[red]Database error: {e}[/red]", style="bold")
        sys.exit(1)
    except OSError as e:
        console.print(f"[red]Filesystem error: {e}[/red]", style="bold")
        sys.exit(1)


def export_command(output: str | None = None) -> None:
    """Export the current budget snapshot as JSON."""
    engine, _ = open_engine()
    payload = json.dumps(snapshot_to_dict(engine.state), indent=2, ensure_ascii=False)

    if not output:
        console.print_json(payload)
        return

    output_path = Path(output).expanduser()
    try:
        output_path.write_text(payload + "\n", encoding="utf-8")
    except OSError as e:
        console.print(f"[red]Export failed: {e}[/red]", style="bold")
        sys.exit(1)

    console.print(f"[green]✓[/green] Budget exported to: {output_path}")
