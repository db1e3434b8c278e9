#!/usr/bin/env python3
"""
Database migration runner for the Supabase credential store.

Connects directly to the Supabase PostgreSQL database and applies the SQL
files in migrations/ in name order, recording each in a tracking table.

Usage:
    python run_migrations.py                  # Apply pending migrations
    python run_migrations.py --status         # Show migration status
    python run_migrations.py --dry-run        # Show what would run
    python run_migrations.py --force 001      # Re-apply one migration

Configuration:
    Set SUPABASE_DB_URL in your .env file (Supabase Dashboard → Settings →
    Database → Connection string → URI).
"""

import argparse
import hashlib
import sys
from dataclasses import dataclass
from pathlib import Path

import psycopg2
from psycopg2 import sql
from rich.console import Console
from rich.table import Table

from shared.config import get_settings

console = Console()

MIGRATIONS_DIR = Path(__file__).parent / "migrations"
MIGRATIONS_TABLE = "_migrations"


@dataclass
class Migration:
    name: str
    path: Path
    checksum: str

    @classmethod
    def load(cls, path: Path) -> "Migration":
        content = path.read_text()
        return cls(path.name, path, hashlib.sha256(content.encode()).hexdigest()[:16])


def discover_migrations() -> list[Migration]:
    """All migration files, in the order they must be applied."""
    if not MIGRATIONS_DIR.exists():
        console.print(f"[yellow]Warning:[/yellow] Migrations directory not found: {MIGRATIONS_DIR}")
        return []
    return [Migration.load(path) for path in sorted(MIGRATIONS_DIR.glob("*.sql"))]


def get_db_connection():
    """Connect to the database named by SUPABASE_DB_URL, or exit."""
    db_url = get_settings().supabase_db_url
    if not db_url:
        console.print("[red]Error:[/red] SUPABASE_DB_URL is not set.")
        console.print("Set it in your .env file to the Postgres connection URI of your project.")
        sys.exit(1)

    try:
        return psycopg2.connect(db_url)
    except psycopg2.Error as e:
        console.print(f"[red]Database connection failed:[/red] {e}")
        sys.exit(1)


def ensure_migrations_table(conn) -> None:
    with conn.cursor() as cur:
        cur.execute(
            sql.SQL(
                """
                CREATE TABLE IF NOT EXISTS {} (
                    id SERIAL PRIMARY KEY,
                    name VARCHAR(255) NOT NULL UNIQUE,
                    checksum VARCHAR(64) NOT NULL,
                    applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                )
                """
            ).format(sql.Identifier(MIGRATIONS_TABLE))
        )
    conn.commit()


def get_applied(conn) -> dict[str, dict]:
    """Applied migrations keyed by file name."""
    with conn.cursor() as cur:
        cur.execute(
            sql.SQL("SELECT name, checksum, applied_at FROM {} ORDER BY name").format(
                sql.Identifier(MIGRATIONS_TABLE)
            )
        )
        return {row[0]: {"checksum": row[1], "applied_at": row[2]} for row in cur.fetchall()}


def get_pending(conn) -> list[Migration]:
    applied = get_applied(conn)
    pending = []
    for migration in discover_migrations():
        record = applied.get(migration.name)
        if record is None:
            pending.append(migration)
        elif record["checksum"] != migration.checksum:
            console.print(f"[yellow]Warning:[/yellow] {migration.name} changed after it was applied")
    return pending


def apply(conn, migration: Migration, dry_run: bool = False) -> None:
    """Run one migration and record it, in a single transaction."""
    if dry_run:
        console.print(f"[cyan]Would run:[/cyan] {migration.name}")
        return

    console.print(f"[blue]Running:[/blue] {migration.name}...")
    try:
        with conn.cursor() as cur:
            cur.execute(migration.path.read_text())
            cur.execute(
                sql.SQL("INSERT INTO {} (name, checksum) VALUES (%s, %s)").format(
                    sql.Identifier(MIGRATIONS_TABLE)
                ),
                (migration.name, migration.checksum),
            )
        conn.commit()
    except psycopg2.Error as e:
        conn.rollback()
        console.print(f"[red]✗[/red] {migration.name} failed: {e}")
        raise
    console.print(f"[green]✓[/green] {migration.name} applied")


def show_status(conn) -> None:
    applied = get_applied(conn)
    migrations = discover_migrations()
    if not migrations and not applied:
        console.print("[dim]No migrations found.[/dim]")
        return

    table = Table(title="Migration Status")
    table.add_column("Migration", style="cyan")
    table.add_column("Status")
    table.add_column("Applied At")
    table.add_column("Checksum")

    for migration in migrations:
        record = applied.get(migration.name)
        if record is None:
            status, applied_at = "[yellow]Pending[/yellow]", ""
        else:
            changed = record["checksum"] != migration.checksum
            status = "[red]Changed[/red]" if changed else "[green]Applied[/green]"
            applied_at = record["applied_at"].strftime("%Y-%m-%d %H:%M:%S")
        table.add_row(migration.name, status, applied_at, migration.checksum)

    console.print(table)


def force(conn, prefix: str, assume_yes: bool = False) -> None:
    """Forget and re-apply the single migration matching ``prefix``."""
    matches = [m for m in discover_migrations() if m.name.startswith(prefix)]
    if len(matches) != 1:
        found = ", ".join(m.name for m in matches) or "none"
        console.print(f"[red]Error:[/red] Expected one migration matching '{prefix}', found: {found}")
        sys.exit(1)

    migration = matches[0]
    console.print(f"[yellow]Warning:[/yellow] Re-running {migration.name}; it may fail if its objects exist.")
    if not assume_yes and input("Continue? [y/N] ").lower() != "y":
        console.print("Aborted.")
        return

    with conn.cursor() as cur:
        cur.execute(
            sql.SQL("DELETE FROM {} WHERE name = %s").format(sql.Identifier(MIGRATIONS_TABLE)),
            (migration.name,),
        )
    conn.commit()
    apply(conn, migration)


def main():
    parser = argparse.ArgumentParser(description="Run TrackWise database migrations")
    parser.add_argument("--status", action="store_true", help="Show migration status and exit")
    parser.add_argument("--dry-run", action="store_true", help="List pending migrations without running them")
    parser.add_argument("--force", metavar="PREFIX", help="Re-apply the migration matching PREFIX (e.g. '001')")
    parser.add_argument("--yes", action="store_true", help="Do not prompt before --force")
    args = parser.parse_args()

    console.print("[bold]TrackWise Database Migrations[/bold]")
    console.print()

    conn = get_db_connection()
    try:
        ensure_migrations_table(conn)
        if args.status:
            show_status(conn)
            return
        if args.force:
            force(conn, args.force, assume_yes=args.yes)
            return

        pending = get_pending(conn)
        if not pending:
            console.print("[green]All migrations are up to date![/green]")
            return

        console.print(f"Found {len(pending)} pending migration(s)")
        for migration in pending:
            apply(conn, migration, dry_run=args.dry_run)
        if not args.dry_run:
            console.print("[green]All migrations completed successfully![/green]")
    finally:
        conn.close()


if __name__ == "__main__":
    main()
