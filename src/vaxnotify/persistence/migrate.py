"""
SQLite migration runner with SHA-256 checksum verification.

Applies pending migrations in lexical order, refuses to run when an applied
migration file changed since, and tracks applied migrations in the
schema_migrations table.
"""

import hashlib
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Tuple

import structlog

logger = structlog.get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"


def calculate_checksum(file_path: Path) -> str:
    """Hexadecimal SHA-256 of a migration file."""
    sha256 = hashlib.sha256()
    with open(file_path, "rb") as f:
        sha256.update(f.read())
    return sha256.hexdigest()


def discover_migrations(migrations_dir: Path) -> List[Tuple[str, Path]]:
    """
    Discover migrations in lexical order.

    Returns:
        List of (migration_name, migration_path) tuples
    """
    return [(f.name, f) for f in sorted(migrations_dir.glob("*.sql"))]


def apply_migrations(db_path: Path, migrations_dir: Path = MIGRATIONS_DIR) -> int:
    """
    Apply pending migrations.

    Args:
        db_path: Path to SQLite database file (parent directory is created)
        migrations_dir: Directory containing *.sql migration files

    Returns:
        Number of migrations applied by this call

    Raises:
        RuntimeError: If an applied migration's checksum no longer matches
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path))
    try:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_migrations (
                migration_name TEXT PRIMARY KEY,
                checksum TEXT NOT NULL,
                applied_at INTEGER NOT NULL
            ) STRICT
        """)
        conn.commit()

        applied = dict(conn.execute("SELECT migration_name, checksum FROM schema_migrations"))

        applied_count = 0
        for name, path in discover_migrations(migrations_dir):
            checksum = calculate_checksum(path)
            if name in applied:
                if checksum != applied[name]:
                    raise RuntimeError(
                        f"Migration {name} was modified after being applied "
                        f"(expected checksum {applied[name]}, got {checksum})"
                    )
                continue

            with conn:
                conn.executescript(path.read_text())
                conn.execute(
                    "INSERT INTO schema_migrations (migration_name, checksum, applied_at) VALUES (?, ?, ?)",
                    (name, checksum, int(datetime.now(timezone.utc).timestamp())),
                )
            logger.info("migration_applied", migration=name, db_path=str(db_path))
            applied_count += 1
    finally:
        conn.close()

    logger.debug("migrations_checked", db_path=str(db_path), applied_count=applied_count)
    return applied_count
