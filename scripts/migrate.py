#!/usr/bin/env python3
"""
Apply vax-notify's SQLite migrations.

Usage:
    python scripts/migrate.py [--db data/vaxnotify.db]
"""

import argparse
import sys
from pathlib import Path

from vaxnotify.persistence.migrate import MIGRATIONS_DIR, apply_migrations


def main(argv=None) -> int:
    """
    Main entry point for migration script.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    project_root = Path(__file__).parent.parent

    parser = argparse.ArgumentParser(description="Apply vax-notify database migrations")
    parser.add_argument("--db", type=Path, default=project_root / "data" / "vaxnotify.db",
                        help="SQLite database file")
    args = parser.parse_args(argv)

    print(f"Database: {args.db}")
    print(f"Migrations: {MIGRATIONS_DIR}\n")

    try:
        applied = apply_migrations(args.db)
    except Exception as e:
        print(f"\n✗ Migration failed: {e}", file=sys.stderr)
        return 1

    print(f"✓ Applied {applied} migration(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
