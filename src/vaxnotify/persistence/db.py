"""SQLite connection shared by the snapshot store and the run log.

One connection per run. WAL is requested; a filesystem that refuses it is
logged and the run continues in the reported journal mode. Overlapping runs
wait up to busy_timeout_ms for each other's write lock.
"""

from pathlib import Path
from typing import Optional

import aiosqlite
import structlog

logger = structlog.get_logger(__name__)

DEFAULT_BUSY_TIMEOUT_MS = 5000


class DatabaseManager:
    """Lazily opened, cached aiosqlite connection for one database file."""

    def __init__(self, db_path: str | Path, busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS):
        """
        Args:
            db_path: SQLite database file (parent directories are created)
            busy_timeout_ms: How long a write waits for an overlapping run's lock
        """
        self.db_path = Path(db_path)
        self.busy_timeout_ms = busy_timeout_ms
        self._connection: Optional[aiosqlite.Connection] = None

    async def get_connection(self) -> aiosqlite.Connection:
        """
        Open the connection on first use.

        Schema is applied beforehand by persistence.migrate, not here.
        """
        if self._connection is not None:
            return self._connection

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = await aiosqlite.connect(str(self.db_path))

        try:
            await conn.execute(f"PRAGMA busy_timeout={int(self.busy_timeout_ms)}")
            cursor = await conn.execute("PRAGMA journal_mode=WAL")
            row = await cursor.fetchone()
            await cursor.close()
        except Exception:
            await conn.close()
            raise

        journal_mode = row[0].lower()
        if journal_mode != "wal":
            logger.warning(
                "database_wal_unavailable",
                db_path=str(self.db_path),
                journal_mode=journal_mode,
            )

        logger.debug(
            "database_connection_opened",
            db_path=str(self.db_path),
            journal_mode=journal_mode,
            busy_timeout_ms=self.busy_timeout_ms,
        )
        self._connection = conn
        return conn

    async def close(self) -> None:
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            logger.debug("database_connection_closed", db_path=str(self.db_path))
