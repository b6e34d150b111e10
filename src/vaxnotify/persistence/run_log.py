"""Run log for pipeline invocations."""

import json
from datetime import datetime
from typing import Optional
import structlog

from .db import DatabaseManager

logger = structlog.get_logger(__name__)


class RunLog:
    """Records one row per pipeline run in the pipeline_runs table."""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    async def log_run_start(self, run_id: str, domain: str, dry: bool = False) -> None:
        """
        Log run start.

        Args:
            run_id: UUID tracking ID for the run
            domain: Monitored domain (free_dates, eligible_groups)
            dry: Whether sinks run in observation-only mode
        """
        db = await self.db_manager.get_connection()

        try:
            await db.execute(
                """
                INSERT INTO pipeline_runs (run_id, domain, started_at, status, dry)
                VALUES (?, ?, ?, ?, ?)
                """,
                (run_id, domain, int(datetime.now().timestamp()), "in_progress", int(dry)),
            )
            await db.commit()
        except Exception as e:
            raise RuntimeError(
                f"Failed to log run start. "
                f"Ensure database migrations have been applied (run scripts/migrate.py). "
                f"Original error: {e}"
            ) from e

        logger.info("pipeline_run_logged", run_id=run_id, domain=domain, dry=dry)

    async def log_run_end(
        self,
        run_id: str,
        status: str,
        counts: Optional[dict[str, int]] = None,
        failed_sinks: Optional[list[str]] = None,
        error_details: Optional[dict] = None,
    ) -> None:
        """
        Log run completion.

        Args:
            run_id: UUID tracking ID for the run
            status: 'completed', 'notify_failed' or 'failed'
            counts: added/removed/changed/targets counts, if the run got that far
            failed_sinks: Ids of sinks that failed during notify
            error_details: Error details for failed runs
        """
        counts = counts or {}
        db = await self.db_manager.get_connection()

        try:
            await db.execute(
                """
                UPDATE pipeline_runs
                SET status = ?, finished_at = ?,
                    added_count = ?, removed_count = ?, changed_count = ?, target_count = ?,
                    failed_sinks = ?, error_details = ?
                WHERE run_id = ?
                """,
                (
                    status,
                    int(datetime.now().timestamp()),
                    counts.get("added"),
                    counts.get("removed"),
                    counts.get("changed"),
                    counts.get("targets"),
                    json.dumps(failed_sinks) if failed_sinks else None,
                    json.dumps(error_details) if error_details else None,
                    run_id,
                ),
            )
            await db.commit()
        except Exception as e:
            raise RuntimeError(
                f"Failed to log run end. "
                f"Ensure database migrations have been applied (run scripts/migrate.py). "
                f"Original error: {e}"
            ) from e

    async def recent_runs(self, domain: str, limit: int = 10) -> list[dict]:
        """Most recent runs of a domain, newest first."""
        db = await self.db_manager.get_connection()
        cursor = await db.execute(
            """
            SELECT run_id, domain, started_at, finished_at, status, dry,
                   added_count, removed_count, changed_count, target_count,
                   failed_sinks, error_details
            FROM pipeline_runs
            WHERE domain = ?
            ORDER BY started_at DESC, rowid DESC
            LIMIT ?
            """,
            (domain, limit),
        )
        rows = await cursor.fetchall()
        await cursor.close()

        return [
            {
                "run_id": row[0],
                "domain": row[1],
                "started_at": row[2],
                "finished_at": row[3],
                "status": row[4],
                "dry": bool(row[5]),
                "added_count": row[6],
                "removed_count": row[7],
                "changed_count": row[8],
                "target_count": row[9],
                "failed_sinks": json.loads(row[10]) if row[10] else [],
                "error_details": json.loads(row[11]) if row[11] else None,
            }
            for row in rows
        ]
