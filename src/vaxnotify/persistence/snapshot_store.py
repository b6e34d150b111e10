"""Snapshot stores: local JSON file, published HTTP snapshot, SQLite history.

Every store persists the layout ``{"entries": {...}, "lastUpdated": "<ISO>"}``
and maps its failures onto the pipeline error taxonomy:

- missing snapshot: SnapshotNotFoundError
- unreadable / malformed snapshot: SnapshotFetchError
- failed write: SnapshotWriteError
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Protocol

import httpx
import structlog

from ..monitor.errors import SnapshotFetchError, SnapshotNotFoundError, SnapshotWriteError
from ..monitor.snapshot import StateSnapshot
from .db import DatabaseManager

logger = structlog.get_logger(__name__)


class SnapshotStore(Protocol):
    async def load(self) -> StateSnapshot: ...

    async def save(self, snapshot: StateSnapshot) -> None: ...


def _decode(payload: object, source: str) -> StateSnapshot:
    if not isinstance(payload, dict):
        raise SnapshotFetchError(
            code="snapshot_malformed",
            message=f"Snapshot at {source} is not a JSON object",
            details={"source": source},
        )
    try:
        return StateSnapshot.from_dict(payload)
    except ValueError as exc:
        raise SnapshotFetchError(
            code="snapshot_malformed",
            message=f"Snapshot at {source} is malformed: {exc}",
            details={"source": source},
        ) from exc


class FileSnapshotStore:
    """Snapshot kept in a local JSON file."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    async def load(self) -> StateSnapshot:
        try:
            text = await asyncio.to_thread(self.path.read_text, encoding="utf-8")
        except FileNotFoundError as exc:
            raise SnapshotNotFoundError(
                code="snapshot_not_found",
                message=f"No snapshot at {self.path}",
                details={"path": str(self.path)},
            ) from exc
        except OSError as exc:
            raise SnapshotFetchError(
                code="snapshot_read_failed",
                message=f"Unable to read snapshot at {self.path}: {exc}",
                details={"path": str(self.path)},
            ) from exc

        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SnapshotFetchError(
                code="snapshot_malformed",
                message=f"Snapshot at {self.path} is not valid JSON: {exc}",
                details={"path": str(self.path)},
            ) from exc

        snapshot = _decode(payload, str(self.path))
        logger.info("snapshot_loaded", source=str(self.path), entry_count=len(snapshot))
        return snapshot

    async def save(self, snapshot: StateSnapshot) -> None:
        try:
            await asyncio.to_thread(self._write, json.dumps(snapshot.to_dict(), indent=2, ensure_ascii=False))
        except OSError as exc:
            raise SnapshotWriteError(
                code="snapshot_write_failed",
                message=f"Unable to write snapshot to {self.path}: {exc}",
                details={"path": str(self.path)},
            ) from exc
        logger.info("snapshot_saved", path=str(self.path), entry_count=len(snapshot))

    def _write(self, text: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class HttpSnapshotStore:
    """Read the published snapshot over HTTP, write the next one locally.

    The local file is what gets published by the deploy hook.
    """

    def __init__(self, client: httpx.AsyncClient, url: str, write_to: FileSnapshotStore):
        self.client = client
        self.url = url
        self.write_to = write_to

    async def load(self) -> StateSnapshot:
        try:
            response = await self.client.get(self.url)
        except httpx.HTTPError as exc:
            raise SnapshotFetchError(
                code="snapshot_fetch_failed",
                message=f"Unable to fetch snapshot from {self.url}: {exc}",
                details={"url": self.url},
                retryable=True,
            ) from exc

        if response.status_code == 404:
            raise SnapshotNotFoundError(
                code="snapshot_not_found",
                message=f"No snapshot published at {self.url}",
                details={"url": self.url},
            )
        if response.is_error:
            raise SnapshotFetchError(
                code="snapshot_fetch_failed",
                message=f"Unable to fetch snapshot. {response.status_code}: {response.reason_phrase}",
                details={"url": self.url, "status_code": response.status_code},
                retryable=response.status_code >= 500,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise SnapshotFetchError(
                code="snapshot_malformed",
                message=f"Snapshot at {self.url} is not valid JSON",
                details={"url": self.url},
            ) from exc

        snapshot = _decode(payload, self.url)
        logger.info("snapshot_loaded", source=self.url, entry_count=len(snapshot))
        return snapshot

    async def save(self, snapshot: StateSnapshot) -> None:
        await self.write_to.save(snapshot)


class SqliteSnapshotStore:
    """Snapshot history in SQLite; the latest row per domain is the snapshot."""

    def __init__(self, db_manager: DatabaseManager, domain: str):
        self.db_manager = db_manager
        self.domain = domain

    async def load(self) -> StateSnapshot:
        try:
            db = await self.db_manager.get_connection()
            cursor = await db.execute(
                """
                SELECT entries, last_updated
                FROM snapshots
                WHERE domain = ?
                ORDER BY id DESC
                LIMIT 1
                """,
                (self.domain,),
            )
            row = await cursor.fetchone()
            await cursor.close()
        except Exception as exc:
            raise SnapshotFetchError(
                code="snapshot_read_failed",
                message=f"Unable to read snapshot for {self.domain}: {exc}",
                details={"domain": self.domain},
            ) from exc

        if row is None:
            raise SnapshotNotFoundError(
                code="snapshot_not_found",
                message=f"No snapshot stored for {self.domain}",
                details={"domain": self.domain},
            )

        try:
            entries = json.loads(row[0])
        except json.JSONDecodeError as exc:
            raise SnapshotFetchError(
                code="snapshot_malformed",
                message=f"Stored snapshot for {self.domain} is not valid JSON",
                details={"domain": self.domain},
            ) from exc

        snapshot = _decode({"entries": entries, "lastUpdated": row[1]}, f"sqlite:{self.domain}")
        logger.info("snapshot_loaded", source=f"sqlite:{self.domain}", entry_count=len(snapshot))
        return snapshot

    async def save(self, snapshot: StateSnapshot) -> None:
        document = snapshot.to_dict()
        try:
            db = await self.db_manager.get_connection()
            await db.execute(
                """
                INSERT INTO snapshots (domain, entries, last_updated, saved_at)
                VALUES (?, ?, ?, ?)
                """,
                (
                    self.domain,
                    json.dumps(document["entries"], ensure_ascii=False),
                    document["lastUpdated"],
                    int(datetime.now().timestamp()),
                ),
            )
            await db.commit()
        except Exception as exc:
            raise SnapshotWriteError(
                code="snapshot_write_failed",
                message=f"Unable to store snapshot for {self.domain}: {exc}",
                details={"domain": self.domain},
            ) from exc
        logger.info("snapshot_saved", domain=self.domain, entry_count=len(snapshot))
