# Persistence Layer - snapshot stores and SQLite run log

from .db import DatabaseManager
from .run_log import RunLog
from .snapshot_store import (
    FileSnapshotStore,
    HttpSnapshotStore,
    SnapshotStore,
    SqliteSnapshotStore,
)

__all__ = [
    "DatabaseManager",
    "RunLog",
    "SnapshotStore",
    "FileSnapshotStore",
    "HttpSnapshotStore",
    "SqliteSnapshotStore",
]
