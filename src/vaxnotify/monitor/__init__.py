"""
Snapshot-diff-and-notify core.

Compares the freshly observed state of a monitored domain against the last
persisted snapshot, filters noise with the significance policy, and hands
the resulting event to the notification fan-out.
"""

from .errors import (
    AcquisitionError,
    CollectionError,
    ConfigurationError,
    PersistenceError,
    SinkError,
    SnapshotFetchError,
    SnapshotNotFoundError,
    SnapshotReadError,
    SnapshotWriteError,
    VaxNotifyError,
)
from .snapshot import (
    Change,
    ChangeSet,
    CountValue,
    LabelValue,
    NotificationEvent,
    StateSnapshot,
    Value,
    value_from_json,
)
from .diff import diff
from .significance import SignificancePolicy, is_significant, select_targets
from .pipeline import Collector, Pipeline, PipelineResult

__all__ = [
    "AcquisitionError",
    "Change",
    "ChangeSet",
    "CollectionError",
    "Collector",
    "ConfigurationError",
    "CountValue",
    "LabelValue",
    "NotificationEvent",
    "PersistenceError",
    "Pipeline",
    "PipelineResult",
    "SignificancePolicy",
    "SinkError",
    "SnapshotFetchError",
    "SnapshotNotFoundError",
    "SnapshotReadError",
    "SnapshotWriteError",
    "StateSnapshot",
    "Value",
    "VaxNotifyError",
    "diff",
    "is_significant",
    "select_targets",
    "value_from_json",
]
