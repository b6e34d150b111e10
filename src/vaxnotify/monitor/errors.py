"""Error taxonomy for the snapshot-diff-and-notify pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(eq=False)
class VaxNotifyError(Exception):
    """Structured error raised by pipeline collaborators."""

    code: str
    message: str
    details: dict[str, Any] | None = None
    retryable: bool = False

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details or {},
            "retryable": self.retryable,
        }


class AcquisitionError(VaxNotifyError):
    """Current or prior state could not be obtained. Fatal for the run."""


class CollectionError(AcquisitionError):
    """Collector failed to navigate, select or parse the source page."""


class SnapshotReadError(AcquisitionError):
    """Prior snapshot could not be read."""


class SnapshotNotFoundError(SnapshotReadError):
    pass


class SnapshotFetchError(SnapshotReadError):
    pass


class PersistenceError(VaxNotifyError):
    """New snapshot could not be written. Fatal for the run."""


class SnapshotWriteError(PersistenceError):
    pass


class ConfigurationError(VaxNotifyError):
    """A sink is missing configuration it needs for a live delivery."""


class SinkError(VaxNotifyError):
    """A notification channel rejected a delivery."""
