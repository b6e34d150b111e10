"""Snapshot and event builders shared by the test suites."""

from datetime import datetime, timezone

from vaxnotify.monitor import (
    CountValue,
    LabelValue,
    NotificationEvent,
    StateSnapshot,
    diff,
    select_targets,
)

FIXED_TIME = datetime(2021, 5, 1, 12, 0, tzinfo=timezone.utc)


def counts(**entries: int) -> StateSnapshot:
    """Snapshot of CountValues, e.g. counts(A=1, B=5)."""
    return StateSnapshot({k: CountValue(v) for k, v in entries.items()}, FIXED_TIME)


def labels(**entries: str) -> StateSnapshot:
    """Snapshot of LabelValues keyed by checkbox id."""
    return StateSnapshot({k: LabelValue(v) for k, v in entries.items()}, FIXED_TIME)


def make_event(previous: StateSnapshot, current: StateSnapshot, domain: str = "free_dates",
               notify_all: bool = False) -> NotificationEvent:
    changes = diff(previous, current)
    return NotificationEvent(
        domain=domain,
        previous=previous,
        current=current,
        changes=changes,
        targets=select_targets(changes, current, notify_all=notify_all),
        forced=notify_all,
    )
