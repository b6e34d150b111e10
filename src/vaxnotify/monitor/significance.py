"""Significance policy deciding which changes warrant a notification.

Free-date counts at the source toggle between 0 and 2 while appointments are
reserved and released. A count change only counts as new availability when it
starts at or below the capacity threshold, ends at or above it, and grows by
at least ``min_increase``. Decreases are never significant.

Label changes have no hysteresis: any difference is significant.
"""

from __future__ import annotations

from dataclasses import dataclass

from .snapshot import ChangeSet, CountValue, LabelValue, StateSnapshot, Value

DEFAULT_CAPACITY_THRESHOLD = 2
DEFAULT_MIN_INCREASE = 2


@dataclass(frozen=True)
class SignificancePolicy:
    """Pure predicate over one changed entry."""

    capacity_threshold: int = DEFAULT_CAPACITY_THRESHOLD
    min_increase: int = DEFAULT_MIN_INCREASE

    def is_significant(self, entity_id: str, old: Value, new: Value) -> bool:
        if isinstance(old, CountValue) and isinstance(new, CountValue):
            return (
                old.count <= self.capacity_threshold
                and new.count >= self.capacity_threshold
                and new.count - old.count >= self.min_increase
            )
        if isinstance(old, LabelValue) and isinstance(new, LabelValue):
            return old != new
        # Value kind changed between runs.
        return True


_DEFAULT_POLICY = SignificancePolicy()


def is_significant(entity_id: str, old: Value, new: Value) -> bool:
    """Apply the default policy (threshold 2, minimum increase 2)."""
    return _DEFAULT_POLICY.is_significant(entity_id, old, new)


def select_targets(
    changes: ChangeSet,
    current: StateSnapshot,
    policy: SignificancePolicy = _DEFAULT_POLICY,
    notify_all: bool = False,
) -> frozenset[str]:
    """Build the set of entity ids a notification should be sent for.

    Added and removed entries are always targets; changed entries are targets
    when the policy marks them significant.

    Args:
        changes: Diff of the previous and current snapshot
        current: Current snapshot
        policy: Significance predicate for changed entries
        notify_all: Operator override treating every current entry as a target

    Returns:
        Frozen set of target entity ids
    """
    if notify_all:
        return frozenset(current.entries)

    significant = {
        entity_id
        for entity_id, change in changes.changed.items()
        if policy.is_significant(entity_id, change.old, change.new)
    }
    return frozenset(significant) | changes.added | changes.removed
