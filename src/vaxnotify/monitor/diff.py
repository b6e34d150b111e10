"""Diff engine comparing two state snapshots."""

from __future__ import annotations

from .snapshot import Change, ChangeSet, StateSnapshot


def diff(previous: StateSnapshot, current: StateSnapshot) -> ChangeSet:
    """Classify every entity id of both snapshots.

    - only in ``current``: added
    - only in ``previous``: removed
    - in both with unequal values: changed (old, new)
    - in both with equal values: omitted

    Pure and total over well-formed snapshots.

    Args:
        previous: Last persisted snapshot
        current: Freshly observed snapshot

    Returns:
        ChangeSet with disjoint, exhaustive partitions
    """
    before = previous.entries
    after = current.entries

    added: set[str] = set()
    removed: set[str] = set()
    changed: dict[str, Change] = {}

    for entity_id in before.keys() | after.keys():
        if entity_id not in before:
            added.add(entity_id)
        elif entity_id not in after:
            removed.add(entity_id)
        elif before[entity_id] != after[entity_id]:
            changed[entity_id] = Change(old=before[entity_id], new=after[entity_id])

    return ChangeSet(added=frozenset(added), removed=frozenset(removed), changed=changed)
