"""Unit tests for the diff engine."""

import pytest

from vaxnotify.monitor import Change, CountValue, LabelValue, StateSnapshot, diff
from tests.helpers import FIXED_TIME, counts, labels


def test_increase_and_addition():
    """{A: 1} -> {A: 3, B: 5}: B added, A changed."""
    changes = diff(counts(A=1), counts(A=3, B=5))

    assert changes.added == frozenset({"B"})
    assert changes.removed == frozenset()
    assert dict(changes.changed) == {"A": Change(CountValue(1), CountValue(3))}


def test_removed_entries():
    changes = diff(counts(A=1, B=2), counts(A=1))

    assert changes.removed == frozenset({"B"})
    assert changes.added == frozenset()
    assert not changes.changed


def test_unchanged_entries_are_omitted():
    changes = diff(counts(A=1, B=2), counts(A=1, B=2))

    assert changes.is_empty


def test_label_change():
    changes = diff(labels(g1="Lehrer"), labels(g1="Lehrerinnen und Lehrer"))

    assert dict(changes.changed) == {"g1": Change(LabelValue("Lehrer"), LabelValue("Lehrerinnen und Lehrer"))}


def test_empty_snapshots():
    assert diff(StateSnapshot.empty(), StateSnapshot.empty()).is_empty


@pytest.mark.parametrize(
    "before, after",
    [
        ({}, {"A": 1}),
        ({"A": 1}, {}),
        ({"A": 0, "B": 2, "C": 9}, {"A": 0, "B": 4, "D": 1}),
        ({"X": 3, "Y": 3}, {"X": 3, "Y": 3}),
    ],
)
def test_partitions_are_exhaustive_and_disjoint(before, after):
    previous = counts(**before)
    current = counts(**after)
    changes = diff(previous, current)

    changed = set(changes.changed)
    assert not (changes.added & changes.removed)
    assert not (changes.added & changed)
    assert not (changes.removed & changed)

    equal = {k for k in before.keys() & after.keys() if before[k] == after[k]}
    assert changes.added | changes.removed | changed | equal == before.keys() | after.keys()


def test_symmetry():
    """Swapping arguments swaps added/removed and old/new."""
    previous = counts(A=1, B=2, C=3)
    current = counts(A=5, C=3, D=0)

    forward = diff(previous, current)
    backward = diff(current, previous)

    assert forward.added == backward.removed
    assert forward.removed == backward.added
    assert set(forward.changed) == set(backward.changed)
    for entity_id, change in forward.changed.items():
        assert backward.changed[entity_id] == Change(change.new, change.old)


def test_idempotence():
    snapshot = StateSnapshot({"A": CountValue(1), "g": LabelValue("x")}, FIXED_TIME)

    assert diff(snapshot, snapshot).is_empty
