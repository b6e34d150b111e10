"""Unit tests for the significance policy and target selection."""

import pytest

from vaxnotify.monitor import (
    CountValue,
    LabelValue,
    SignificancePolicy,
    diff,
    is_significant,
    select_targets,
)
from tests.helpers import counts, labels


class TestIsSignificant:
    """Test the default threshold/increase predicate."""

    @pytest.mark.parametrize(
        "old, new, expected",
        [
            (0, 1, False),   # below threshold
            (1, 3, True),    # crosses threshold with increase 2
            (2, 3, False),   # increase of 1 only
            (3, 1, False),   # decrease
            (0, 2, True),
            (2, 4, True),
            (3, 5, False),   # starts above threshold
            (0, 0, False),
        ],
    )
    def test_count_cases(self, old, new, expected):
        assert is_significant("A", CountValue(old), CountValue(new)) is expected

    def test_label_inequality_is_significant(self):
        assert is_significant("g1", LabelValue("a"), LabelValue("b")) is True

    def test_equal_labels_are_not_significant(self):
        assert is_significant("g1", LabelValue("a"), LabelValue("a")) is False

    def test_kind_change_is_significant(self):
        assert is_significant("x", CountValue(1), LabelValue("1")) is True

    def test_custom_policy(self):
        policy = SignificancePolicy(capacity_threshold=5, min_increase=1)

        assert policy.is_significant("A", CountValue(4), CountValue(5)) is True
        assert policy.is_significant("A", CountValue(1), CountValue(3)) is False


class TestSelectTargets:
    """Test NotificationTargets construction."""

    def test_increase_and_addition_yield_two_targets(self):
        current = counts(A=3, B=5)
        targets = select_targets(diff(counts(A=1), current), current)

        assert targets == frozenset({"A", "B"})

    def test_added_and_removed_always_targets(self):
        current = counts(B=0)
        targets = select_targets(diff(counts(A=9), current), current)

        assert targets == frozenset({"A", "B"})

    def test_insignificant_changes_filtered(self):
        current = counts(A=3, B=1)
        targets = select_targets(diff(counts(A=2, B=0), current), current)

        assert targets == frozenset()

    def test_notify_all_uses_every_current_entry(self):
        previous = counts(A=2, C=1)
        current = counts(A=2, B=0)

        targets = select_targets(diff(previous, current), current, notify_all=True)

        assert targets == frozenset({"A", "B"})

    def test_notify_all_does_not_change_predicate(self):
        policy = SignificancePolicy()
        select_targets(diff(counts(A=2), counts(A=3)), counts(A=3), policy, notify_all=True)

        assert policy.is_significant("A", CountValue(2), CountValue(3)) is False

    def test_label_targets(self):
        current = labels(g1="neu", g2="b")
        targets = select_targets(diff(labels(g1="alt", g2="b"), current), current)

        assert targets == frozenset({"g1"})
