"""Snapshot data models shared by the diff engine, the policy and the sinks.

A snapshot is the full observed state of one monitored domain at a point in
time. Entry values are a tagged union of ``CountValue`` (free dates per
vaccination centre) and ``LabelValue`` (eligibility group labels), so the
diff machinery is written once for both domains.

All models are immutable once constructed; a new run always produces a new
``StateSnapshot`` that replaces the previous one as a whole.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping, Union


@dataclass(frozen=True)
class CountValue:
    """Non-negative capacity count (free appointment dates)."""

    count: int

    def __post_init__(self) -> None:
        if isinstance(self.count, bool) or not isinstance(self.count, int):
            raise ValueError(f"count must be an int, got {type(self.count).__name__}")
        if self.count < 0:
            raise ValueError(f"count must be non-negative, got {self.count}")

    def to_json(self) -> int:
        return self.count

    def __str__(self) -> str:
        return str(self.count)


@dataclass(frozen=True)
class LabelValue:
    """Display label of an eligibility group checkbox."""

    label: str

    def to_json(self) -> dict[str, str]:
        return {"label": self.label}

    def __str__(self) -> str:
        return self.label


Value = Union[CountValue, LabelValue]


def value_from_json(raw: Any) -> Value:
    """Decode one persisted entry value.

    Counts are stored as plain integers, labels as ``{"label": "..."}``.

    Raises:
        ValueError: If the raw value matches neither shape.
    """
    if isinstance(raw, int) and not isinstance(raw, bool):
        return CountValue(raw)
    if isinstance(raw, dict) and isinstance(raw.get("label"), str):
        return LabelValue(raw["label"])
    raise ValueError(f"Unsupported snapshot value: {raw!r}")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class StateSnapshot:
    """Full observed state of a domain plus the time it was observed."""

    entries: Mapping[str, Value]
    observed_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        entries = dict(self.entries)
        for entity_id, value in entries.items():
            if not isinstance(entity_id, str):
                raise TypeError(f"entity id must be a str, got {type(entity_id).__name__}")
            if not isinstance(value, (CountValue, LabelValue)):
                raise TypeError(f"value of '{entity_id}' must be a CountValue or LabelValue, got {value!r}")
        # Private copy behind a read-only view
        object.__setattr__(self, "entries", MappingProxyType(entries))

    @classmethod
    def empty(cls, observed_at: datetime | None = None) -> "StateSnapshot":
        return cls({}, observed_at or _utcnow())

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted layout ``{entries, lastUpdated}``."""
        return {
            "entries": {entity_id: value.to_json() for entity_id, value in self.entries.items()},
            "lastUpdated": self.observed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StateSnapshot":
        """Deserialize the persisted layout.

        Accepts the legacy top-level keys ``groups`` and ``dates`` written by
        earlier versions of the scripts in place of ``entries``.

        Raises:
            ValueError: If the payload is not a snapshot document.
        """
        raw_entries = None
        for key in ("entries", "groups", "dates"):
            if key in data:
                raw_entries = data[key]
                break
        if not isinstance(raw_entries, dict):
            raise ValueError("Snapshot document has no entries mapping")

        last_updated = data.get("lastUpdated")
        if last_updated:
            observed_at = datetime.fromisoformat(str(last_updated).replace("Z", "+00:00"))
        else:
            observed_at = _utcnow()

        return cls(
            {str(entity_id): value_from_json(raw) for entity_id, raw in raw_entries.items()},
            observed_at,
        )

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class Change:
    """Old and new value of an entry present in both snapshots."""

    old: Value
    new: Value


@dataclass(frozen=True)
class ChangeSet:
    """Structured diff between two snapshots.

    ``added``, ``removed`` and ``changed`` are disjoint. Ids whose value is
    identical in both snapshots appear in none of them.
    """

    added: frozenset[str] = frozenset()
    removed: frozenset[str] = frozenset()
    changed: Mapping[str, Change] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "added", frozenset(self.added))
        object.__setattr__(self, "removed", frozenset(self.removed))
        object.__setattr__(self, "changed", MappingProxyType(dict(self.changed)))

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.changed)

    def summary(self) -> dict[str, int]:
        return {
            "added": len(self.added),
            "removed": len(self.removed),
            "changed": len(self.changed),
        }


@dataclass(frozen=True)
class NotificationEvent:
    """One outbound message unit handed to every sink of a dispatch.

    Transient: built once per pipeline run and never persisted.
    """

    domain: str
    previous: StateSnapshot
    current: StateSnapshot
    changes: ChangeSet
    targets: frozenset[str]
    forced: bool = False

    def target_values(self) -> dict[str, Value]:
        """Current value of every target that still exists."""
        return {
            entity_id: self.current.entries[entity_id]
            for entity_id in sorted(self.targets)
            if entity_id in self.current.entries
        }

    def added_values(self) -> dict[str, Value]:
        return {entity_id: self.current.entries[entity_id] for entity_id in sorted(self.changes.added)}

    def removed_values(self) -> dict[str, Value]:
        return {entity_id: self.previous.entries[entity_id] for entity_id in sorted(self.changes.removed)}
