"""
Plain-text and markdown formatting for notification payloads.

Bullet lists of entries and a diff block for changed entries.
"""

from __future__ import annotations

from datetime import datetime
from typing import Mapping

from ..monitor.snapshot import CountValue, NotificationEvent, Value


def format_entry(entity_id: str, value: Value) -> str:
    """One bullet line. Labels stand alone, counts are prefixed with the id."""
    if isinstance(value, CountValue):
        return f"* {entity_id}: {value.count}"
    return f"* {value}"


def format_entries(entries: Mapping[str, Value]) -> str:
    return "\n".join(format_entry(entity_id, entries[entity_id]) for entity_id in sorted(entries))


def format_summary(event: NotificationEvent, now: datetime) -> str:
    """Issue body listing the full current state."""
    return f"\nlast update: {now.isoformat()}\n\n{format_entries(event.current.entries)}\n"


def format_changelog(event: NotificationEvent, now: datetime) -> str | None:
    """
    Changelog comment for added, removed and changed entries.

    Returns:
        Markdown text, or None when the change set is empty
    """
    changes = event.changes
    if changes.is_empty:
        return None

    markdown = f"\n### Änderungen am {now.isoformat()}\n"

    if changes.added:
        markdown += f"\n#### Neue Einträge\n{format_entries(event.added_values())}\n"

    if changes.removed:
        markdown += f"\n#### Gelöschte Einträge\n{format_entries(event.removed_values())}\n"

    if changes.changed:
        blocks = []
        for entity_id in sorted(changes.changed):
            change = changes.changed[entity_id]
            blocks.append(
                f"* {entity_id}\n"
                f"  ```diff\n"
                f"  - {change.old}\n"
                f"  + {change.new}\n"
                f"  ```"
            )
        markdown += "\n#### Geänderte Einträge\n" + "\n".join(blocks) + "\n"

    return markdown


def format_targets(event: NotificationEvent) -> str | None:
    """Short broadcast text listing the targets, or None without targets."""
    if not event.targets:
        return None

    lines = []
    for entity_id in sorted(event.targets):
        value = event.current.entries.get(entity_id)
        if value is None:
            lines.append(f"- {entity_id}: entfernt")
        else:
            lines.append(f"- {entity_id}: {value}")
    return "Neue Änderungen:\n" + "\n".join(lines)


def split_message(text: str, max_length: int = 4096) -> list[str]:
    """
    Split long text on line boundaries into chunks of at most max_length.

    Lines longer than max_length are hard-wrapped.

    Examples:
        >>> split_message("Short message")
        ['Short message']
    """
    if len(text) <= max_length:
        return [text]

    messages = []
    current = ""

    for line in text.split("\n"):
        while len(line) > max_length:
            if current:
                messages.append(current)
                current = ""
            messages.append(line[:max_length])
            line = line[max_length:]

        if len(current) + len(line) + 1 > max_length:
            if current:
                messages.append(current)
            current = line
        else:
            current += "\n" + line if current else line

    if current:
        messages.append(current)

    return messages
