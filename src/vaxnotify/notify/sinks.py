"""Sink contract and the dry-run observation wrapper."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import structlog

from ..monitor.snapshot import NotificationEvent

logger = structlog.get_logger(__name__)


@runtime_checkable
class Sink(Protocol):
    """A notification channel. ``notify`` raises on delivery failure."""

    async def notify(self, event: NotificationEvent) -> None: ...


def sink_id(sink: Sink) -> str:
    """Stable identity of a sink for outcome reporting."""
    name = getattr(sink, "name", None)
    if isinstance(name, str) and name:
        return name
    return type(sink).__name__


class DrySink:
    """Route a sink's effect to the log instead of an external call.

    The wrapped sink's ``notify`` is never invoked. Sinks exposing
    ``render(event)`` have their would-be payload logged; ``None`` from
    ``render`` means the sink had nothing to report.
    """

    def __init__(self, sink: Sink):
        self.sink = sink
        self.name = sink_id(sink)

    async def notify(self, event: NotificationEvent) -> None:
        render = getattr(self.sink, "render", None)
        payload = render(event) if callable(render) else None

        if callable(render) and payload is None:
            logger.info("dry_run_skipped", sink_id=self.name, domain=event.domain)
            return

        logger.info(
            "dry_run_notification",
            sink_id=self.name,
            domain=event.domain,
            targets=sorted(event.targets),
            forced=event.forced,
            payload=payload,
            **event.changes.summary(),
        )
