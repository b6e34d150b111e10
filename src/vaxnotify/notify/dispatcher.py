"""Fan-out dispatcher delivering one event to every sink concurrently."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Sequence

import structlog

from ..monitor.snapshot import NotificationEvent
from .sinks import Sink, sink_id

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SinkFailure:
    """A sink that raised, with its original exception (and traceback)."""

    sink_id: str
    error: BaseException

    def to_dict(self) -> dict[str, str]:
        return {
            "sink_id": self.sink_id,
            "error_type": type(self.error).__name__,
            "error": str(self.error),
        }


@dataclass(frozen=True)
class DispatchOutcome:
    """Result of one dispatch, built only after every sink has settled."""

    succeeded: list[str] = field(default_factory=list)
    failed: list[SinkFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class DispatchError(Exception):
    """Aggregated failure of one or more sinks.

    ``outcome.failed`` enumerates every failing sink with its original
    exception. The first failure is also chained as ``__cause__``.
    """

    def __init__(self, outcome: DispatchOutcome):
        self.outcome = outcome
        failed_ids = ", ".join(failure.sink_id for failure in outcome.failed)
        super().__init__(
            f"{len(outcome.failed)} of {len(outcome.failed) + len(outcome.succeeded)} "
            f"sinks failed: {failed_ids}"
        )

    @property
    def failures(self) -> list[SinkFailure]:
        return list(self.outcome.failed)


class FanoutDispatcher:
    """Invoke all sinks concurrently and aggregate partial failures.

    Never short-circuits: a failing sink can't starve the others. A per-sink
    timeout, when set, turns a slow sink into an ordinary failure.
    """

    def __init__(self, sink_timeout_seconds: float | None = None):
        self.sink_timeout_seconds = sink_timeout_seconds

    async def dispatch(self, event: NotificationEvent, sinks: Sequence[Sink]) -> DispatchOutcome:
        """Deliver ``event`` to every sink.

        Args:
            event: Notification event shared read-only by all sinks
            sinks: Sinks to notify

        Returns:
            DispatchOutcome listing every sink as succeeded

        Raises:
            DispatchError: If one or more sinks failed, after all have settled
            BaseException: Re-raised from a sink (e.g. CancelledError), after all have settled
        """
        ids = _unique_ids(sinks)
        tasks = [
            asyncio.create_task(self._run_sink(ident, sink, event), name=f"sink-{ident}")
            for ident, sink in zip(ids, sinks)
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        # _run_sink captures Exception; only BaseException (e.g. CancelledError) ends up here
        escaped = [
            (ident, result) for ident, result in zip(ids, results) if isinstance(result, BaseException)
        ]

        outcome = DispatchOutcome(
            succeeded=[ident for ident, result in zip(ids, results) if result is None],
            failed=[result for result in results if isinstance(result, SinkFailure)],
        )

        logger.info(
            "dispatch_complete",
            domain=event.domain,
            sink_count=len(sinks),
            succeeded=outcome.succeeded,
            failed=[failure.sink_id for failure in outcome.failed],
            escaped=[ident for ident, _ in escaped],
        )

        if escaped:
            raise escaped[0][1]
        if outcome.failed:
            raise DispatchError(outcome) from outcome.failed[0].error
        return outcome

    async def _run_sink(self, ident: str, sink: Sink, event: NotificationEvent) -> SinkFailure | None:
        try:
            if self.sink_timeout_seconds is None:
                await sink.notify(event)
            else:
                await asyncio.wait_for(sink.notify(event), timeout=self.sink_timeout_seconds)
        except Exception as exc:
            logger.error(
                "sink_failed",
                sink_id=ident,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return SinkFailure(sink_id=ident, error=exc)

        logger.debug("sink_succeeded", sink_id=ident)
        return None


def _unique_ids(sinks: Sequence[Sink]) -> list[str]:
    ids: list[str] = []
    seen: dict[str, int] = {}
    for sink in sinks:
        ident = sink_id(sink)
        if ident in seen:
            seen[ident] += 1
            ident = f"{ident}#{seen[ident]}"
        else:
            seen[ident] = 1
        ids.append(ident)
    return ids
