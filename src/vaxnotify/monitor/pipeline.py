"""Pipeline orchestrator: Acquire -> Diff -> Persist -> Notify -> Report.

One run per invocation, no internal retries; the external scheduler re-runs
the whole pipeline. The new snapshot is persisted right after diffing, before
notifying, so a failed notify never causes the same change to be diffed again.

Two overlapping runs would race on the snapshot store (last write wins).
This is not guarded against.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Mapping, Protocol, Sequence

import structlog
from structlog.typing import FilteringBoundLogger

from ..notify.dispatcher import DispatchError, DispatchOutcome, FanoutDispatcher
from ..notify.sinks import Sink
from .diff import diff
from .errors import (
    AcquisitionError,
    CollectionError,
    PersistenceError,
    SnapshotFetchError,
    SnapshotNotFoundError,
    SnapshotWriteError,
)
from .significance import SignificancePolicy, select_targets
from .snapshot import ChangeSet, NotificationEvent, StateSnapshot, Value

if TYPE_CHECKING:
    from ..persistence.run_log import RunLog
    from ..persistence.snapshot_store import SnapshotStore

logger = structlog.get_logger(__name__)


class Collector(Protocol):
    """Produces the currently observed state; fails with CollectionError."""

    async def collect(self) -> Mapping[str, Value]: ...


@dataclass(frozen=True)
class PipelineResult:
    """Outcome of a run whose notify stage fully succeeded."""

    run_id: str
    changes: ChangeSet
    targets: frozenset[str]
    outcome: DispatchOutcome


class Pipeline:
    """Snapshot-diff-and-notify orchestrator for one monitored domain."""

    def __init__(
        self,
        domain: str,
        collector: Collector,
        store: SnapshotStore,
        sinks: Sequence[Sink],
        dispatcher: FanoutDispatcher | None = None,
        policy: SignificancePolicy | None = None,
        notify_all: bool = False,
        bootstrap: bool = False,
        run_log: RunLog | None = None,
        dry: bool = False,
    ):
        """
        Args:
            domain: Monitored domain name (used for logging and the run log)
            collector: Source of the current state
            store: Prior snapshot source and persistence target
            sinks: Notification channels
            dispatcher: Fan-out dispatcher (default: no per-sink timeout)
            policy: Significance predicate (default: threshold 2, increase 2)
            notify_all: Treat every current entry as a notification target
            bootstrap: Treat a missing prior snapshot as empty instead of failing
            run_log: Optional SQLite run log
            dry: Recorded in the run log; sinks are expected to be wrapped already
        """
        self.domain = domain
        self.collector = collector
        self.store = store
        self.sinks = list(sinks)
        self.dispatcher = dispatcher or FanoutDispatcher()
        self.policy = policy or SignificancePolicy()
        self.notify_all = notify_all
        self.bootstrap = bootstrap
        self.run_log = run_log
        self.dry = dry

    async def run(self) -> PipelineResult:
        """
        Execute one full run.

        Returns:
            PipelineResult when every sink succeeded

        Raises:
            AcquisitionError: Collector or snapshot read failed (nothing persisted)
            PersistenceError: Snapshot write failed (nothing notified)
            DispatchError: One or more sinks failed (snapshot already persisted)
        """
        run_id = str(uuid.uuid4())
        start = time.perf_counter()
        log = logger.bind(run_id=run_id, domain=self.domain)
        log.info("pipeline_run_started", sink_count=len(self.sinks), notify_all=self.notify_all)

        if self.run_log is not None:
            await self.run_log.log_run_start(run_id, self.domain, dry=self.dry)

        counts: dict[str, int] = {}
        status = "failed"
        failed_sinks: list[str] = []
        error_details: dict | None = None

        try:
            previous, current = await self._acquire()

            changes = diff(previous, current)
            counts.update(changes.summary())
            log.info("snapshot_diffed", **changes.summary())

            await self._persist(current)

            targets = select_targets(changes, current, self.policy, notify_all=self.notify_all)
            counts["targets"] = len(targets)
            event = NotificationEvent(
                domain=self.domain,
                previous=previous,
                current=current,
                changes=changes,
                targets=targets,
                forced=self.notify_all,
            )
            log.info("notification_targets_selected", target_count=len(targets), targets=sorted(targets))

            try:
                outcome = await self.dispatcher.dispatch(event, self.sinks)
            except DispatchError as exc:
                status = "notify_failed"
                failed_sinks = [failure.sink_id for failure in exc.failures]
                error_details = {"failures": [failure.to_dict() for failure in exc.failures]}
                raise

            status = "completed"
            return PipelineResult(run_id=run_id, changes=changes, targets=targets, outcome=outcome)

        except (AcquisitionError, PersistenceError) as exc:
            error_details = exc.to_dict()
            raise
        except DispatchError:
            raise
        except Exception as exc:
            error_details = {"error": str(exc), "error_type": type(exc).__name__}
            raise
        finally:
            duration_ms = int((time.perf_counter() - start) * 1000)
            if status == "completed":
                log.info("pipeline_run_completed", duration_ms=duration_ms, **counts)
            else:
                log.error(
                    "pipeline_run_failed",
                    status=status,
                    duration_ms=duration_ms,
                    failed_sinks=failed_sinks,
                    error_details=error_details,
                )
            if self.run_log is not None:
                await self._log_run_end(log, run_id, status, counts, failed_sinks, error_details)

    async def _log_run_end(
        self,
        log: FilteringBoundLogger,
        run_id: str,
        status: str,
        counts: dict[str, int],
        failed_sinks: list[str],
        error_details: dict | None,
    ) -> None:
        # Must not replace the exception a failed run is already raising
        try:
            await self.run_log.log_run_end(
                run_id,
                status,
                counts=counts,
                failed_sinks=failed_sinks,
                error_details=error_details,
            )
        except Exception as exc:
            log.error(
                "run_log_write_failed",
                status=status,
                error=str(exc),
                error_type=type(exc).__name__,
            )

    async def _acquire(self) -> tuple[StateSnapshot, StateSnapshot]:
        """Load the prior snapshot and collect the current state concurrently."""
        observed_at = datetime.now(timezone.utc)
        load_result, collect_result = await asyncio.gather(
            self.store.load(),
            self.collector.collect(),
            return_exceptions=True,
        )

        if isinstance(collect_result, BaseException):
            raise _as_acquisition_error(collect_result, CollectionError, "collection_failed")

        if isinstance(load_result, SnapshotNotFoundError) and self.bootstrap:
            logger.warning("snapshot_missing_bootstrapping", domain=self.domain)
            load_result = StateSnapshot.empty(observed_at)
        elif isinstance(load_result, BaseException):
            raise _as_acquisition_error(load_result, SnapshotFetchError, "snapshot_fetch_failed")

        try:
            current = StateSnapshot(collect_result, observed_at)
        except (TypeError, ValueError) as exc:
            raise CollectionError(
                code="collection_invalid",
                message=f"Collector returned an invalid state: {exc}",
            ) from exc

        return load_result, current

    async def _persist(self, current: StateSnapshot) -> None:
        try:
            await self.store.save(current)
        except PersistenceError:
            raise
        except Exception as exc:
            raise SnapshotWriteError(
                code="snapshot_write_failed",
                message=f"Unable to persist snapshot: {exc}",
            ) from exc


def _as_acquisition_error(
    exc: BaseException,
    wrapper: type[AcquisitionError],
    code: str,
) -> BaseException:
    if isinstance(exc, AcquisitionError) or not isinstance(exc, Exception):
        return exc
    wrapped = wrapper(code=code, message=f"{type(exc).__name__}: {exc}")
    wrapped.__cause__ = exc
    return wrapped
