"""Work queue between watch streams and the reconciler.

Watch events are correlated to reconcile requests and queued by intent key.
A key is queued at most once (its earliest due time wins) and is never
processed twice within one ``run_once`` call. Failed passes are retried with
exponential backoff; ``requeue``/``requeue_after`` hints are honoured.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from bundlesync.config import ControllerConfig
from bundlesync.domain.model import ResourceKind, SharedResource
from bundlesync.domain.ports.store import EventType
from bundlesync.domain.reconciliation import (
    CorrelationIndex,
    PassContext,
    ReconcileRequest,
    Reconciler,
)

if TYPE_CHECKING:
    import threading
    from collections.abc import Callable

    from bundlesync.domain.ports.store import ChangeEvent, ObjectStore, WatchStream
    from bundlesync.domain.reconciliation import ReconcileResult

log = logging.getLogger(__name__)

WATCHED_KINDS: tuple[ResourceKind, ...] = (
    ResourceKind.SHARED_RESOURCE,
    ResourceKind.SECRET,
    ResourceKind.CONFIG_MAP,
)


def needs_reconcile(event: ChangeEvent) -> bool:
    """Filter out intent events the controller caused itself.

    Status and finalizer writes do not change ``generation``; reacting to them
    would loop forever. Key/value events are always passed to correlation.
    """

    obj = event.obj
    if not isinstance(obj, SharedResource):
        return True
    if event.type == EventType.DELETED:
        return False
    if event.type == EventType.ADDED or obj.is_marked_for_deletion:
        return True
    return obj.generation != obj.status.observed_generation


class Dispatcher:
    def __init__(
        self,
        store: ObjectStore,
        reconciler: Reconciler,
        config: ControllerConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.store = store
        self.reconciler = reconciler
        self.config = config or ControllerConfig()
        self.clock = clock
        self.cancel_event = cancel_event
        self.correlation = CorrelationIndex(store, self.config.managed_by)
        self._queue: dict[ReconcileRequest, float] = {}
        self._failures: dict[ReconcileRequest, int] = {}
        self._watches: list[WatchStream] = []

    # lifecycle -----------------------------------------------------------------

    def start(self) -> None:
        """Open watches; events recorded from now on will be pumped."""

        if self._watches:
            return
        self._watches = [self.store.watch(kind) for kind in WATCHED_KINDS]
        log.debug("Watching %s", ", ".join(WATCHED_KINDS))

    def stop(self) -> None:
        for stream in self._watches:
            stream.close()
        self._watches = []

    @property
    def stopping(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    # queue ---------------------------------------------------------------------

    def enqueue(self, request: ReconcileRequest, delay: float = 0.0) -> None:
        due = self.clock() + max(delay, 0.0)
        current = self._queue.get(request)
        if current is None or due < current:
            self._queue[request] = due

    def enqueue_all(self) -> int:
        intents = self.store.list(ResourceKind.SHARED_RESOURCE)
        for intent in intents:
            self.enqueue(ReconcileRequest.for_key(intent.key))
        return len(intents)

    def pending(self) -> dict[ReconcileRequest, float]:
        """Snapshot of queued requests and their due times."""

        return dict(self._queue)

    def failures(self, request: ReconcileRequest) -> int:
        return self._failures.get(request, 0)

    def next_due(self) -> float | None:
        return min(self._queue.values(), default=None)

    def backoff_delay(self, failures: int) -> float:
        if failures <= 0:
            return 0.0
        delay = self.config.backoff_base_seconds * 2 ** (failures - 1)
        return min(delay, self.config.backoff_max_seconds)

    # processing ----------------------------------------------------------------

    def pump_events(self) -> int:
        """Drain every watch and enqueue the affected intents."""

        enqueued = 0
        for stream in self._watches:
            for event in stream.drain():
                if not needs_reconcile(event):
                    continue
                for request in self.correlation.requests_for_event(event):
                    self.enqueue(request)
                    enqueued += 1
        return enqueued

    def run_once(self) -> int:
        """Reconcile every request that is due now; return how many ran."""

        now = self.clock()
        due = sorted(
            (request for request, due_at in self._queue.items() if due_at <= now),
            key=lambda request: (self._queue[request], request.namespace, request.name),
        )
        processed = 0
        for request in due:
            if self.stopping:
                break
            del self._queue[request]
            self._process(request)
            processed += 1
        return processed

    def run_until_idle(self, max_iterations: int = 100) -> int:
        """Pump and process until nothing is due; return the number of passes run."""

        total = 0
        for _ in range(max_iterations):
            if self.stopping:
                break
            self.pump_events()
            processed = self.run_once()
            total += processed
            if processed == 0:
                break
        else:
            log.warning("Dispatcher still busy after %s iterations", max_iterations)
        return total

    def run(
        self,
        *,
        interval: float = 1.0,
        cycles: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> int:
        """Controller loop: seed every intent, then poll until stopped."""

        self.start()
        self.enqueue_all()
        total = 0
        cycle = 0
        while not self.stopping and (cycles is None or cycle < cycles):
            total += self.run_until_idle()
            cycle += 1
            if cycles is not None and cycle >= cycles:
                break
            sleep(interval)
        return total

    def _process(self, request: ReconcileRequest) -> None:
        ctx = PassContext.with_timeout(
            self.config.pass_timeout_seconds, cancel_event=self.cancel_event
        )
        try:
            result = self.reconciler.reconcile(request, ctx=ctx)
        except Exception:
            failures = self._failures.get(request, 0) + 1
            self._failures[request] = failures
            delay = self.backoff_delay(failures)
            log.exception(
                "Reconciliation of %s failed (attempt %s); retrying in %.1fs",
                request,
                failures,
                delay,
            )
            self.enqueue(request, delay)
            return

        self._failures.pop(request, None)
        self._schedule(request, result)

    def _schedule(self, request: ReconcileRequest, result: ReconcileResult) -> None:
        if result.requeue:
            self.enqueue(request)
        elif result.requeue_after is not None:
            log.debug("Requeueing %s in %s", request, result.requeue_after)
            self.enqueue(request, result.requeue_after.total_seconds())
