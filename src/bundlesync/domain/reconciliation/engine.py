"""Top-level reconcile loop for one SharedResource.

Each pass is level triggered: it re-reads the intent, the source and every
target and derives the full desired state from scratch, so passes may be
coalesced, reordered or repeated freely. Writes go through the store's
optimistic concurrency; a conflict restarts the pass from a fresh read.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field, replace
from datetime import timedelta
from typing import TYPE_CHECKING

from bundlesync.domain.checksum import compute_checksum
from bundlesync.domain.conditions import set_condition
from bundlesync.domain.errors import (
    BundleSyncError,
    PassCancelledError,
    TargetOwnershipConflictError,
    UnsupportedSourceKindError,
)
from bundlesync.domain.filtering import filter_bundle
from bundlesync.domain.model import (
    DEFAULT_SECRET_TYPE,
    ConditionReason,
    ConditionType,
    KeyValueResource,
    ResourceKind,
    SharedResource,
    TargetSyncStatus,
    source_kind_of,
)
from bundlesync.domain.ports.clock import utcnow
from bundlesync.domain.ports.store import ConflictError, NotFoundError, StoreError

from .context import PassContext
from .contracts import ReconcileRequest, ReconcileResult
from .deletion import DeletionHandler
from .ownership import FINALIZER_NAME
from .sync import SyncOutcome, TargetSynchronizer

if TYPE_CHECKING:
    from datetime import datetime

    from bundlesync.domain.model import SharedResourceStatus
    from bundlesync.domain.ports.clock import Clock
    from bundlesync.domain.ports.store import ObjectStore

log = logging.getLogger(__name__)

DEFAULT_SOURCE_REQUEUE_AFTER = timedelta(seconds=30)


@dataclass(slots=True)
class Reconciler:
    """Run reconcile passes against an object store."""

    store: ObjectStore
    managed_by: str
    clock: Clock = field(default=utcnow)
    source_requeue_after: timedelta = DEFAULT_SOURCE_REQUEUE_AFTER
    max_conflict_retries: int = 3
    pass_timeout_seconds: float | None = None
    synchronizer: TargetSynchronizer = field(init=False)
    deletion: DeletionHandler = field(init=False)

    def __post_init__(self) -> None:
        self.synchronizer = TargetSynchronizer(self.store, self.managed_by, self.clock)
        self.deletion = DeletionHandler(self.store, self.managed_by)

    def reconcile(
        self,
        request: ReconcileRequest,
        *,
        ctx: PassContext | None = None,
    ) -> ReconcileResult:
        """Run one pass for ``request``, retrying from scratch on write conflicts."""

        effective_ctx = ctx or PassContext.with_timeout(self.pass_timeout_seconds)
        attempt = 0
        while True:
            try:
                return self._reconcile_once(request, effective_ctx)
            except ConflictError as exc:
                if attempt >= self.max_conflict_retries:
                    log.warning("Giving up on %s after %s conflicts", request, attempt + 1)
                    raise
                attempt += 1
                log.info(
                    "Conflict while reconciling %s (%s); retrying from a fresh read", request, exc
                )

    def _reconcile_once(self, request: ReconcileRequest, ctx: PassContext) -> ReconcileResult:
        log.debug("Starting reconciliation of %s", request)

        ctx.check()
        try:
            intent = self._get_intent(request)
        except NotFoundError:
            log.info("SharedResource %s not found, likely deleted", request)
            return ReconcileResult()

        if intent.is_marked_for_deletion:
            self.deletion.handle_deletion(intent, ctx=ctx)
            return ReconcileResult()

        if not intent.has_finalizer(FINALIZER_NAME):
            log.info("Adding finalizer to %s", intent.key)
            intent.add_finalizer(FINALIZER_NAME)
            ctx.check()
            self.store.update(intent)
            return ReconcileResult(requeue=True)

        try:
            kind = _source_kind(intent.spec.source.kind)
        except UnsupportedSourceKindError as exc:
            return self._report_unsupported_kind(intent, exc, ctx)

        try:
            source = self._get_source(intent, kind, ctx)
        except NotFoundError:
            return self._report_missing_source(intent, ctx)

        previous = copy.deepcopy(intent.status)
        now = self.clock()
        set_condition(
            intent.status,
            ConditionType.SOURCE_FOUND,
            True,
            ConditionReason.SOURCE_EXISTS,
            "Source resource found",
            now=now,
        )

        bundle = filter_bundle(source.data, intent.spec.sync_policy)
        checksum = compute_checksum(bundle)
        log.debug("Computed source checksum %s for %s", checksum, intent.key)
        type_tag = None
        if kind == ResourceKind.SECRET:
            type_tag = source.type_tag or DEFAULT_SECRET_TYPE

        records, conflicted, written = self._sync_all_targets(
            intent, kind, bundle, type_tag, checksum, now, ctx
        )
        return self._update_status(
            intent,
            records,
            checksum,
            now,
            ctx,
            conflicted=conflicted,
            previous=None if written else previous,
        )

    def _get_intent(self, request: ReconcileRequest) -> SharedResource:
        obj = self.store.get(ResourceKind.SHARED_RESOURCE, request.namespace, request.name)
        if not isinstance(obj, SharedResource):
            raise TypeError(f"expected a SharedResource, store returned {type(obj).__name__}")
        return obj

    def _get_source(
        self, intent: SharedResource, kind: ResourceKind, ctx: PassContext
    ) -> KeyValueResource:
        ctx.check()
        # the source always lives next to the intent
        obj = self.store.get(kind, intent.namespace, intent.spec.source.name)
        if not isinstance(obj, KeyValueResource):
            raise TypeError(f"expected a {kind}, store returned {type(obj).__name__}")
        return obj

    def _sync_all_targets(
        self,
        intent: SharedResource,
        kind: ResourceKind,
        bundle: dict[str, bytes],
        type_tag: str | None,
        checksum: str,
        now: datetime,
        ctx: PassContext,
    ) -> tuple[list[TargetSyncStatus], bool, bool]:
        records: list[TargetSyncStatus] = []
        conflicted = False
        written = False
        mode = intent.spec.sync_mode
        for target in intent.spec.targets:
            name = target.resolved_name(intent.spec.source.name)
            record = TargetSyncStatus(namespace=target.namespace, name=name, synced=False)
            try:
                outcome = self.synchronizer.sync_target(
                    intent,
                    kind=kind,
                    namespace=target.namespace,
                    name=name,
                    bundle=bundle,
                    type_tag=type_tag,
                    checksum=checksum,
                    mode=mode,
                    ctx=ctx,
                )
            except (ConflictError, PassCancelledError):
                raise
            except TargetOwnershipConflictError as exc:
                log.warning("Not syncing %s: %s", intent.key, exc)
                record.error = str(exc)
                conflicted = True
            except (StoreError, BundleSyncError) as exc:
                log.warning(
                    "Failed to sync %s to %s/%s: %s", intent.key, target.namespace, name, exc
                )
                record.error = str(exc)
            else:
                record.synced = True
                record.last_synced = now
                written = written or outcome != SyncOutcome.UNCHANGED
            records.append(record)
        return records, conflicted, written

    def _update_status(
        self,
        intent: SharedResource,
        records: list[TargetSyncStatus],
        checksum: str,
        now: datetime,
        ctx: PassContext,
        *,
        conflicted: bool = False,
        previous: SharedResourceStatus | None = None,
    ) -> ReconcileResult:
        """Record the pass outcome on the intent.

        ``previous`` is the status read at the start of a pass that wrote no
        target; when only the sync timestamps would change, the write is skipped.
        """
        status = intent.status
        status.synced_targets = records
        status.source_checksum = checksum
        status.observed_generation = intent.generation

        failed = [record for record in records if not record.synced]
        if not failed:
            status.last_sync_time = now
            set_condition(
                status,
                ConditionType.READY,
                True,
                ConditionReason.SYNC_SUCCESSFUL,
                "All targets synced successfully",
                now=now,
            )
        else:
            reason = (
                ConditionReason.TARGET_CONFLICT if conflicted else ConditionReason.SYNC_FAILED
            )
            names = ", ".join(f"{record.namespace}/{record.name}" for record in failed)
            set_condition(
                status,
                ConditionType.READY,
                False,
                reason,
                f"{len(failed)} of {len(records)} targets failed to sync: {names}",
                now=now,
            )

        if previous is not None and _without_sync_times(previous) == _without_sync_times(status):
            log.debug("Status of %s unchanged, skipping write", intent.key)
            return ReconcileResult()

        ctx.check()
        self.store.update(intent)
        log.info(
            "Reconciliation of %s complete: %s/%s targets synced",
            intent.key,
            len(records) - len(failed),
            len(records),
        )
        return ReconcileResult()

    def _report_missing_source(self, intent: SharedResource, ctx: PassContext) -> ReconcileResult:
        source = intent.spec.source
        log.info("Source %s %s/%s not found", source.kind, intent.namespace, source.name)
        now = self.clock()
        set_condition(
            intent.status,
            ConditionType.SOURCE_FOUND,
            False,
            ConditionReason.SOURCE_NOT_FOUND,
            f"Source {source.kind}/{source.name} not found",
            now=now,
        )
        set_condition(
            intent.status,
            ConditionType.READY,
            False,
            ConditionReason.SOURCE_NOT_FOUND,
            "Cannot sync: source resource not found",
            now=now,
        )
        intent.status.observed_generation = intent.generation
        ctx.check()
        self.store.update(intent)
        return ReconcileResult(requeue_after=self.source_requeue_after)

    def _report_unsupported_kind(
        self,
        intent: SharedResource,
        error: UnsupportedSourceKindError,
        ctx: PassContext,
    ) -> ReconcileResult:
        log.warning("SharedResource %s: %s", intent.key, error)
        now = self.clock()
        message = f"Source kind {error.kind!r} is not supported; use Secret or ConfigMap"
        set_condition(
            intent.status,
            ConditionType.SOURCE_FOUND,
            False,
            ConditionReason.UNSUPPORTED_KIND,
            message,
            now=now,
        )
        set_condition(
            intent.status,
            ConditionType.READY,
            False,
            ConditionReason.UNSUPPORTED_KIND,
            message,
            now=now,
        )
        intent.status.observed_generation = intent.generation
        ctx.check()
        self.store.update(intent)
        return ReconcileResult()


def _source_kind(kind: str) -> ResourceKind:
    resolved = source_kind_of(kind)
    if resolved is None:
        raise UnsupportedSourceKindError(kind)
    return resolved


def _without_sync_times(status: SharedResourceStatus) -> SharedResourceStatus:
    return replace(
        status,
        last_sync_time=None,
        synced_targets=[replace(record, last_synced=None) for record in status.synced_targets],
    )
