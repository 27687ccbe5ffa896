"""Create or converge a single target object."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from bundlesync.domain.checksum import compute_checksum
from bundlesync.domain.errors import TargetOwnershipConflictError
from bundlesync.domain.filtering import merge_bundles
from bundlesync.domain.model import KeyValueResource, ObjectKey, SyncMode
from bundlesync.domain.ports.clock import utcnow
from bundlesync.domain.ports.store import NotFoundError

from .ownership import is_managed_by, owning_intent, tracking_annotations

if TYPE_CHECKING:
    from collections.abc import Mapping

    from bundlesync.domain.model import ResourceKind, SharedResource
    from bundlesync.domain.ports.clock import Clock
    from bundlesync.domain.ports.store import ObjectStore

    from .context import PassContext

log = logging.getLogger(__name__)


class SyncOutcome(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass(slots=True)
class TargetSynchronizer:
    """Drive one target object toward the filtered source bundle.

    Copy and selective modes make the target data equal to the bundle; merge
    mode overlays the bundle onto whatever the target already holds. The write
    is skipped when the live data already hashes to the desired data and the
    type tag matches, so repeated calls converge to a fixed point. Store errors
    propagate untouched.
    """

    store: ObjectStore
    managed_by: str
    clock: Clock = field(default=utcnow)

    def sync_target(
        self,
        intent: SharedResource,
        *,
        kind: ResourceKind,
        namespace: str,
        name: str,
        bundle: Mapping[str, bytes],
        type_tag: str | None,
        checksum: str,
        mode: SyncMode,
        ctx: PassContext,
    ) -> SyncOutcome:
        annotations = tracking_annotations(
            intent, identity=self.managed_by, checksum=checksum, now=self.clock()
        )

        ctx.check()
        try:
            existing = self.store.get(kind, namespace, name)
        except NotFoundError:
            target = KeyValueResource(
                kind=kind,
                namespace=namespace,
                name=name,
                data=dict(bundle),
                type_tag=type_tag,
                annotations=annotations,
            )
            log.info("Creating target %s %s/%s", kind, namespace, name)
            ctx.check()
            self.store.create(target)
            return SyncOutcome.CREATED

        if not isinstance(existing, KeyValueResource):
            raise TypeError(f"expected a {kind}, store returned {type(existing).__name__}")
        self._ensure_not_claimed_elsewhere(intent, existing)

        if mode == SyncMode.MERGE:
            desired = merge_bundles(existing.data, bundle)
        else:
            desired = dict(bundle)

        if (
            compute_checksum(desired) == compute_checksum(existing.data)
            and existing.type_tag == type_tag
        ):
            log.debug("Target %s %s/%s already up to date (mode=%s)", kind, namespace, name, mode)
            return SyncOutcome.UNCHANGED

        existing.data = desired
        existing.type_tag = type_tag
        existing.annotations.update(annotations)
        log.info("Updating target %s %s/%s (mode=%s)", kind, namespace, name, mode)
        ctx.check()
        self.store.update(existing)
        return SyncOutcome.UPDATED

    def _ensure_not_claimed_elsewhere(
        self, intent: SharedResource, existing: KeyValueResource
    ) -> None:
        if not is_managed_by(existing, self.managed_by):
            return
        owner = owning_intent(existing)
        if owner is not None and owner != intent.key:
            raise TargetOwnershipConflictError(
                ObjectKey(existing.namespace, existing.name), owner
            )
