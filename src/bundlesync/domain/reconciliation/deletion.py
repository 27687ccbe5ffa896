"""Finalizer protocol run when a SharedResource is being deleted."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from bundlesync.domain.model import DeletionPolicy, KeyValueResource, source_kind_of
from bundlesync.domain.ports.store import NotFoundError

from .ownership import FINALIZER_NAME, is_managed_by, owning_intent

if TYPE_CHECKING:
    from bundlesync.domain.model import SharedResource
    from bundlesync.domain.ports.store import ObjectStore

    from .context import PassContext

log = logging.getLogger(__name__)


@dataclass(slots=True)
class DeletionHandler:
    """Clean up targets per deletion policy, then release the finalizer.

    Only objects carrying this controller's ownership marker and recorded as
    belonging to the intent being deleted are ever removed. Any store failure
    propagates so the finalizer stays in place and the dispatcher retries; an
    intent is never released with cleanup half done.
    """

    store: ObjectStore
    managed_by: str
    finalizer: str = FINALIZER_NAME

    def handle_deletion(self, intent: SharedResource, *, ctx: PassContext) -> None:
        if not intent.has_finalizer(self.finalizer):
            return

        log.info("Processing finalizer for SharedResource %s", intent.key)
        if intent.spec.deletion_policy == DeletionPolicy.DELETE:
            self._delete_targets(intent, ctx=ctx)
            log.info("Deleted target resources of %s per deletion policy", intent.key)
        else:
            log.info("Orphaning target resources of %s per deletion policy", intent.key)

        intent.remove_finalizer(self.finalizer)
        ctx.check()
        self.store.update(intent)

    def _delete_targets(self, intent: SharedResource, *, ctx: PassContext) -> None:
        source = intent.spec.source
        kind = source_kind_of(source.kind)
        if kind is None:
            # nothing can have been synced for an unsupported kind
            return

        for target in intent.spec.targets:
            name = target.resolved_name(source.name)
            ctx.check()
            try:
                existing = self.store.get(kind, target.namespace, name)
            except NotFoundError:
                continue
            if not isinstance(existing, KeyValueResource) or not is_managed_by(
                existing, self.managed_by
            ):
                log.info(
                    "Leaving %s %s/%s in place: not managed by %s",
                    kind,
                    target.namespace,
                    name,
                    self.managed_by,
                )
                continue
            owner = owning_intent(existing)
            if owner is not None and owner != intent.key:
                log.info(
                    "Leaving %s %s/%s in place: owned by SharedResource %s",
                    kind,
                    target.namespace,
                    name,
                    owner,
                )
                continue
            log.info("Deleting target %s %s/%s", kind, target.namespace, name)
            ctx.check()
            try:
                self.store.delete(existing)
            except NotFoundError:
                continue
