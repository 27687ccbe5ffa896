"""Map watch events back to the SharedResources that must be reconciled."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from bundlesync.domain.model import KeyValueResource, ResourceKind, SharedResource
from bundlesync.domain.ports.store import StoreError

from .contracts import ReconcileRequest
from .ownership import is_managed_by, owning_intent

if TYPE_CHECKING:
    from bundlesync.domain.ports.store import ChangeEvent, ObjectStore

log = logging.getLogger(__name__)


@dataclass(slots=True)
class CorrelationIndex:
    """Two-branch classifier from a changed object to reconcile requests.

    Managed targets name their owner in their tracking annotations, so they
    map to exactly one request without a scan. Anything else is treated as a
    possible source and matched against the intents of its own namespace.
    """

    store: ObjectStore
    managed_by: str

    def requests_for_event(self, event: ChangeEvent) -> list[ReconcileRequest]:
        obj = event.obj
        if isinstance(obj, SharedResource):
            return self.requests_for_intent(obj)
        return self.requests_for(obj)

    def requests_for_intent(self, intent: SharedResource) -> list[ReconcileRequest]:
        return [ReconcileRequest.for_key(intent.key)]

    def requests_for(self, obj: KeyValueResource) -> list[ReconcileRequest]:
        if is_managed_by(obj, self.managed_by):
            return self._requests_for_managed_target(obj)
        return self._requests_for_source(obj)

    def _requests_for_managed_target(self, obj: KeyValueResource) -> list[ReconcileRequest]:
        owner = owning_intent(obj)
        if owner is None:
            return []
        log.debug(
            "Managed target %s %s/%s changed, reconciling %s",
            obj.kind,
            obj.namespace,
            obj.name,
            owner,
        )
        return [ReconcileRequest.for_key(owner)]

    def _requests_for_source(self, obj: KeyValueResource) -> list[ReconcileRequest]:
        try:
            intents = self.store.list(ResourceKind.SHARED_RESOURCE, obj.namespace)
        except StoreError:
            log.exception("Failed to list SharedResources in namespace %s", obj.namespace)
            return []

        requests: list[ReconcileRequest] = []
        for intent in intents:
            if not isinstance(intent, SharedResource):
                continue
            source = intent.spec.source
            if source.kind == obj.kind and source.name == obj.name:
                log.debug(
                    "Source %s %s/%s changed, reconciling %s",
                    obj.kind,
                    obj.namespace,
                    obj.name,
                    intent.key,
                )
                requests.append(ReconcileRequest.for_key(intent.key))
        return requests
