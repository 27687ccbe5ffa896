"""Application orchestration entry points."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from logging import getLogger
from typing import TYPE_CHECKING, Any

from bundlesync.adapters.manifest import (
    NamespaceDocument,
    load_manifest_file,
    object_to_payload,
    to_domain,
)
from bundlesync.adapters.sqlalchemy import SqlAlchemyObjectStore, is_started, startup
from bundlesync.config import ControllerConfig, get_controller_config
from bundlesync.domain.model import KeyValueResource, ResourceKind, SharedResource
from bundlesync.domain.ports.clock import utcnow
from bundlesync.domain.ports.store import AlreadyExistsError
from bundlesync.domain.reconciliation import ReconcileRequest, Reconciler
from bundlesync.runtime import Dispatcher

if TYPE_CHECKING:
    import threading
    from collections.abc import Iterable, Sequence
    from pathlib import Path

    from bundlesync.adapters.manifest import Document
    from bundlesync.domain.model import StoredObject
    from bundlesync.domain.ports.clock import Clock
    from bundlesync.domain.ports.store import ObjectStore

log = getLogger(__name__)


@dataclass(slots=True)
class ApplyResult:
    namespaces: list[str] = field(default_factory=list[str])
    created: list[str] = field(default_factory=list[str])
    updated: list[str] = field(default_factory=list[str])


def open_store(*, database_uri: str | None = None, clock: Clock = utcnow) -> SqlAlchemyObjectStore:
    """Return the durable store, initialising the SQLAlchemy adapter on first use."""

    if not is_started():
        startup(database_uri=database_uri)
    return SqlAlchemyObjectStore(clock=clock)


def build_reconciler(
    store: ObjectStore,
    config: ControllerConfig | None = None,
    *,
    clock: Clock = utcnow,
) -> Reconciler:
    effective = config or get_controller_config()
    return Reconciler(
        store=store,
        managed_by=effective.managed_by,
        clock=clock,
        source_requeue_after=timedelta(seconds=effective.source_requeue_seconds),
        max_conflict_retries=effective.max_conflict_retries,
        pass_timeout_seconds=effective.pass_timeout_seconds,
    )


def build_dispatcher(
    store: ObjectStore,
    config: ControllerConfig | None = None,
    *,
    clock: Clock = utcnow,
    cancel_event: threading.Event | None = None,
) -> Dispatcher:
    effective = config or get_controller_config()
    return Dispatcher(
        store,
        build_reconciler(store, effective, clock=clock),
        effective,
        cancel_event=cancel_event,
    )


def apply_documents(
    store: ObjectStore,
    documents: Iterable[Document],
    *,
    default_namespace: str | None = None,
) -> ApplyResult:
    """Create or update every document; namespaces are applied first."""

    ordered = sorted(documents, key=lambda doc: not isinstance(doc, NamespaceDocument))
    result = ApplyResult()
    for document in ordered:
        obj = to_domain(document, default_namespace=default_namespace)
        if isinstance(obj, str):
            store.ensure_namespace(obj)
            result.namespaces.append(obj)
            continue
        label = f"{obj.kind} {obj.namespace}/{obj.name}"
        try:
            store.create(obj)
        except AlreadyExistsError:
            _apply_update(store, obj)
            result.updated.append(label)
            log.info("Updated %s", label)
        else:
            result.created.append(label)
            log.info("Created %s", label)
    return result


def apply_manifest_files(
    store: ObjectStore,
    paths: Sequence[str | Path],
    *,
    default_namespace: str | None = None,
) -> ApplyResult:
    documents = [document for path in paths for document in load_manifest_file(path)]
    return apply_documents(store, documents, default_namespace=default_namespace)


def _apply_update(store: ObjectStore, obj: StoredObject) -> None:
    existing = store.get(obj.kind, obj.namespace, obj.name)
    if isinstance(existing, SharedResource) and isinstance(obj, SharedResource):
        # status and finalizers belong to the controller
        existing.spec = obj.spec
    elif isinstance(existing, KeyValueResource) and isinstance(obj, KeyValueResource):
        existing.data = dict(obj.data)
        existing.type_tag = obj.type_tag
        existing.annotations = {**existing.annotations, **obj.annotations}
    store.update(existing)


def request_deletion(store: ObjectStore, namespace: str, name: str) -> None:
    """Ask for an intent to be deleted; the controller finalizes it."""

    intent = store.get(ResourceKind.SHARED_RESOURCE, namespace, name)
    store.delete(intent)
    log.info("Deletion requested for SharedResource %s/%s", namespace, name)


def reconcile_until_idle(
    store: ObjectStore,
    *,
    request: ReconcileRequest | None = None,
    config: ControllerConfig | None = None,
    clock: Clock = utcnow,
    max_iterations: int = 100,
) -> int:
    """Run passes for one intent (or all of them) until no work is due."""

    dispatcher = build_dispatcher(store, config, clock=clock)
    dispatcher.start()
    try:
        if request is None:
            seeded = dispatcher.enqueue_all()
            log.info("Reconciling %s SharedResources", seeded)
        else:
            dispatcher.enqueue(request)
        return dispatcher.run_until_idle(max_iterations)
    finally:
        dispatcher.stop()


def describe(store: ObjectStore, namespace: str, name: str) -> dict[str, Any]:
    intent = store.get(ResourceKind.SHARED_RESOURCE, namespace, name)
    return object_to_payload(intent)
