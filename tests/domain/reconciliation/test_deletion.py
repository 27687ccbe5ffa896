from __future__ import annotations

import pytest

from bundlesync.adapters.memory import InMemoryObjectStore
from bundlesync.domain.model import (
    DeletionPolicy,
    KeyValueResource,
    ResourceKind,
    SharedResource,
)
from bundlesync.domain.ports.store import NotFoundError, StoreError
from bundlesync.domain.reconciliation import (
    ANNOTATION_MANAGED_BY,
    ANNOTATION_SOURCE_INTENT,
    ANNOTATION_SOURCE_NAMESPACE,
    FINALIZER_NAME,
    DeletionHandler,
    PassContext,
    ReconcileRequest,
    Reconciler,
)
from tests.helpers.resources import CONTROLLER, FaultyStore, is_kind, make_intent, make_secret

MANAGED = {
    ANNOTATION_MANAGED_BY: CONTROLLER,
    ANNOTATION_SOURCE_NAMESPACE: "team",
    ANNOTATION_SOURCE_INTENT: "db",
}


def _marked(store: InMemoryObjectStore, intent: SharedResource) -> SharedResource:
    store.create(intent)
    store.delete(intent)
    marked = store.get(ResourceKind.SHARED_RESOURCE, "team", "db")
    assert isinstance(marked, SharedResource)
    assert marked.is_marked_for_deletion
    return marked


def test_delete_policy_removes_managed_targets_and_releases_intent(
    store: InMemoryObjectStore,
) -> None:
    store.create(make_secret(namespace="backend", annotations=MANAGED))
    store.create(make_secret(namespace="jobs", annotations=MANAGED))
    intent = _marked(
        store,
        make_intent(
            targets=("backend", "jobs"), deletion_policy=DeletionPolicy.DELETE, finalized=True
        ),
    )

    DeletionHandler(store, CONTROLLER).handle_deletion(intent, ctx=PassContext())

    assert store.list(ResourceKind.SECRET, "backend") == []
    assert store.list(ResourceKind.SECRET, "jobs") == []
    with pytest.raises(NotFoundError):
        store.get(ResourceKind.SHARED_RESOURCE, "team", "db")


def test_delete_policy_leaves_unmanaged_targets(store: InMemoryObjectStore) -> None:
    store.create(make_secret(namespace="backend"))
    intent = _marked(
        store, make_intent(deletion_policy=DeletionPolicy.DELETE, finalized=True)
    )

    DeletionHandler(store, CONTROLLER).handle_deletion(intent, ctx=PassContext())

    assert store.get(ResourceKind.SECRET, "backend", "db-credentials")


def test_delete_policy_tolerates_missing_targets(store: InMemoryObjectStore) -> None:
    intent = _marked(
        store,
        make_intent(
            targets=("backend", "jobs"), deletion_policy=DeletionPolicy.DELETE, finalized=True
        ),
    )

    DeletionHandler(store, CONTROLLER).handle_deletion(intent, ctx=PassContext())

    assert store.list(ResourceKind.SHARED_RESOURCE) == []


def test_orphan_policy_keeps_targets(store: InMemoryObjectStore) -> None:
    store.create(make_secret(namespace="backend", annotations=MANAGED))
    intent = _marked(store, make_intent(finalized=True))

    DeletionHandler(store, CONTROLLER).handle_deletion(intent, ctx=PassContext())

    target = store.get(ResourceKind.SECRET, "backend", "db-credentials")
    assert target.annotations[ANNOTATION_MANAGED_BY] == CONTROLLER
    assert store.list(ResourceKind.SHARED_RESOURCE) == []


def test_unsupported_kind_releases_finalizer_without_touching_targets(
    store: InMemoryObjectStore,
) -> None:
    intent = _marked(
        store,
        make_intent(
            source_kind="Deployment", deletion_policy=DeletionPolicy.DELETE, finalized=True
        ),
    )

    DeletionHandler(store, CONTROLLER).handle_deletion(intent, ctx=PassContext())

    assert store.list(ResourceKind.SHARED_RESOURCE) == []


def test_store_failure_keeps_finalizer(store: InMemoryObjectStore) -> None:
    store.create(make_secret(namespace="backend", annotations=MANAGED))
    intent = _marked(
        store, make_intent(deletion_policy=DeletionPolicy.DELETE, finalized=True)
    )
    faulty = FaultyStore(store)
    faulty.fail("delete", StoreError("disk on fire"), when=is_kind(ResourceKind.SECRET))

    with pytest.raises(StoreError, match="disk on fire"):
        DeletionHandler(faulty, CONTROLLER).handle_deletion(intent, ctx=PassContext())

    remaining = store.get(ResourceKind.SHARED_RESOURCE, "team", "db")
    assert isinstance(remaining, SharedResource)
    assert remaining.has_finalizer(FINALIZER_NAME)


def test_intent_without_our_finalizer_is_left_alone(store: InMemoryObjectStore) -> None:
    intent = make_intent(finalized=False)
    intent.finalizers = ["someone.else/finalizer"]
    store.create(intent)
    store.delete(intent)
    marked = store.get(ResourceKind.SHARED_RESOURCE, "team", "db")
    assert isinstance(marked, SharedResource)
    writes_before = len(store.operations)

    DeletionHandler(store, CONTROLLER).handle_deletion(marked, ctx=PassContext())

    assert len(store.operations) == writes_before


def test_delete_policy_leaves_targets_owned_by_another_intent(
    store: InMemoryObjectStore, reconciler: Reconciler
) -> None:
    store.create(make_secret())
    store.create(make_secret("other-credentials", data={"username": b"intruder"}))
    store.create(make_intent("first", finalized=True))
    store.create(
        make_intent(
            "second",
            source_name="other-credentials",
            targets=[("backend", "db-credentials")],
            deletion_policy=DeletionPolicy.DELETE,
            finalized=True,
        )
    )
    reconciler.reconcile(ReconcileRequest("team", "first"))
    reconciler.reconcile(ReconcileRequest("team", "second"))

    store.delete(store.get(ResourceKind.SHARED_RESOURCE, "team", "second"))
    reconciler.reconcile(ReconcileRequest("team", "second"))

    target = store.get(ResourceKind.SECRET, "backend", "db-credentials")
    assert isinstance(target, KeyValueResource)
    assert target.data == {"username": b"admin", "password": b"s3cret"}
    assert target.annotations[ANNOTATION_SOURCE_INTENT] == "first"
    assert [obj.name for obj in store.list(ResourceKind.SHARED_RESOURCE)] == ["first"]
