from __future__ import annotations

from bundlesync.adapters.memory import InMemoryObjectStore
from bundlesync.domain.model import ResourceKind
from bundlesync.domain.ports.store import ChangeEvent, EventType, StoreError
from bundlesync.domain.reconciliation import (
    ANNOTATION_MANAGED_BY,
    ANNOTATION_SOURCE_INTENT,
    ANNOTATION_SOURCE_NAMESPACE,
    CorrelationIndex,
    ReconcileRequest,
)
from tests.helpers.resources import (
    CONTROLLER,
    FaultyStore,
    make_config_map,
    make_intent,
    make_secret,
)


def test_intent_event_maps_to_itself(store: InMemoryObjectStore) -> None:
    index = CorrelationIndex(store, CONTROLLER)
    intent = make_intent()

    requests = index.requests_for_event(
        ChangeEvent(type=EventType.ADDED, kind=ResourceKind.SHARED_RESOURCE, obj=intent)
    )

    assert requests == [ReconcileRequest("team", "db")]


def test_managed_target_maps_to_owner_without_listing(store: InMemoryObjectStore) -> None:
    faulty = FaultyStore(store)
    faulty.fail("list", StoreError("must not list"))
    index = CorrelationIndex(faulty, CONTROLLER)
    target = make_secret(
        namespace="backend",
        annotations={
            ANNOTATION_MANAGED_BY: CONTROLLER,
            ANNOTATION_SOURCE_NAMESPACE: "team",
            ANNOTATION_SOURCE_INTENT: "db",
        },
    )

    assert index.requests_for(target) == [ReconcileRequest("team", "db")]


def test_managed_target_with_incomplete_annotations_maps_to_nothing(
    store: InMemoryObjectStore,
) -> None:
    index = CorrelationIndex(store, CONTROLLER)
    target = make_secret(namespace="backend", annotations={ANNOTATION_MANAGED_BY: CONTROLLER})

    assert index.requests_for(target) == []


def test_source_change_maps_to_every_referencing_intent(store: InMemoryObjectStore) -> None:
    store.create(make_intent("first"))
    store.create(make_intent("second", targets=("jobs",)))
    store.create(make_intent("other-source", source_name="unrelated"))
    store.create(make_intent("config", source_kind="ConfigMap"))
    index = CorrelationIndex(store, CONTROLLER)

    requests = index.requests_for(make_secret())

    assert requests == [ReconcileRequest("team", "first"), ReconcileRequest("team", "second")]


def test_source_match_is_namespace_scoped(store: InMemoryObjectStore) -> None:
    store.create(make_intent(namespace="backend", targets=("jobs",)))
    index = CorrelationIndex(store, CONTROLLER)

    assert index.requests_for(make_secret(namespace="team")) == []


def test_object_managed_by_another_controller_is_treated_as_source(
    store: InMemoryObjectStore,
) -> None:
    store.create(make_intent(source_kind="ConfigMap", source_name="app-settings"))
    index = CorrelationIndex(store, CONTROLLER)
    foreign = make_config_map(annotations={ANNOTATION_MANAGED_BY: "someone-else"})

    assert index.requests_for(foreign) == [ReconcileRequest("team", "db")]


def test_list_failure_yields_no_requests(store: InMemoryObjectStore) -> None:
    faulty = FaultyStore(store)
    faulty.fail("list", StoreError("unavailable"))

    assert CorrelationIndex(faulty, CONTROLLER).requests_for(make_secret()) == []
