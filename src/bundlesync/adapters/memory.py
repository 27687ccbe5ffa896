"""In-memory object store.

Mirrors the semantics of the durable store (optimistic concurrency, finalizer
gated deletion, per-kind watch streams) without any persistence. Every read
hands out a copy, so callers never alias stored state.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import TYPE_CHECKING

from bundlesync.domain.model import ResourceKind, SharedResource
from bundlesync.domain.ports.clock import utcnow
from bundlesync.domain.ports.store import (
    AlreadyExistsError,
    ChangeEvent,
    ConflictError,
    EventType,
    NamespaceNotFoundError,
    NotFoundError,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from bundlesync.domain.model import StoredObject
    from bundlesync.domain.ports.clock import Clock

type _Key = tuple[ResourceKind, str, str]


def _copy(obj: StoredObject) -> StoredObject:
    return obj.copy()


class InMemoryWatchStream:
    def __init__(self, store: InMemoryObjectStore, kind: ResourceKind) -> None:
        self._store = store
        self.kind = kind
        self._pending: deque[ChangeEvent] = deque()

    def push(self, event: ChangeEvent) -> None:
        self._pending.append(event)

    def drain(self) -> list[ChangeEvent]:
        with self._store.lock:
            events = list(self._pending)
            self._pending.clear()
        return events

    def close(self) -> None:
        self._store.discard_watch(self)


class InMemoryObjectStore:
    """Thread-safe dictionary-backed implementation of the object store port.

    ``operations`` records every successful write as ``(verb, kind, namespace,
    name)`` which makes write counts observable in tests.
    """

    def __init__(self, *, namespaces: Iterable[str] = (), clock: Clock = utcnow) -> None:
        self.lock = threading.RLock()
        self._clock = clock
        self._namespaces: set[str] = set(namespaces)
        self._objects: dict[_Key, StoredObject] = {}
        self._watches: list[InMemoryWatchStream] = []
        self.operations: list[tuple[str, ResourceKind, str, str]] = []

    # namespaces ----------------------------------------------------------------

    def ensure_namespace(self, name: str) -> None:
        with self.lock:
            self._namespaces.add(name)

    def namespaces(self) -> list[str]:
        with self.lock:
            return sorted(self._namespaces)

    # reads ---------------------------------------------------------------------

    def get(self, kind: ResourceKind, namespace: str, name: str) -> StoredObject:
        with self.lock:
            stored = self._objects.get((kind, namespace, name))
            if stored is None:
                raise NotFoundError(kind, namespace, name)
            return _copy(stored)

    def list(self, kind: ResourceKind, namespace: str | None = None) -> list[StoredObject]:
        with self.lock:
            return [
                _copy(obj)
                for (obj_kind, obj_namespace, _), obj in sorted(self._objects.items())
                if obj_kind == kind and (namespace is None or obj_namespace == namespace)
            ]

    # writes --------------------------------------------------------------------

    def create(self, obj: StoredObject) -> None:
        with self.lock:
            key = (obj.kind, obj.namespace, obj.name)
            if obj.namespace not in self._namespaces:
                raise NamespaceNotFoundError(obj.namespace)
            if key in self._objects:
                raise AlreadyExistsError(obj.kind, obj.namespace, obj.name)
            obj.resource_version = 1
            if isinstance(obj, SharedResource):
                obj.generation = 1
                obj.deletion_timestamp = None
            self._objects[key] = _copy(obj)
            self._record("create", obj, EventType.ADDED)

    def update(self, obj: StoredObject) -> None:
        with self.lock:
            key = (obj.kind, obj.namespace, obj.name)
            stored = self._objects.get(key)
            if stored is None:
                raise NotFoundError(obj.kind, obj.namespace, obj.name)
            if stored.resource_version != obj.resource_version:
                raise ConflictError(obj.kind, obj.namespace, obj.name, obj.resource_version)

            obj.resource_version = stored.resource_version + 1
            if isinstance(obj, SharedResource) and isinstance(stored, SharedResource):
                obj.generation = stored.generation + (1 if obj.spec != stored.spec else 0)
                # once requested, deletion cannot be withdrawn
                obj.deletion_timestamp = stored.deletion_timestamp
                if obj.deletion_timestamp is not None and not obj.finalizers:
                    del self._objects[key]
                    self._record("update", obj, EventType.DELETED)
                    return

            self._objects[key] = _copy(obj)
            self._record("update", obj, EventType.MODIFIED)

    def delete(self, obj: StoredObject) -> None:
        with self.lock:
            key = (obj.kind, obj.namespace, obj.name)
            stored = self._objects.get(key)
            if stored is None:
                raise NotFoundError(obj.kind, obj.namespace, obj.name)

            if isinstance(stored, SharedResource) and stored.finalizers:
                if stored.deletion_timestamp is None:
                    stored.deletion_timestamp = self._clock()
                    stored.resource_version += 1
                    self._record("delete", stored, EventType.MODIFIED)
                return

            del self._objects[key]
            self._record("delete", stored, EventType.DELETED)

    # watches -------------------------------------------------------------------

    def watch(self, kind: ResourceKind) -> InMemoryWatchStream:
        with self.lock:
            stream = InMemoryWatchStream(self, kind)
            self._watches.append(stream)
            return stream

    def discard_watch(self, stream: InMemoryWatchStream) -> None:
        with self.lock:
            if stream in self._watches:
                self._watches.remove(stream)

    # helpers -------------------------------------------------------------------

    def _record(self, verb: str, obj: StoredObject, event_type: EventType) -> None:
        self.operations.append((verb, obj.kind, obj.namespace, obj.name))
        for stream in self._watches:
            if stream.kind == obj.kind:
                stream.push(ChangeEvent(type=event_type, kind=obj.kind, obj=_copy(obj)))

    def writes(self, kind: ResourceKind | None = None) -> list[tuple[str, ResourceKind, str, str]]:
        """Return recorded writes, optionally limited to one kind."""

        return [op for op in self.operations if kind is None or op[1] == kind]


if TYPE_CHECKING:
    from bundlesync.domain.ports.store import ObjectStore, WatchStream

    _store_check: ObjectStore = InMemoryObjectStore()
    _watch_check: WatchStream = InMemoryWatchStream(InMemoryObjectStore(), ResourceKind.SECRET)


__all__ = ["InMemoryObjectStore", "InMemoryWatchStream"]
