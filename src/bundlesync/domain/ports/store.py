"""Object store port: the API the controller reads, writes and watches through."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from bundlesync.domain.model import ResourceKind, StoredObject


class StoreError(RuntimeError):
    """Base class for object store failures."""


class NotFoundError(StoreError):
    """Raised when the requested object does not exist."""

    def __init__(self, kind: str, namespace: str, name: str) -> None:
        super().__init__(f"{kind} {namespace}/{name} not found")
        self.kind = kind
        self.namespace = namespace
        self.name = name


class AlreadyExistsError(StoreError):
    """Raised when creating an object whose identity is already taken."""

    def __init__(self, kind: str, namespace: str, name: str) -> None:
        super().__init__(f"{kind} {namespace}/{name} already exists")
        self.kind = kind
        self.namespace = namespace
        self.name = name


class ConflictError(StoreError):
    """Raised when an update carries a stale ``resource_version``."""

    def __init__(self, kind: str, namespace: str, name: str, expected: int) -> None:
        super().__init__(
            f"{kind} {namespace}/{name} was modified concurrently "
            f"(expected resource_version {expected})"
        )
        self.kind = kind
        self.namespace = namespace
        self.name = name
        self.expected = expected


class NamespaceNotFoundError(StoreError):
    """Raised when writing into a namespace that does not exist."""

    def __init__(self, namespace: str) -> None:
        super().__init__(f"namespace {namespace} not found")
        self.namespace = namespace


class EventType(StrEnum):
    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """One observed change to a watched object (a snapshot, never a live handle)."""

    type: EventType
    kind: ResourceKind
    obj: StoredObject


@runtime_checkable
class WatchStream(Protocol):
    """Non-blocking stream of change events for one kind."""

    def drain(self) -> list[ChangeEvent]:
        """Return events recorded since the previous drain."""
        ...

    def close(self) -> None: ...


@runtime_checkable
class ObjectStore(Protocol):
    """Namespace-scoped object store with optimistic concurrency.

    Reads return detached copies. ``create`` and ``update`` assign the new
    ``resource_version`` to the object passed in. Deleting a SharedResource that
    still carries finalizers only stamps its ``deletion_timestamp``; the object
    disappears once an update leaves it without finalizers.
    """

    def get(self, kind: ResourceKind, namespace: str, name: str) -> StoredObject: ...

    def list(self, kind: ResourceKind, namespace: str | None = None) -> list[StoredObject]: ...

    def create(self, obj: StoredObject) -> None: ...

    def update(self, obj: StoredObject) -> None: ...

    def delete(self, obj: StoredObject) -> None: ...

    def watch(self, kind: ResourceKind) -> WatchStream: ...

    def ensure_namespace(self, name: str) -> None: ...

    def namespaces(self) -> list[str]: ...


__all__ = [
    "AlreadyExistsError",
    "ChangeEvent",
    "ConflictError",
    "EventType",
    "NamespaceNotFoundError",
    "NotFoundError",
    "ObjectStore",
    "StoreError",
    "WatchStream",
]
