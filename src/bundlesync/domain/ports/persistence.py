"""Repository ports backing durable object store adapters."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime

    from bundlesync.domain.model import (
        KeyValueResource,
        ResourceKind,
        SharedResource,
        StoredObject,
    )
    from bundlesync.domain.ports.store import ChangeEvent, EventType


@runtime_checkable
class NamespaceRepository(Protocol):
    def add(self, name: str) -> None: ...

    def exists(self, name: str) -> bool: ...

    def list(self) -> list[str]: ...


@runtime_checkable
class SharedResourceRepository(Protocol):
    """Persistence contract for intents."""

    def get(self, namespace: str, name: str) -> SharedResource | None: ...

    def list(self, namespace: str | None = None) -> list[SharedResource]: ...

    def add(self, entity: SharedResource) -> None: ...

    def replace(self, entity: SharedResource, *, expected_version: int) -> bool:
        """Write ``entity`` only if the stored version equals ``expected_version``."""
        ...

    def remove(self, namespace: str, name: str) -> bool: ...


@runtime_checkable
class KeyValueResourceRepository(Protocol):
    """Persistence contract for Secrets and ConfigMaps."""

    def get(self, kind: ResourceKind, namespace: str, name: str) -> KeyValueResource | None: ...

    def list(self, kind: ResourceKind, namespace: str | None = None) -> list[KeyValueResource]: ...

    def add(self, entity: KeyValueResource) -> None: ...

    def replace(self, entity: KeyValueResource, *, expected_version: int) -> bool: ...

    def remove(self, kind: ResourceKind, namespace: str, name: str) -> bool: ...


@runtime_checkable
class ChangeLogRepository(Protocol):
    """Append-only log feeding watch streams."""

    def append(
        self, event_type: EventType, obj: StoredObject, *, recorded_at: datetime
    ) -> None: ...

    def read_after(self, kind: ResourceKind, cursor: int) -> list[tuple[int, ChangeEvent]]: ...

    def latest_id(self) -> int: ...
