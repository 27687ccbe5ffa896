"""Durable object store built on SQLAlchemy units of work.

Every call runs in its own unit of work and commits before returning. Updates
are a compare-and-swap on ``resource_version`` so concurrent writers observe
``ConflictError`` instead of silently overwriting each other. Each committed
write appends a row to ``change_event``; watch streams page through that log.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError

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

from .unit_of_work import SqlAlchemyStoreUnitOfWork

if TYPE_CHECKING:
    from collections.abc import Callable

    from bundlesync.domain.model import StoredObject
    from bundlesync.domain.ports.clock import Clock
    from bundlesync.domain.ports.unit_of_work import StoreRepositories, StoreUnitOfWork

log = logging.getLogger(__name__)


class SqlAlchemyWatchStream:
    """Cursor over the change log for one kind, starting at creation time."""

    def __init__(self, store: SqlAlchemyObjectStore, kind: ResourceKind, cursor: int) -> None:
        self._store = store
        self.kind = kind
        self.cursor = cursor
        self.closed = False

    def drain(self) -> list[ChangeEvent]:
        if self.closed:
            return []
        with self._store.unit_of_work() as uow:
            rows = uow.repositories.change_log.read_after(self.kind, self.cursor)
        if rows:
            self.cursor = rows[-1][0]
        return [event for _, event in rows]

    def close(self) -> None:
        self.closed = True


class SqlAlchemyObjectStore:
    def __init__(
        self,
        *,
        unit_of_work: Callable[[], StoreUnitOfWork] = SqlAlchemyStoreUnitOfWork,
        clock: Clock = utcnow,
    ) -> None:
        self.unit_of_work = unit_of_work
        self._clock = clock

    # namespaces ----------------------------------------------------------------

    def ensure_namespace(self, name: str) -> None:
        with self.unit_of_work() as uow:
            if uow.repositories.namespaces.exists(name):
                return
            uow.repositories.namespaces.add(name)
            uow.commit()
        log.info("Created namespace %s", name)

    def namespaces(self) -> list[str]:
        with self.unit_of_work() as uow:
            return uow.repositories.namespaces.list()

    # reads ---------------------------------------------------------------------

    def get(self, kind: ResourceKind, namespace: str, name: str) -> StoredObject:
        with self.unit_of_work() as uow:
            obj = _lookup(uow.repositories, kind, namespace, name)
        if obj is None:
            raise NotFoundError(kind, namespace, name)
        return obj

    def list(self, kind: ResourceKind, namespace: str | None = None) -> list[StoredObject]:
        with self.unit_of_work() as uow:
            if kind == ResourceKind.SHARED_RESOURCE:
                return list(uow.repositories.shared_resources.list(namespace))
            return list(uow.repositories.resources.list(kind, namespace))

    # writes --------------------------------------------------------------------

    def create(self, obj: StoredObject) -> None:
        stored = obj.copy()
        stored.resource_version = 1
        if isinstance(stored, SharedResource):
            stored.generation = 1
            stored.deletion_timestamp = None

        with self.unit_of_work() as uow:
            repos = uow.repositories
            if not repos.namespaces.exists(obj.namespace):
                raise NamespaceNotFoundError(obj.namespace)
            if _lookup(repos, obj.kind, obj.namespace, obj.name) is not None:
                raise AlreadyExistsError(obj.kind, obj.namespace, obj.name)
            if isinstance(stored, SharedResource):
                repos.shared_resources.add(stored)
            else:
                repos.resources.add(stored)
            repos.change_log.append(EventType.ADDED, stored, recorded_at=self._clock())
            try:
                uow.commit()
            except IntegrityError as exc:
                raise AlreadyExistsError(obj.kind, obj.namespace, obj.name) from exc

        _sync_bookkeeping(obj, stored)

    def update(self, obj: StoredObject) -> None:
        with self.unit_of_work() as uow:
            repos = uow.repositories
            current = _lookup(repos, obj.kind, obj.namespace, obj.name)
            if current is None:
                raise NotFoundError(obj.kind, obj.namespace, obj.name)
            if current.resource_version != obj.resource_version:
                raise ConflictError(obj.kind, obj.namespace, obj.name, obj.resource_version)

            stored = obj.copy()
            stored.resource_version = current.resource_version + 1
            event_type = EventType.MODIFIED
            if isinstance(stored, SharedResource) and isinstance(current, SharedResource):
                stored.generation = current.generation + (
                    1 if stored.spec != current.spec else 0
                )
                stored.deletion_timestamp = current.deletion_timestamp
                if stored.is_marked_for_deletion and not stored.finalizers:
                    event_type = EventType.DELETED

            if event_type == EventType.DELETED:
                removed = repos.shared_resources.remove(obj.namespace, obj.name)
            else:
                removed = _replace(repos, stored, expected_version=current.resource_version)
            if not removed:
                raise ConflictError(obj.kind, obj.namespace, obj.name, obj.resource_version)
            repos.change_log.append(event_type, stored, recorded_at=self._clock())
            uow.commit()

        _sync_bookkeeping(obj, stored)
        if event_type == EventType.DELETED:
            log.info(
                "Removed %s %s/%s after its finalizers cleared", obj.kind, obj.namespace, obj.name
            )

    def delete(self, obj: StoredObject) -> None:
        with self.unit_of_work() as uow:
            repos = uow.repositories
            current = _lookup(repos, obj.kind, obj.namespace, obj.name)
            if current is None:
                raise NotFoundError(obj.kind, obj.namespace, obj.name)

            if isinstance(current, SharedResource) and current.finalizers:
                if current.is_marked_for_deletion:
                    return
                marked = current.copy()
                marked.deletion_timestamp = self._clock()
                marked.resource_version = current.resource_version + 1
                if not repos.shared_resources.replace(
                    marked, expected_version=current.resource_version
                ):
                    raise ConflictError(
                        obj.kind, obj.namespace, obj.name, current.resource_version
                    )
                repos.change_log.append(EventType.MODIFIED, marked, recorded_at=self._clock())
                uow.commit()
                return

            if isinstance(current, SharedResource):
                removed = repos.shared_resources.remove(obj.namespace, obj.name)
            else:
                removed = repos.resources.remove(current.kind, obj.namespace, obj.name)
            if not removed:
                raise NotFoundError(obj.kind, obj.namespace, obj.name)
            repos.change_log.append(EventType.DELETED, current, recorded_at=self._clock())
            uow.commit()

    # watches -------------------------------------------------------------------

    def watch(self, kind: ResourceKind) -> SqlAlchemyWatchStream:
        with self.unit_of_work() as uow:
            cursor = uow.repositories.change_log.latest_id()
        return SqlAlchemyWatchStream(self, kind, cursor)


def _lookup(
    repos: StoreRepositories, kind: ResourceKind, namespace: str, name: str
) -> StoredObject | None:
    if kind == ResourceKind.SHARED_RESOURCE:
        return repos.shared_resources.get(namespace, name)
    return repos.resources.get(kind, namespace, name)


def _replace(repos: StoreRepositories, stored: StoredObject, *, expected_version: int) -> bool:
    if isinstance(stored, SharedResource):
        return repos.shared_resources.replace(stored, expected_version=expected_version)
    return repos.resources.replace(stored, expected_version=expected_version)


def _sync_bookkeeping(target: StoredObject, stored: StoredObject) -> None:
    """Copy store-assigned fields back onto the caller's object."""

    target.resource_version = stored.resource_version
    if isinstance(target, SharedResource) and isinstance(stored, SharedResource):
        target.generation = stored.generation
        target.deletion_timestamp = stored.deletion_timestamp

if TYPE_CHECKING:
    from bundlesync.domain.ports.store import ObjectStore, WatchStream

    _store_check: ObjectStore = SqlAlchemyObjectStore()
    _watch_check: WatchStream = SqlAlchemyWatchStream(
        SqlAlchemyObjectStore(), ResourceKind.SECRET, 0
    )
