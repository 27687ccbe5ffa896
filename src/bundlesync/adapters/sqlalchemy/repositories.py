"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import delete, func, insert, select, update

from bundlesync.adapters.manifest.translator import (
    object_from_payload,
    object_to_payload,
    spec_from_payload,
    spec_to_payload,
    status_from_payload,
    status_to_payload,
)
from bundlesync.adapters.sqlalchemy.mappings import (
    change_event_table,
    key_value_resource_table,
    namespace_table,
    shared_resource_table,
)
from bundlesync.domain.model import KeyValueResource, ResourceKind, SharedResource
from bundlesync.domain.ports.clock import utcnow
from bundlesync.domain.ports.store import ChangeEvent, EventType

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy import Row
    from sqlalchemy.orm import Session

    from bundlesync.domain.model import StoredObject


class SqlAlchemyNamespaceRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, name: str, *, created_at: datetime | None = None) -> None:
        stmt = insert(namespace_table).values(name=name, created_at=created_at or utcnow())
        self.session.execute(stmt)

    def exists(self, name: str) -> bool:
        stmt = select(namespace_table.c.name).where(namespace_table.c.name == name)
        return self.session.execute(stmt).scalar_one_or_none() is not None

    def list(self) -> list[str]:
        stmt = select(namespace_table.c.name).order_by(namespace_table.c.name)
        return list(self.session.execute(stmt).scalars())


class SqlAlchemySharedResourceRepository:
    """Intents stored as one row each; spec and status are JSON documents."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, namespace: str, name: str) -> SharedResource | None:
        stmt = (
            select(shared_resource_table)
            .where(shared_resource_table.c.namespace == namespace)
            .where(shared_resource_table.c.name == name)
        )
        row = self.session.execute(stmt).one_or_none()
        return None if row is None else self._from_row(row)

    def list(self, namespace: str | None = None) -> list[SharedResource]:
        stmt = select(shared_resource_table).order_by(
            shared_resource_table.c.namespace, shared_resource_table.c.name
        )
        if namespace is not None:
            stmt = stmt.where(shared_resource_table.c.namespace == namespace)
        return [self._from_row(row) for row in self.session.execute(stmt)]

    def add(self, entity: SharedResource) -> None:
        self.session.execute(
            insert(shared_resource_table).values(
                namespace=entity.namespace, name=entity.name, **self._values(entity)
            )
        )

    def replace(self, entity: SharedResource, *, expected_version: int) -> bool:
        stmt = (
            update(shared_resource_table)
            .where(shared_resource_table.c.namespace == entity.namespace)
            .where(shared_resource_table.c.name == entity.name)
            .where(shared_resource_table.c.resource_version == expected_version)
            .values(**self._values(entity))
        )
        return self.session.execute(stmt).rowcount == 1

    def remove(self, namespace: str, name: str) -> bool:
        stmt = (
            delete(shared_resource_table)
            .where(shared_resource_table.c.namespace == namespace)
            .where(shared_resource_table.c.name == name)
        )
        return self.session.execute(stmt).rowcount == 1

    @staticmethod
    def _values(entity: SharedResource) -> dict[str, Any]:
        return {
            "spec": spec_to_payload(entity.spec),
            "status": status_to_payload(entity.status),
            "finalizers": list(entity.finalizers),
            "deletion_timestamp": entity.deletion_timestamp,
            "generation": entity.generation,
            "resource_version": entity.resource_version,
        }

    @staticmethod
    def _from_row(row: Row[Any]) -> SharedResource:
        return SharedResource(
            namespace=row.namespace,
            name=row.name,
            spec=spec_from_payload(cast(dict[str, Any], row.spec)),
            status=status_from_payload(cast(dict[str, Any], row.status)),
            finalizers=list(cast(list[str], row.finalizers)),
            deletion_timestamp=row.deletion_timestamp,
            generation=row.generation,
            resource_version=row.resource_version,
        )


class SqlAlchemyKeyValueResourceRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, kind: ResourceKind, namespace: str, name: str) -> KeyValueResource | None:
        stmt = (
            select(key_value_resource_table)
            .where(key_value_resource_table.c.kind == kind)
            .where(key_value_resource_table.c.namespace == namespace)
            .where(key_value_resource_table.c.name == name)
        )
        row = self.session.execute(stmt).one_or_none()
        return None if row is None else self._from_row(row)

    def list(self, kind: ResourceKind, namespace: str | None = None) -> list[KeyValueResource]:
        stmt = (
            select(key_value_resource_table)
            .where(key_value_resource_table.c.kind == kind)
            .order_by(key_value_resource_table.c.namespace, key_value_resource_table.c.name)
        )
        if namespace is not None:
            stmt = stmt.where(key_value_resource_table.c.namespace == namespace)
        return [self._from_row(row) for row in self.session.execute(stmt)]

    def add(self, entity: KeyValueResource) -> None:
        self.session.execute(
            insert(key_value_resource_table).values(
                kind=entity.kind,
                namespace=entity.namespace,
                name=entity.name,
                **self._values(entity),
            )
        )

    def replace(self, entity: KeyValueResource, *, expected_version: int) -> bool:
        stmt = (
            update(key_value_resource_table)
            .where(key_value_resource_table.c.kind == entity.kind)
            .where(key_value_resource_table.c.namespace == entity.namespace)
            .where(key_value_resource_table.c.name == entity.name)
            .where(key_value_resource_table.c.resource_version == expected_version)
            .values(**self._values(entity))
        )
        return self.session.execute(stmt).rowcount == 1

    def remove(self, kind: ResourceKind, namespace: str, name: str) -> bool:
        stmt = (
            delete(key_value_resource_table)
            .where(key_value_resource_table.c.kind == kind)
            .where(key_value_resource_table.c.namespace == namespace)
            .where(key_value_resource_table.c.name == name)
        )
        return self.session.execute(stmt).rowcount == 1

    @staticmethod
    def _values(entity: KeyValueResource) -> dict[str, Any]:
        return {
            "data": dict(entity.data),
            "type_tag": entity.type_tag,
            "annotations": dict(entity.annotations),
            "resource_version": entity.resource_version,
        }

    @staticmethod
    def _from_row(row: Row[Any]) -> KeyValueResource:
        return KeyValueResource(
            kind=row.kind,
            namespace=row.namespace,
            name=row.name,
            data=dict(row.data),
            type_tag=row.type_tag,
            annotations=dict(cast(dict[str, str], row.annotations)),
            resource_version=row.resource_version,
        )


class SqlAlchemyChangeLogRepository:
    """Append-only ``change_event`` log; row ids double as watch cursors."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def append(self, event_type: EventType, obj: StoredObject, *, recorded_at: datetime) -> None:
        self.session.execute(
            insert(change_event_table).values(
                kind=obj.kind,
                type=event_type,
                namespace=obj.namespace,
                name=obj.name,
                payload=object_to_payload(obj),
                recorded_at=recorded_at,
            )
        )

    def read_after(self, kind: ResourceKind, cursor: int) -> list[tuple[int, ChangeEvent]]:
        stmt = (
            select(change_event_table)
            .where(change_event_table.c.kind == kind)
            .where(change_event_table.c.id > cursor)
            .order_by(change_event_table.c.id)
        )
        events: list[tuple[int, ChangeEvent]] = []
        for row in self.session.execute(stmt):
            obj = object_from_payload(cast(dict[str, Any], row.payload))
            events.append((row.id, ChangeEvent(type=EventType(row.type), kind=kind, obj=obj)))
        return events

    def latest_id(self) -> int:
        stmt = select(func.max(change_event_table.c.id))
        return self.session.execute(stmt).scalar_one_or_none() or 0


if TYPE_CHECKING:
    from bundlesync.domain.ports.persistence import (
        ChangeLogRepository,
        KeyValueResourceRepository,
        NamespaceRepository,
        SharedResourceRepository,
    )

    def _protocol_checks(session: Session) -> None:
        _namespaces: NamespaceRepository = SqlAlchemyNamespaceRepository(session)
        _intents: SharedResourceRepository = SqlAlchemySharedResourceRepository(session)
        _resources: KeyValueResourceRepository = SqlAlchemyKeyValueResourceRepository(session)
        _change_log: ChangeLogRepository = SqlAlchemyChangeLogRepository(session)
