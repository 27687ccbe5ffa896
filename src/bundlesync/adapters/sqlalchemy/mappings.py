"""SQLAlchemy table metadata for the durable object store."""

from __future__ import annotations

import base64
import json
from datetime import UTC, datetime
from typing import Any, cast

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    TypeDecorator,
)

from bundlesync.domain.model import ResourceKind
from bundlesync.domain.ports.store import EventType

type BundleData = dict[str, bytes]

NAME_LENGTH = 253


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class BundleType(TypeDecorator[BundleData]):
    """Bytes-valued mapping stored as a JSON object of base64 strings."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: BundleData | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        payload = {key: base64.b64encode(item).decode("ascii") for key, item in value.items()}
        return json.dumps(payload, sort_keys=True)

    def process_result_value(self, value: str | None, dialect: Dialect) -> BundleData:
        _ = dialect
        if value is None:
            return {}
        loaded = json.loads(value)
        if not isinstance(loaded, dict):
            return {}
        items = cast(dict[str, Any], loaded)
        return {
            key: base64.b64decode(item) for key, item in items.items() if isinstance(item, str)
        }


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

namespace_table = Table(
    "namespace",
    metadata,
    Column("name", String(NAME_LENGTH), primary_key=True),
    Column("created_at", UTCDateTime, nullable=False),
)

shared_resource_table = Table(
    "shared_resource",
    metadata,
    Column(
        "namespace",
        String(NAME_LENGTH),
        ForeignKey("namespace.name"),
        primary_key=True,
    ),
    Column("name", String(NAME_LENGTH), primary_key=True),
    Column("spec", JSON, nullable=False),
    Column("status", JSON, nullable=False),
    Column("finalizers", JSON, nullable=False),
    Column("deletion_timestamp", UTCDateTime, nullable=True),
    Column("generation", Integer, nullable=False),
    Column("resource_version", Integer, nullable=False),
)

key_value_resource_table = Table(
    "key_value_resource",
    metadata,
    Column("kind", Enum(ResourceKind, native_enum=False), primary_key=True),
    Column(
        "namespace",
        String(NAME_LENGTH),
        ForeignKey("namespace.name"),
        primary_key=True,
    ),
    Column("name", String(NAME_LENGTH), primary_key=True),
    Column("data", BundleType, nullable=False),
    Column("type_tag", String, nullable=True),
    Column("annotations", JSON, nullable=False),
    Column("resource_version", Integer, nullable=False),
)

change_event_table = Table(
    "change_event",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("kind", Enum(ResourceKind, native_enum=False), nullable=False),
    Column("type", Enum(EventType, native_enum=False), nullable=False),
    Column("namespace", String(NAME_LENGTH), nullable=False),
    Column("name", String(NAME_LENGTH), nullable=False),
    Column("payload", JSON, nullable=False),
    Column("recorded_at", UTCDateTime, nullable=False),
    Index("ix_change_event_kind_id", "kind", "id"),
)
