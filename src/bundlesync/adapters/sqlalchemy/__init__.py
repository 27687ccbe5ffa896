"""SQLAlchemy adapter package for bundlesync."""

from __future__ import annotations

from .mappings import (
    change_event_table,
    key_value_resource_table,
    metadata,
    namespace_table,
    shared_resource_table,
)
from .repositories import (
    SqlAlchemyChangeLogRepository,
    SqlAlchemyKeyValueResourceRepository,
    SqlAlchemyNamespaceRepository,
    SqlAlchemySharedResourceRepository,
)
from .store import SqlAlchemyObjectStore, SqlAlchemyWatchStream
from .unit_of_work import (
    SqlAlchemyStoreUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyChangeLogRepository",
    "SqlAlchemyKeyValueResourceRepository",
    "SqlAlchemyNamespaceRepository",
    "SqlAlchemyObjectStore",
    "SqlAlchemySharedResourceRepository",
    "SqlAlchemyStoreUnitOfWork",
    "SqlAlchemyWatchStream",
    "StartupError",
    "change_event_table",
    "configured_engine",
    "is_started",
    "key_value_resource_table",
    "metadata",
    "namespace_table",
    "shared_resource_table",
    "shutdown",
    "startup",
]
