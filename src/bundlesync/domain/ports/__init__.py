"""Domain port definitions for adapters."""

from __future__ import annotations

from .clock import Clock, utcnow
from .persistence import (
    ChangeLogRepository,
    KeyValueResourceRepository,
    NamespaceRepository,
    SharedResourceRepository,
)
from .store import (
    AlreadyExistsError,
    ChangeEvent,
    ConflictError,
    EventType,
    NamespaceNotFoundError,
    NotFoundError,
    ObjectStore,
    StoreError,
    WatchStream,
)
from .unit_of_work import RepositoryCollection, StoreRepositories, StoreUnitOfWork, UnitOfWork

__all__ = [
    "AlreadyExistsError",
    "ChangeEvent",
    "ChangeLogRepository",
    "Clock",
    "ConflictError",
    "EventType",
    "KeyValueResourceRepository",
    "NamespaceNotFoundError",
    "NamespaceRepository",
    "NotFoundError",
    "ObjectStore",
    "RepositoryCollection",
    "SharedResourceRepository",
    "StoreError",
    "StoreRepositories",
    "StoreUnitOfWork",
    "UnitOfWork",
    "WatchStream",
    "utcnow",
]
