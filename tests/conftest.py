from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from bundlesync.adapters.memory import InMemoryObjectStore
from bundlesync.adapters.sqlalchemy.migrations import upgrade_head
from bundlesync.adapters.sqlalchemy.store import SqlAlchemyObjectStore
from bundlesync.adapters.sqlalchemy.unit_of_work import shutdown, startup
from bundlesync.domain.reconciliation import Reconciler
from tests.helpers.resources import CONTROLLER, FixedClock

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator

NAMESPACES = ("team", "backend", "jobs")


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def store(clock: FixedClock) -> InMemoryObjectStore:
    return InMemoryObjectStore(namespaces=NAMESPACES, clock=clock)


@pytest.fixture
def reconciler(store: InMemoryObjectStore, clock: FixedClock) -> Reconciler:
    return Reconciler(store=store, managed_by=CONTROLLER, clock=clock)


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_store(sqlite_engine: Engine, clock: FixedClock) -> Iterator[SqlAlchemyObjectStore]:
    startup(engine=sqlite_engine, force=True)
    store = SqlAlchemyObjectStore(clock=clock)
    for namespace in NAMESPACES:
        store.ensure_namespace(namespace)
    try:
        yield store
    finally:
        shutdown()
