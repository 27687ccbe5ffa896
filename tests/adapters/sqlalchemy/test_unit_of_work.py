from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine

from bundlesync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyStoreUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from bundlesync.domain.model import ResourceKind
from tests.helpers.resources import make_secret

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def test_sqlalchemy_unit_of_work_requires_startup() -> None:
    assert not is_started()
    with pytest.raises(StartupError):
        SqlAlchemyStoreUnitOfWork()


def test_startup_requires_force_for_reconfiguration() -> None:
    engine_a = create_engine("sqlite+pysqlite:///:memory:", future=True)
    engine_b = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    startup(engine=engine_b, force=True)
    assert configured_engine() is engine_b
    assert is_started()


def test_startup_builds_engine_from_database_uri() -> None:
    engine = startup(database_uri="sqlite+pysqlite:///:memory:")

    assert configured_engine() is engine
    assert engine.url.get_backend_name() == "sqlite"


def test_repositories_require_an_open_unit_of_work(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    uow = SqlAlchemyStoreUnitOfWork()

    with pytest.raises(StartupError):
        _ = uow.repositories


def test_unit_of_work_commits_and_rolls_back(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyStoreUnitOfWork() as uow:
        uow.repositories.namespaces.add("team")
        uow.commit()

    with pytest.raises(RuntimeError, match="boom"), SqlAlchemyStoreUnitOfWork() as uow:
        uow.repositories.resources.add(make_secret())
        raise RuntimeError("boom")

    with SqlAlchemyStoreUnitOfWork() as uow:
        assert uow.repositories.namespaces.list() == ["team"]
        assert uow.repositories.resources.list(ResourceKind.SECRET) == []
