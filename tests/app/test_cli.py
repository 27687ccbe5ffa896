from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from bundlesync.domain.model import KeyValueResource, ResourceKind, SharedResource
from bundlesync.ui import cli as cli_module
from tests.helpers.resources import make_intent

if TYPE_CHECKING:
    from pathlib import Path

    from bundlesync.adapters.memory import InMemoryObjectStore

MANIFEST = [
    {
        "kind": "Secret",
        "metadata": {"name": "db-credentials"},
        "data": {"username": "YWRtaW4="},
    },
    {
        "kind": "SharedResource",
        "metadata": {"name": "db"},
        "spec": {
            "source": {"kind": "Secret", "name": "db-credentials"},
            "targets": [{"namespace": "backend"}],
        },
    },
]


@pytest.fixture
def cli_store(monkeypatch: pytest.MonkeyPatch, store: InMemoryObjectStore) -> InMemoryObjectStore:
    monkeypatch.setattr(cli_module, "open_store", lambda: store)
    monkeypatch.delenv("BUNDLESYNC_MANAGED_BY", raising=False)
    return store


def _write_manifest(tmp_path: Path) -> Path:
    path = tmp_path / "manifest.json"
    path.write_text(json.dumps(MANIFEST), encoding="utf-8")
    return path


def test_apply_then_reconcile(cli_store: InMemoryObjectStore, tmp_path: Path) -> None:
    cli_module.main(["apply", str(_write_manifest(tmp_path)), "--namespace", "team"])
    cli_module.main(["reconcile", "team", "db"])

    target = cli_store.get(ResourceKind.SECRET, "backend", "db-credentials")
    assert isinstance(target, KeyValueResource)
    assert target.data == {"username": b"admin"}


def test_status_prints_intent_as_json(cli_store: InMemoryObjectStore) -> None:
    cli_store.create(make_intent())
    chunks: list[str] = []

    cli_module.main(["status", "team", "db"], out=chunks.append)

    payload = json.loads("".join(chunks))
    assert payload["kind"] == "SharedResource"
    assert payload["metadata"]["name"] == "db"
    assert payload["spec"]["targets"] == [{"namespace": "backend"}]


def test_delete_marks_finalized_intent(cli_store: InMemoryObjectStore) -> None:
    cli_store.create(make_intent(finalized=True))

    cli_module.main(["delete", "team", "db"])

    intent = cli_store.get(ResourceKind.SHARED_RESOURCE, "team", "db")
    assert isinstance(intent, SharedResource)
    assert intent.is_marked_for_deletion


def test_run_stops_after_requested_iterations(
    cli_store: InMemoryObjectStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    handlers: list[object] = []
    monkeypatch.setattr(cli_module, "signal", lambda _sig, handler: handlers.append(handler))
    cli_store.create(make_intent())

    cli_module.main(["run", "--interval", "0", "--iterations", "1"])

    assert len(handlers) == 1
    intent = cli_store.get(ResourceKind.SHARED_RESOURCE, "team", "db")
    assert isinstance(intent, SharedResource)
    assert intent.finalizers


@pytest.mark.parametrize(
    "argv",
    [
        [],
        ["reconcile", "team"],
        ["reconcile", "--max-iterations", "0"],
        ["run", "--interval", "-1"],
        ["run", "--iterations", "0"],
    ],
)
def test_invalid_arguments_exit_with_usage_error(
    cli_store: InMemoryObjectStore, argv: list[str]
) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(argv)

    assert excinfo.value.code == 2
    assert cli_store.operations == []


def test_invalid_manifest_exits_with_usage_error(
    cli_store: InMemoryObjectStore, tmp_path: Path
) -> None:
    path = tmp_path / "broken.json"
    path.write_text('{"kind": "Secret"}', encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["apply", str(path)])

    assert excinfo.value.code == 2
    assert cli_store.operations == []


def test_missing_intent_exits_with_failure(cli_store: InMemoryObjectStore) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["status", "team", "missing"])

    assert excinfo.value.code == 1
    assert cli_store.operations == []
