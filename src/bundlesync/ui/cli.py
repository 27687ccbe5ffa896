from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from bundlesync.adapters.manifest import ManifestError
from bundlesync.app import (
    apply_manifest_files,
    build_dispatcher,
    describe,
    open_store,
    reconcile_until_idle,
    request_deletion,
)
from bundlesync.config import configure_logging
from bundlesync.domain.ports.store import NotFoundError
from bundlesync.domain.reconciliation import ReconcileRequest

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import FrameType

    from bundlesync.domain.ports.store import ObjectStore

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Mirror Secrets and ConfigMaps across namespaces")
    subparsers = parser.add_subparsers(dest="command", required=True)

    apply = subparsers.add_parser("apply", help="Create or update objects from JSON manifests")
    apply.add_argument("files", nargs="+", help="Manifest files (JSON object, array or lines)")
    apply.add_argument(
        "--namespace",
        "-n",
        type=str,
        default=None,
        help="Namespace for documents that do not declare one",
    )

    delete = subparsers.add_parser("delete", help="Request deletion of a SharedResource")
    delete.add_argument("namespace", type=str)
    delete.add_argument("name", type=str)

    reconcile = subparsers.add_parser(
        "reconcile",
        help="Reconcile one SharedResource (or all of them) until no work is due",
    )
    reconcile.add_argument("namespace", nargs="?", default=None)
    reconcile.add_argument("name", nargs="?", default=None)
    reconcile.add_argument(
        "--max-iterations",
        type=int,
        default=100,
        help="Upper bound on pump/reconcile rounds",
    )

    run = subparsers.add_parser("run", help="Run the controller loop")
    run.add_argument(
        "--interval",
        type=float,
        default=1.0,
        help="Seconds to sleep between polling cycles",
    )
    run.add_argument(
        "--iterations",
        type=int,
        default=None,
        help="Stop after this many polling cycles (default: run until interrupted)",
    )

    status = subparsers.add_parser("status", help="Print a SharedResource with its status")
    status.add_argument("namespace", type=str)
    status.add_argument("name", type=str)

    return parser.parse_args(list(argv))


def _reconcile_request(args: argparse.Namespace) -> ReconcileRequest | None:
    if args.namespace is None and args.name is None:
        return None
    if args.namespace is None or args.name is None:
        raise ValueError("reconcile needs both NAMESPACE and NAME, or neither")
    return ReconcileRequest(namespace=args.namespace, name=args.name)


def _validate(args: argparse.Namespace) -> None:
    if args.command == "reconcile":
        _reconcile_request(args)
        if args.max_iterations < 1:
            raise ValueError("--max-iterations must be at least 1")
    elif args.command == "run":
        if args.interval < 0:
            raise ValueError("--interval must be non-negative")
        if args.iterations is not None and args.iterations < 1:
            raise ValueError("--iterations must be at least 1")


def _run_controller(store: ObjectStore, args: argparse.Namespace) -> None:
    cancel = threading.Event()

    def stop(_signal_received: int, _frame: FrameType | None) -> None:
        log.info("Stopping controller (Ctrl+C)")
        cancel.set()

    signal(SIGINT, stop)
    dispatcher = build_dispatcher(store, cancel_event=cancel)
    try:
        passes = dispatcher.run(interval=args.interval, cycles=args.iterations)
    finally:
        dispatcher.stop()
    log.info("Controller stopped after %s reconcile passes", passes)


def main(argv: Sequence[str] | None = None, *, out: Callable[[str], object] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    configure_logging()
    write = out or sys.stdout.write
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    try:
        _validate(parsed_args)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        store = open_store()
        if parsed_args.command == "apply":
            result = apply_manifest_files(
                store, parsed_args.files, default_namespace=parsed_args.namespace
            )
            log.info(
                "Applied manifests: namespaces=%s, created=%s, updated=%s",
                len(result.namespaces),
                len(result.created),
                len(result.updated),
            )
        elif parsed_args.command == "delete":
            request_deletion(store, parsed_args.namespace, parsed_args.name)
        elif parsed_args.command == "reconcile":
            passes = reconcile_until_idle(
                store,
                request=_reconcile_request(parsed_args),
                max_iterations=parsed_args.max_iterations,
            )
            log.info("Reconciliation finished after %s passes", passes)
        elif parsed_args.command == "run":
            _run_controller(store, parsed_args)
        elif parsed_args.command == "status":
            payload = describe(store, parsed_args.namespace, parsed_args.name)
            write(json.dumps(payload, indent=2, sort_keys=True) + "\n")
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except ManifestError:
        log.exception("Invalid manifest")
        sys.exit(2)
    except NotFoundError as exc:
        log.error("%s", exc)  # noqa: TRY400
        sys.exit(1)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    signal(SIGINT, sigint_handler)
    main()
