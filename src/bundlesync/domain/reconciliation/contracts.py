"""Request/result contracts exchanged between the dispatcher and the engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import timedelta

    from bundlesync.domain.model import ObjectKey


@dataclass(frozen=True, slots=True)
class ReconcileRequest:
    """Identity of one SharedResource that needs a reconcile pass."""

    namespace: str
    name: str

    @classmethod
    def for_key(cls, key: ObjectKey) -> ReconcileRequest:
        return cls(namespace=key.namespace, name=key.name)

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True, slots=True)
class ReconcileResult:
    """Scheduling hint returned by a pass.

    ``requeue`` asks for an immediate re-run; ``requeue_after`` asks for a
    delayed one. Neither set means the next pass is event driven.
    """

    requeue: bool = False
    requeue_after: timedelta | None = None
