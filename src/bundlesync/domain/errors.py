"""Domain-level error types raised by the reconciliation core."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bundlesync.domain.model import ObjectKey


class BundleSyncError(RuntimeError):
    """Base class for reconciliation errors that are not store failures."""


class UnsupportedSourceKindError(BundleSyncError):
    """Raised when an intent references a source kind the controller cannot mirror."""

    def __init__(self, kind: str) -> None:
        super().__init__(f"unsupported source kind: {kind}")
        self.kind = kind


class TargetOwnershipConflictError(BundleSyncError):
    """Raised when a target is already managed on behalf of a different intent."""

    def __init__(self, target: ObjectKey, owner: ObjectKey) -> None:
        super().__init__(f"target {target} is already managed by SharedResource {owner}")
        self.target = target
        self.owner = owner


class PassCancelledError(BundleSyncError):
    """Raised when a reconcile pass exceeds its deadline or is cancelled."""
