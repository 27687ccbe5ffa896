"""Reconciliation core: converge SharedResource targets toward their source.

Layered flow of one pass:
1) fetch the intent (deletion is delegated to the finalizer handler)
2) register the finalizer before any sync work
3) resolve the source next to the intent
4) filter the source bundle and checksum the result
5) synchronize every target, isolating per-target failures
6) persist conditions and per-target status
"""

from __future__ import annotations

from .context import PassContext
from .contracts import ReconcileRequest, ReconcileResult
from .correlation import CorrelationIndex
from .deletion import DeletionHandler
from .engine import Reconciler
from .ownership import (
    ANNOTATION_CHECKSUM,
    ANNOTATION_LAST_SYNCED,
    ANNOTATION_MANAGED_BY,
    ANNOTATION_SOURCE_INTENT,
    ANNOTATION_SOURCE_NAME,
    ANNOTATION_SOURCE_NAMESPACE,
    FINALIZER_NAME,
    is_managed_by,
    owning_intent,
)
from .sync import SyncOutcome, TargetSynchronizer

__all__ = [
    "ANNOTATION_CHECKSUM",
    "ANNOTATION_LAST_SYNCED",
    "ANNOTATION_MANAGED_BY",
    "ANNOTATION_SOURCE_INTENT",
    "ANNOTATION_SOURCE_NAME",
    "ANNOTATION_SOURCE_NAMESPACE",
    "FINALIZER_NAME",
    "CorrelationIndex",
    "DeletionHandler",
    "PassContext",
    "ReconcileRequest",
    "ReconcileResult",
    "Reconciler",
    "SyncOutcome",
    "TargetSynchronizer",
    "is_managed_by",
    "owning_intent",
]
