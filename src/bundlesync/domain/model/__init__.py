"""Domain model for shared key/value resources."""

from __future__ import annotations

from .enums import (
    SOURCE_KINDS,
    ConditionReason,
    ConditionStatus,
    ConditionType,
    DeletionPolicy,
    ResourceKind,
    SyncMode,
    source_kind_of,
)
from .intent import (
    Condition,
    KeySelector,
    SharedResource,
    SharedResourceSpec,
    SharedResourceStatus,
    SourceSpec,
    SyncPolicySpec,
    TargetSpec,
    TargetSyncStatus,
)
from .resource import DEFAULT_SECRET_TYPE, Bundle, KeyValueResource, ObjectKey

type StoredObject = SharedResource | KeyValueResource

__all__ = [
    "DEFAULT_SECRET_TYPE",
    "SOURCE_KINDS",
    "Bundle",
    "Condition",
    "ConditionReason",
    "ConditionStatus",
    "ConditionType",
    "DeletionPolicy",
    "KeySelector",
    "KeyValueResource",
    "ObjectKey",
    "ResourceKind",
    "SharedResource",
    "SharedResourceSpec",
    "SharedResourceStatus",
    "SourceSpec",
    "StoredObject",
    "SyncMode",
    "SyncPolicySpec",
    "TargetSpec",
    "TargetSyncStatus",
    "source_kind_of",
]
