"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class ResourceKind(StrEnum):
    SHARED_RESOURCE = "SharedResource"
    SECRET = "Secret"
    CONFIG_MAP = "ConfigMap"


# Kinds that may be referenced as a source and materialized as targets.
SOURCE_KINDS: frozenset[ResourceKind] = frozenset({ResourceKind.SECRET, ResourceKind.CONFIG_MAP})


class SyncMode(StrEnum):
    COPY = "copy"
    SELECTIVE = "selective"
    MERGE = "merge"


class DeletionPolicy(StrEnum):
    ORPHAN = "orphan"
    DELETE = "delete"


class ConditionStatus(StrEnum):
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class ConditionType(StrEnum):
    READY = "Ready"
    SOURCE_FOUND = "SourceFound"


class ConditionReason(StrEnum):
    SOURCE_EXISTS = "SourceExists"
    SOURCE_NOT_FOUND = "SourceNotFound"
    SYNC_SUCCESSFUL = "SyncSuccessful"
    SYNC_FAILED = "SyncFailed"
    UNSUPPORTED_KIND = "UnsupportedKind"
    TARGET_CONFLICT = "TargetConflict"


def source_kind_of(value: str) -> ResourceKind | None:
    """Return the source kind named by ``value``, or ``None`` if it cannot be a source."""

    try:
        kind = ResourceKind(value)
    except ValueError:
        return None
    return kind if kind in SOURCE_KINDS else None
