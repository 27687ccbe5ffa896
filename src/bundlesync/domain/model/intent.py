"""The SharedResource intent: what to mirror, where, and the observed outcome."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from bundlesync.domain.model.enums import (
    ConditionStatus,
    DeletionPolicy,
    ResourceKind,
    SyncMode,
)
from bundlesync.domain.model.resource import ObjectKey

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(slots=True, kw_only=True)
class SourceSpec:
    # kept as a plain string so an unsupported kind can be reported in status
    kind: str
    name: str


@dataclass(slots=True, kw_only=True)
class TargetSpec:
    namespace: str
    name: str | None = None

    def resolved_name(self, source_name: str) -> str:
        return self.name or source_name


@dataclass(slots=True, kw_only=True)
class KeySelector:
    include: list[str] = field(default_factory=list[str])
    exclude: list[str] = field(default_factory=list[str])


@dataclass(slots=True, kw_only=True)
class SyncPolicySpec:
    mode: SyncMode = SyncMode.COPY
    keys: KeySelector | None = None


@dataclass(slots=True, kw_only=True)
class SharedResourceSpec:
    source: SourceSpec
    targets: list[TargetSpec]
    sync_policy: SyncPolicySpec | None = None
    deletion_policy: DeletionPolicy = DeletionPolicy.ORPHAN

    def __post_init__(self) -> None:
        if not self.targets:
            raise ValueError("SharedResource spec must declare at least one target")

    @property
    def sync_mode(self) -> SyncMode:
        if self.sync_policy is None:
            return SyncMode.COPY
        return self.sync_policy.mode


@dataclass(slots=True, kw_only=True)
class Condition:
    type: str
    status: ConditionStatus
    reason: str
    message: str
    last_transition_time: datetime


@dataclass(slots=True, kw_only=True)
class TargetSyncStatus:
    namespace: str
    name: str
    synced: bool
    last_synced: datetime | None = None
    error: str | None = None


@dataclass(slots=True, kw_only=True)
class SharedResourceStatus:
    conditions: list[Condition] = field(default_factory=list[Condition])
    synced_targets: list[TargetSyncStatus] = field(default_factory=list[TargetSyncStatus])
    last_sync_time: datetime | None = None
    source_checksum: str | None = None
    observed_generation: int = 0


@dataclass(slots=True, kw_only=True)
class SharedResource:
    """User-declared sync intent.

    ``generation`` is bumped by the store whenever ``spec`` changes and
    ``resource_version`` on every write; the controller only ever touches
    ``finalizers`` and ``status``.
    """

    namespace: str
    name: str
    spec: SharedResourceSpec
    status: SharedResourceStatus = field(default_factory=SharedResourceStatus)
    finalizers: list[str] = field(default_factory=list[str])
    deletion_timestamp: datetime | None = None
    generation: int = 0
    resource_version: int = 0

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.SHARED_RESOURCE

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(self.namespace, self.name)

    @property
    def is_marked_for_deletion(self) -> bool:
        return self.deletion_timestamp is not None

    def has_finalizer(self, finalizer: str) -> bool:
        return finalizer in self.finalizers

    def add_finalizer(self, finalizer: str) -> None:
        if finalizer not in self.finalizers:
            self.finalizers.append(finalizer)

    def remove_finalizer(self, finalizer: str) -> None:
        self.finalizers = [item for item in self.finalizers if item != finalizer]

    def copy(self) -> SharedResource:
        return copy.deepcopy(self)
