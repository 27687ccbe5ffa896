"""Pydantic models for SharedResource, Secret, ConfigMap and Namespace documents."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from bundlesync.domain.model import ConditionStatus, DeletionPolicy, SyncMode

API_VERSION = "bundlesync.dev/v1alpha1"


class ManifestBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ObjectMeta(ManifestBaseModel):
    name: str = Field(min_length=1)
    namespace: str | None = None
    annotations: dict[str, str] = Field(default_factory=dict)
    finalizers: list[str] = Field(default_factory=list[str])
    generation: int = 0
    resource_version: int = Field(default=0, alias="resourceVersion")
    deletion_timestamp: datetime | None = Field(default=None, alias="deletionTimestamp")


class SourceModel(ManifestBaseModel):
    kind: str = Field(min_length=1)
    name: str = Field(min_length=1)


class TargetModel(ManifestBaseModel):
    namespace: str = Field(min_length=1)
    name: str | None = None


class KeySelectorModel(ManifestBaseModel):
    include: list[str] = Field(default_factory=list[str])
    exclude: list[str] = Field(default_factory=list[str])


class SyncPolicyModel(ManifestBaseModel):
    mode: SyncMode = SyncMode.COPY
    keys: KeySelectorModel | None = None


class SharedResourceSpecModel(ManifestBaseModel):
    source: SourceModel
    targets: list[TargetModel] = Field(min_length=1)
    sync_policy: SyncPolicyModel | None = Field(default=None, alias="syncPolicy")
    deletion_policy: DeletionPolicy = Field(default=DeletionPolicy.ORPHAN, alias="deletionPolicy")


class ConditionModel(ManifestBaseModel):
    type: str
    status: ConditionStatus
    reason: str
    message: str = ""
    last_transition_time: datetime = Field(alias="lastTransitionTime")


class TargetSyncStatusModel(ManifestBaseModel):
    namespace: str
    name: str
    synced: bool
    last_synced: datetime | None = Field(default=None, alias="lastSynced")
    error: str | None = None


class SharedResourceStatusModel(ManifestBaseModel):
    conditions: list[ConditionModel] = Field(default_factory=list["ConditionModel"])
    synced_targets: list[TargetSyncStatusModel] = Field(
        default_factory=list["TargetSyncStatusModel"], alias="syncedTargets"
    )
    last_sync_time: datetime | None = Field(default=None, alias="lastSyncTime")
    source_checksum: str | None = Field(default=None, alias="sourceChecksum")
    observed_generation: int = Field(default=0, alias="observedGeneration")


class SharedResourceDocument(ManifestBaseModel):
    api_version: str = Field(default=API_VERSION, alias="apiVersion")
    kind: Literal["SharedResource"]
    metadata: ObjectMeta
    spec: SharedResourceSpecModel
    status: SharedResourceStatusModel = Field(default_factory=SharedResourceStatusModel)


class SecretDocument(ManifestBaseModel):
    """Secret payload; ``data`` values are base64 encoded."""

    api_version: str = Field(default="v1", alias="apiVersion")
    kind: Literal["Secret"]
    metadata: ObjectMeta
    type_: str = Field(default="Opaque", alias="type")
    data: dict[str, str] = Field(default_factory=dict)


class ConfigMapDocument(ManifestBaseModel):
    """ConfigMap payload; ``data`` values are plain text."""

    api_version: str = Field(default="v1", alias="apiVersion")
    kind: Literal["ConfigMap"]
    metadata: ObjectMeta
    data: dict[str, str] = Field(default_factory=dict)


class NamespaceDocument(ManifestBaseModel):
    api_version: str = Field(default="v1", alias="apiVersion")
    kind: Literal["Namespace"]
    metadata: ObjectMeta


ManifestDocument = Annotated[
    SharedResourceDocument | SecretDocument | ConfigMapDocument | NamespaceDocument,
    Field(discriminator="kind"),
]

MANIFEST_ADAPTER: TypeAdapter[
    SharedResourceDocument | SecretDocument | ConfigMapDocument | NamespaceDocument
] = TypeAdapter(ManifestDocument)
