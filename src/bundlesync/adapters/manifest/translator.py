"""Translate manifest documents to domain objects and back."""

from __future__ import annotations

import base64
import binascii
import json
from pathlib import Path
from typing import TYPE_CHECKING, Any, cast

from pydantic import ValidationError

from bundlesync.domain.model import (
    DEFAULT_SECRET_TYPE,
    Condition,
    KeySelector,
    KeyValueResource,
    ResourceKind,
    SharedResource,
    SharedResourceSpec,
    SharedResourceStatus,
    SourceSpec,
    SyncPolicySpec,
    TargetSpec,
    TargetSyncStatus,
)

from .schema import (
    MANIFEST_ADAPTER,
    ConditionModel,
    ConfigMapDocument,
    KeySelectorModel,
    NamespaceDocument,
    ObjectMeta,
    SecretDocument,
    SharedResourceDocument,
    SharedResourceSpecModel,
    SharedResourceStatusModel,
    SourceModel,
    SyncPolicyModel,
    TargetModel,
    TargetSyncStatusModel,
)

if TYPE_CHECKING:
    from bundlesync.domain.model import StoredObject

type Document = SharedResourceDocument | SecretDocument | ConfigMapDocument | NamespaceDocument
type Manifest = StoredObject | str


class ManifestError(ValueError):
    """Raised when a manifest cannot be parsed or translated."""


# parsing ----------------------------------------------------------------------


def parse_documents(payload: str) -> list[Document]:
    """Parse a JSON object, a JSON array, or JSON Lines into validated documents."""

    text = payload.strip()
    if not text:
        return []
    try:
        loaded: Any = json.loads(text)
    except json.JSONDecodeError:
        loaded = [_load_line(line, number) for number, line in _lines(text)]

    items = cast(list[Any], loaded) if isinstance(loaded, list) else [loaded]
    documents: list[Document] = []
    for index, item in enumerate(items):
        try:
            documents.append(MANIFEST_ADAPTER.validate_python(item))
        except ValidationError as exc:
            raise ManifestError(f"document {index}: {exc}") from exc
    return documents


def load_manifest_file(path: str | Path) -> list[Document]:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestError(f"cannot read {path}: {exc}") from exc
    return parse_documents(text)


def _lines(text: str) -> list[tuple[int, str]]:
    return [(number, line) for number, line in enumerate(text.splitlines(), 1) if line.strip()]


def _load_line(line: str, number: int) -> Any:
    try:
        return json.loads(line)
    except json.JSONDecodeError as exc:
        raise ManifestError(f"line {number}: invalid JSON ({exc.msg})") from exc


# documents -> domain ----------------------------------------------------------


def to_domain(document: Document, *, default_namespace: str | None = None) -> Manifest:
    """Translate one document; namespaces translate to their name."""

    if isinstance(document, NamespaceDocument):
        return document.metadata.name
    if isinstance(document, SharedResourceDocument):
        return shared_resource_from_document(document, default_namespace=default_namespace)
    return resource_from_document(document, default_namespace=default_namespace)


def shared_resource_from_document(
    document: SharedResourceDocument, *, default_namespace: str | None = None
) -> SharedResource:
    meta = document.metadata
    return SharedResource(
        namespace=_namespace(meta, default_namespace, document.kind),
        name=meta.name,
        spec=spec_from_model(document.spec),
        status=status_from_model(document.status),
        finalizers=list(meta.finalizers),
        deletion_timestamp=meta.deletion_timestamp,
        generation=meta.generation,
        resource_version=meta.resource_version,
    )


def resource_from_document(
    document: SecretDocument | ConfigMapDocument, *, default_namespace: str | None = None
) -> KeyValueResource:
    meta = document.metadata
    if isinstance(document, SecretDocument):
        kind = ResourceKind.SECRET
        data = {key: _decode_secret_value(key, value) for key, value in document.data.items()}
        type_tag: str | None = document.type_ or DEFAULT_SECRET_TYPE
    else:
        kind = ResourceKind.CONFIG_MAP
        data = {key: value.encode("utf-8") for key, value in document.data.items()}
        type_tag = None
    return KeyValueResource(
        kind=kind,
        namespace=_namespace(meta, default_namespace, document.kind),
        name=meta.name,
        data=data,
        type_tag=type_tag,
        annotations=dict(meta.annotations),
        resource_version=meta.resource_version,
    )


def spec_from_model(model: SharedResourceSpecModel) -> SharedResourceSpec:
    policy: SyncPolicySpec | None = None
    if model.sync_policy is not None:
        keys: KeySelector | None = None
        if model.sync_policy.keys is not None:
            keys = KeySelector(
                include=list(model.sync_policy.keys.include),
                exclude=list(model.sync_policy.keys.exclude),
            )
        policy = SyncPolicySpec(mode=model.sync_policy.mode, keys=keys)
    return SharedResourceSpec(
        source=SourceSpec(kind=model.source.kind, name=model.source.name),
        targets=[TargetSpec(namespace=item.namespace, name=item.name) for item in model.targets],
        sync_policy=policy,
        deletion_policy=model.deletion_policy,
    )


def status_from_model(model: SharedResourceStatusModel) -> SharedResourceStatus:
    return SharedResourceStatus(
        conditions=[
            Condition(
                type=item.type,
                status=item.status,
                reason=item.reason,
                message=item.message,
                last_transition_time=item.last_transition_time,
            )
            for item in model.conditions
        ],
        synced_targets=[
            TargetSyncStatus(
                namespace=item.namespace,
                name=item.name,
                synced=item.synced,
                last_synced=item.last_synced,
                error=item.error,
            )
            for item in model.synced_targets
        ],
        last_sync_time=model.last_sync_time,
        source_checksum=model.source_checksum,
        observed_generation=model.observed_generation,
    )


def spec_from_payload(payload: dict[str, Any]) -> SharedResourceSpec:
    try:
        return spec_from_model(SharedResourceSpecModel.model_validate(payload))
    except ValidationError as exc:
        raise ManifestError(f"invalid SharedResource spec: {exc}") from exc


def status_from_payload(payload: dict[str, Any]) -> SharedResourceStatus:
    try:
        return status_from_model(SharedResourceStatusModel.model_validate(payload))
    except ValidationError as exc:
        raise ManifestError(f"invalid SharedResource status: {exc}") from exc


def object_from_payload(payload: dict[str, Any]) -> StoredObject:
    """Rebuild a stored object from :func:`object_to_payload` output."""

    try:
        document = MANIFEST_ADAPTER.validate_python(payload)
    except ValidationError as exc:
        raise ManifestError(f"invalid object payload: {exc}") from exc
    obj = to_domain(document)
    if isinstance(obj, str):
        raise ManifestError("namespace documents do not describe stored objects")
    return obj


def _namespace(meta: ObjectMeta, default: str | None, kind: str) -> str:
    namespace = meta.namespace or default
    if not namespace:
        raise ManifestError(f"{kind} {meta.name} has no metadata.namespace")
    return namespace


def _decode_secret_value(key: str, value: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ManifestError(f"Secret key {key!r} is not valid base64") from exc


# domain -> documents ----------------------------------------------------------


def spec_to_model(spec: SharedResourceSpec) -> SharedResourceSpecModel:
    policy: SyncPolicyModel | None = None
    if spec.sync_policy is not None:
        keys: KeySelectorModel | None = None
        if spec.sync_policy.keys is not None:
            keys = KeySelectorModel(
                include=list(spec.sync_policy.keys.include),
                exclude=list(spec.sync_policy.keys.exclude),
            )
        policy = SyncPolicyModel(mode=spec.sync_policy.mode, keys=keys)
    return SharedResourceSpecModel(
        source=SourceModel(kind=spec.source.kind, name=spec.source.name),
        targets=[TargetModel(namespace=item.namespace, name=item.name) for item in spec.targets],
        sync_policy=policy,
        deletion_policy=spec.deletion_policy,
    )


def status_to_model(status: SharedResourceStatus) -> SharedResourceStatusModel:
    return SharedResourceStatusModel(
        conditions=[
            ConditionModel(
                type=item.type,
                status=item.status,
                reason=item.reason,
                message=item.message,
                last_transition_time=item.last_transition_time,
            )
            for item in status.conditions
        ],
        synced_targets=[
            TargetSyncStatusModel(
                namespace=item.namespace,
                name=item.name,
                synced=item.synced,
                last_synced=item.last_synced,
                error=item.error,
            )
            for item in status.synced_targets
        ],
        last_sync_time=status.last_sync_time,
        source_checksum=status.source_checksum,
        observed_generation=status.observed_generation,
    )


def spec_to_payload(spec: SharedResourceSpec) -> dict[str, Any]:
    return spec_to_model(spec).model_dump(mode="json", by_alias=True, exclude_none=True)


def status_to_payload(status: SharedResourceStatus) -> dict[str, Any]:
    return status_to_model(status).model_dump(mode="json", by_alias=True, exclude_none=True)


def object_to_payload(obj: StoredObject) -> dict[str, Any]:
    """Render a stored object as a JSON-ready manifest document."""

    if isinstance(obj, SharedResource):
        document: Document = SharedResourceDocument(
            kind="SharedResource",
            metadata=ObjectMeta(
                name=obj.name,
                namespace=obj.namespace,
                finalizers=list(obj.finalizers),
                generation=obj.generation,
                resource_version=obj.resource_version,
                deletion_timestamp=obj.deletion_timestamp,
            ),
            spec=spec_to_model(obj.spec),
            status=status_to_model(obj.status),
        )
    else:
        meta = ObjectMeta(
            name=obj.name,
            namespace=obj.namespace,
            annotations=dict(obj.annotations),
            resource_version=obj.resource_version,
        )
        if obj.kind == ResourceKind.SECRET:
            document = SecretDocument(
                kind="Secret",
                metadata=meta,
                type_=obj.type_tag or DEFAULT_SECRET_TYPE,
                data={
                    key: base64.b64encode(value).decode("ascii")
                    for key, value in obj.data.items()
                },
            )
        else:
            document = ConfigMapDocument(
                kind="ConfigMap",
                metadata=meta,
                data={key: value.decode("utf-8") for key, value in obj.data.items()},
            )
    return document.model_dump(mode="json", by_alias=True, exclude_none=True)
