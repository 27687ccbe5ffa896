"""Key/value resources: the source objects and the targets materialized from them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

from bundlesync.domain.model.enums import ResourceKind

type Bundle = dict[str, bytes]

DEFAULT_SECRET_TYPE: Final[str] = "Opaque"


@dataclass(frozen=True, slots=True)
class ObjectKey:
    """Namespace-scoped identity of a stored object."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(slots=True, kw_only=True)
class KeyValueResource:
    """A Secret or ConfigMap as seen by the controller.

    ``data`` is always bytes-valued; stores holding text values (ConfigMaps)
    encode/decode at their boundary. ``type_tag`` is only meaningful for
    Secrets (``kubernetes.io/tls`` and friends) and is ``None`` for ConfigMaps.
    """

    kind: ResourceKind
    namespace: str
    name: str
    data: Bundle = field(default_factory=dict)
    type_tag: str | None = None
    annotations: dict[str, str] = field(default_factory=dict)
    resource_version: int = 0

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(self.namespace, self.name)

    def copy(self) -> KeyValueResource:
        return KeyValueResource(
            kind=self.kind,
            namespace=self.namespace,
            name=self.name,
            data=dict(self.data),
            type_tag=self.type_tag,
            annotations=dict(self.annotations),
            resource_version=self.resource_version,
        )
