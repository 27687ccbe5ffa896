"""JSON manifests for SharedResources, Secrets, ConfigMaps and Namespaces."""

from __future__ import annotations

from .schema import (
    API_VERSION,
    MANIFEST_ADAPTER,
    ConfigMapDocument,
    ManifestDocument,
    NamespaceDocument,
    SecretDocument,
    SharedResourceDocument,
)
from .translator import (
    Document,
    Manifest,
    ManifestError,
    load_manifest_file,
    object_from_payload,
    object_to_payload,
    parse_documents,
    to_domain,
)

__all__ = [
    "API_VERSION",
    "MANIFEST_ADAPTER",
    "ConfigMapDocument",
    "Document",
    "Manifest",
    "ManifestDocument",
    "ManifestError",
    "NamespaceDocument",
    "SecretDocument",
    "SharedResourceDocument",
    "load_manifest_file",
    "object_from_payload",
    "object_to_payload",
    "parse_documents",
    "to_domain",
]
