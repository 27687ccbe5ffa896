"""Tracking annotations and the ownership check shared by every mutating stage."""

from __future__ import annotations

from datetime import UTC
from typing import TYPE_CHECKING, Final

from bundlesync.domain.model import ObjectKey

if TYPE_CHECKING:
    from datetime import datetime

    from bundlesync.domain.model import KeyValueResource, SharedResource

ANNOTATION_PREFIX: Final[str] = "bundlesync.dev/"

FINALIZER_NAME: Final[str] = f"{ANNOTATION_PREFIX}finalizer"

ANNOTATION_MANAGED_BY: Final[str] = f"{ANNOTATION_PREFIX}managed-by"
ANNOTATION_SOURCE_NAMESPACE: Final[str] = f"{ANNOTATION_PREFIX}source-namespace"
ANNOTATION_SOURCE_NAME: Final[str] = f"{ANNOTATION_PREFIX}source-name"
ANNOTATION_SOURCE_INTENT: Final[str] = f"{ANNOTATION_PREFIX}source-intent"
ANNOTATION_CHECKSUM: Final[str] = f"{ANNOTATION_PREFIX}checksum"
ANNOTATION_LAST_SYNCED: Final[str] = f"{ANNOTATION_PREFIX}last-synced"

TRACKING_ANNOTATIONS: Final[tuple[str, ...]] = (
    ANNOTATION_MANAGED_BY,
    ANNOTATION_SOURCE_NAMESPACE,
    ANNOTATION_SOURCE_NAME,
    ANNOTATION_SOURCE_INTENT,
    ANNOTATION_CHECKSUM,
    ANNOTATION_LAST_SYNCED,
)


def is_managed_by(obj: KeyValueResource, identity: str) -> bool:
    """Return whether ``obj`` carries this controller's ownership marker."""

    return obj.annotations.get(ANNOTATION_MANAGED_BY) == identity


def owning_intent(obj: KeyValueResource) -> ObjectKey | None:
    """Return the SharedResource recorded on a managed object, if complete."""

    namespace = obj.annotations.get(ANNOTATION_SOURCE_NAMESPACE)
    name = obj.annotations.get(ANNOTATION_SOURCE_INTENT)
    if not namespace or not name:
        return None
    return ObjectKey(namespace, name)


def tracking_annotations(
    intent: SharedResource,
    *,
    identity: str,
    checksum: str,
    now: datetime,
) -> dict[str, str]:
    return {
        ANNOTATION_MANAGED_BY: identity,
        ANNOTATION_SOURCE_NAMESPACE: intent.namespace,
        ANNOTATION_SOURCE_NAME: intent.spec.source.name,
        ANNOTATION_SOURCE_INTENT: intent.name,
        ANNOTATION_CHECKSUM: checksum,
        ANNOTATION_LAST_SYNCED: format_timestamp(now),
    }


def format_timestamp(value: datetime) -> str:
    """RFC3339, UTC, second precision."""

    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
