"""Content hashing for drift detection."""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping


def compute_checksum(bundle: Mapping[str, bytes]) -> str:
    """Return the SHA-256 hex digest of ``bundle``.

    Keys are hashed in sorted order as ``key=value\\n`` so the digest does not
    depend on mapping iteration order. The empty bundle hashes the empty byte
    sequence.
    """

    digest = hashlib.sha256()
    for key in sorted(bundle):
        digest.update(key.encode("utf-8"))
        digest.update(b"=")
        digest.update(bundle[key])
        digest.update(b"\n")
    return digest.hexdigest()
