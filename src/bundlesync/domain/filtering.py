"""Key selection applied to a source bundle before it is synced."""

from __future__ import annotations

from typing import TYPE_CHECKING

from bundlesync.domain.model import SyncMode

if TYPE_CHECKING:
    from collections.abc import Mapping

    from bundlesync.domain.model import Bundle, SyncPolicySpec


def filter_bundle(bundle: Mapping[str, bytes], policy: SyncPolicySpec | None) -> Bundle:
    """Apply ``policy``'s key selector to ``bundle``.

    Copy mode (or no policy) and selectors that are absent pass every pair
    through. Otherwise ``include`` narrows the bundle first (an empty include
    keeps everything) and ``exclude`` is applied to the result afterwards.
    """

    if policy is None or policy.mode == SyncMode.COPY or policy.keys is None:
        return dict(bundle)

    selector = policy.keys
    if selector.include:
        filtered = {key: bundle[key] for key in selector.include if key in bundle}
    else:
        filtered = dict(bundle)

    for key in selector.exclude:
        filtered.pop(key, None)

    return filtered


def merge_bundles(existing: Mapping[str, bytes], overlay: Mapping[str, bytes]) -> Bundle:
    """Overlay ``overlay`` onto ``existing``; overlay keys win."""

    merged = dict(existing)
    merged.update(overlay)
    return merged
