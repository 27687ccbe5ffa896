"""Deadline and cancellation signal threaded through a reconcile pass."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from bundlesync.domain.errors import PassCancelledError

if TYPE_CHECKING:
    import threading
    from collections.abc import Callable


@dataclass(slots=True)
class PassContext:
    """Checked before every store call; raises once the pass must stop.

    ``deadline`` is expressed on the ``monotonic`` clock.
    """

    deadline: float | None = None
    cancel_event: threading.Event | None = None
    monotonic: Callable[[], float] = field(default=time.monotonic)

    @classmethod
    def with_timeout(
        cls,
        seconds: float | None,
        *,
        cancel_event: threading.Event | None = None,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> PassContext:
        deadline = None if seconds is None else monotonic() + seconds
        return cls(deadline=deadline, cancel_event=cancel_event, monotonic=monotonic)

    @property
    def cancelled(self) -> bool:
        if self.cancel_event is not None and self.cancel_event.is_set():
            return True
        return self.deadline is not None and self.monotonic() >= self.deadline

    def check(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise PassCancelledError("reconcile pass cancelled")
        if self.deadline is not None and self.monotonic() >= self.deadline:
            raise PassCancelledError("reconcile pass exceeded its deadline")
