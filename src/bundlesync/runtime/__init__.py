"""Scheduling around the reconciliation core."""

from __future__ import annotations

from .dispatcher import WATCHED_KINDS, Dispatcher, needs_reconcile

__all__ = ["WATCHED_KINDS", "Dispatcher", "needs_reconcile"]
