"""Status condition bookkeeping."""

from __future__ import annotations

from typing import TYPE_CHECKING

from bundlesync.domain.model import Condition, ConditionStatus

if TYPE_CHECKING:
    from datetime import datetime

    from bundlesync.domain.model import SharedResourceStatus


def set_condition(
    status: SharedResourceStatus,
    condition_type: str,
    observed: bool | ConditionStatus,
    reason: str,
    message: str,
    *,
    now: datetime,
) -> Condition:
    """Record ``condition_type`` on ``status`` and return the stored condition.

    Each type appears at most once. The transition time only moves when the
    status value flips; an unchanged value just refreshes reason and message.
    """

    value = _to_status(observed)
    for index, existing in enumerate(status.conditions):
        if existing.type != condition_type:
            continue
        if existing.status == value:
            existing.reason = reason
            existing.message = message
            return existing
        replacement = Condition(
            type=condition_type,
            status=value,
            reason=reason,
            message=message,
            last_transition_time=now,
        )
        status.conditions[index] = replacement
        return replacement

    condition = Condition(
        type=condition_type,
        status=value,
        reason=reason,
        message=message,
        last_transition_time=now,
    )
    status.conditions.append(condition)
    return condition


def get_condition(status: SharedResourceStatus, condition_type: str) -> Condition | None:
    for condition in status.conditions:
        if condition.type == condition_type:
            return condition
    return None


def is_condition_true(status: SharedResourceStatus, condition_type: str) -> bool:
    condition = get_condition(status, condition_type)
    return condition is not None and condition.status == ConditionStatus.TRUE


def _to_status(observed: bool | ConditionStatus) -> ConditionStatus:
    if isinstance(observed, ConditionStatus):
        return observed
    return ConditionStatus.TRUE if observed else ConditionStatus.FALSE
