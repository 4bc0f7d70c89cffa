"""
completion.py — Completion Scorer
Turns one task's recorded value (or checkbox flag) into points earned.
Every function here is total: bad numbers score zero instead of raising.
"""

import math
from datetime import datetime, timezone
from typing import Optional

from actionscore.engine.enums import CompletionType, FlexibilityRule, coerce

PROGRESS_TYPES = frozenset({CompletionType.COUNT, CompletionType.DURATION, CompletionType.NUMERIC})


def finite_or_zero(value) -> float:
    """None, NaN and +/-inf all count as 0."""
    if value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def score_completion(
    completion_type,
    base_points,
    value=None,
    completed: bool = False,
    target=None,
    flexibility_rule=None,
    limit_value=None,
) -> float:
    """Points earned for one completion, within [0, base_points]."""
    base = max(0.0, finite_or_zero(base_points))
    amount = finite_or_zero(value)

    if coerce(FlexibilityRule, flexibility_rule) is FlexibilityRule.LIMIT_AVOID and limit_value is not None:
        return base if amount <= finite_or_zero(limit_value) else 0.0

    kind = coerce(CompletionType, completion_type)
    if kind is CompletionType.CHECKBOX:
        return base if completed else 0.0

    if kind is CompletionType.PERCENTAGE:
        return base * clamp(amount / 100.0)

    if kind in PROGRESS_TYPES:
        goal = finite_or_zero(target)
        if goal <= 0:
            # No target defined: any positive value earns the full points
            return base if amount > 0 else 0.0
        return base * clamp(amount / goal)

    return 0.0


def score_task(task, completion=None) -> float:
    """Score a task row against its completion row (or the lack of one)."""
    return score_completion(
        task.completion_type,
        task.base_points,
        value=completion.value if completion is not None else None,
        completed=bool(completion.completed) if completion is not None else False,
        target=task.target,
        flexibility_rule=task.flexibility_rule,
        limit_value=task.limit_value,
    )


def infer_completed(completion_type, value=None, completed: Optional[bool] = None) -> bool:
    if completed is not None:
        return completed
    if coerce(CompletionType, completion_type) is CompletionType.CHECKBOX:
        return True
    return finite_or_zero(value) > 0


def elapsed_minutes(started_at: datetime, now: Optional[datetime] = None) -> float:
    """Minutes between a timer start and ``now``, never negative."""
    now = now or datetime.now(timezone.utc)
    if started_at.tzinfo is None:
        started_at = started_at.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    minutes = (now - started_at).total_seconds() / 60.0
    return round(max(0.0, minutes), 2)
