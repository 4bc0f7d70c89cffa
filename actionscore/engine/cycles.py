"""
cycles.py — Cycle Target Distributor and Week Scorer
Splits a goal's target across the weeks of a cycle (keeping manual overrides
and reviewed weeks intact) and grades each reviewed week.
"""

import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from actionscore.engine.completion import finite_or_zero
from actionscore.engine.enums import WeekScore

DEFAULT_CYCLE_DAYS = 83  # start + 83 days = 12 full weeks, inclusive


@dataclass(frozen=True)
class WeekScoreThresholds:
    exceeded: float = 1.1
    good: float = 1.0
    partial: float = 0.5


WEEK_SCORE_THRESHOLDS = WeekScoreThresholds()


@dataclass(frozen=True)
class PlannedTarget:
    week_number: int
    target_value: float
    is_overridden: bool = False
    locked: bool = False


def total_weeks(start_date: date, end_date: date) -> int:
    days = (end_date - start_date).days
    return max(1, math.ceil(days / 7))


def current_week_number(start_date: date, end_date: date, today: date) -> int:
    week = (today - start_date).days // 7 + 1
    return max(1, min(total_weeks(start_date, end_date), week))


def default_end_date(start_date: date) -> date:
    return start_date + timedelta(days=DEFAULT_CYCLE_DAYS)


def is_reviewed(row) -> bool:
    return row.score is not None or getattr(row, "reviewed_at", None) is not None


def distribute_targets(goal_target: float, weeks: int, existing: Iterable = ()) -> List[PlannedTarget]:
    """One planned target per week.

    Weeks that are overridden or already reviewed keep their stored target;
    every other week gets ``goal_target / weeks``.
    """
    weeks = max(1, int(weeks))
    per_week = finite_or_zero(goal_target) / weeks
    by_week: Dict[int, object] = {row.week_number: row for row in existing}

    planned = []
    for week in range(1, weeks + 1):
        row = by_week.get(week)
        if row is not None and (row.is_overridden or is_reviewed(row)):
            planned.append(PlannedTarget(week, row.target_value, bool(row.is_overridden), locked=True))
        else:
            planned.append(PlannedTarget(week, per_week))
    return planned


def redistribute_deficit(targets: Iterable, current_week: int) -> List[PlannedTarget]:
    """Spread what reviewed past weeks fell short by over the open future weeks.

    Only weeks at or after ``current_week`` that are neither overridden nor
    reviewed receive a share. Returns the new targets for those weeks.
    """
    rows = list(targets)
    deficit = 0.0
    for row in rows:
        if row.week_number < current_week and is_reviewed(row):
            missed = finite_or_zero(row.target_value) - finite_or_zero(row.actual_value)
            if missed > 0:
                deficit += missed
    if deficit <= 0:
        return []

    open_weeks = [
        row for row in rows
        if row.week_number >= current_week and not row.is_overridden and not is_reviewed(row)
    ]
    if not open_weeks:
        return []

    extra = deficit / len(open_weeks)
    return [
        PlannedTarget(row.week_number, finite_or_zero(row.target_value) + extra)
        for row in sorted(open_weeks, key=lambda r: r.week_number)
    ]


def score_week(actual, target, thresholds: WeekScoreThresholds = WEEK_SCORE_THRESHOLDS) -> WeekScore:
    actual_value = finite_or_zero(actual)
    target_value = finite_or_zero(target)
    if target_value <= 0:
        ratio: Optional[float] = 1.0 if actual_value >= 0 else None
    else:
        ratio = actual_value / target_value

    if ratio is None:
        return WeekScore.MISSED
    if ratio >= thresholds.exceeded:
        return WeekScore.EXCEEDED
    if ratio >= thresholds.good:
        return WeekScore.GOOD
    if ratio >= thresholds.partial:
        return WeekScore.PARTIAL
    return WeekScore.MISSED
