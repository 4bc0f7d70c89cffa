"""
analytics.py — Cycle Analytics Engine
Completion, pace, projection, consistency and per-goal trend series for one
goal cycle, computed from goals and their weekly targets.
"""

from dataclasses import dataclass, field, asdict
from typing import Iterable, List, Optional

from actionscore.engine.completion import clamp, finite_or_zero
from actionscore.engine.enums import Pace, WeekScore


@dataclass(frozen=True)
class PaceThresholds:
    ahead: float = 1.1
    behind: float = 0.85


PACE_THRESHOLDS = PaceThresholds()
CONSISTENT_SCORES = frozenset({WeekScore.GOOD.value, WeekScore.EXCEEDED.value})


@dataclass
class GoalTrend:
    goal_id: int
    goal_name: str
    weekly_actuals: List[float]
    completion: float
    pace: str


@dataclass
class CycleAnalytics:
    overall_completion: float
    pace: str
    projected_completion: float
    consistent_weeks: int
    total_reviewed_weeks: int
    current_week: int
    total_weeks: int
    goal_trends: List[GoalTrend] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def goal_completion(current_value, target_value) -> float:
    """Percent of a goal reached, clamped to 0..100."""
    target = finite_or_zero(target_value)
    if target <= 0:
        return 100.0
    return 100.0 * clamp(finite_or_zero(current_value) / target)


def classify_pace(completion: float, current_week: int, total_weeks: int,
                  thresholds: PaceThresholds = PACE_THRESHOLDS) -> Pace:
    """Compare progress against the linear schedule implied by elapsed weeks."""
    if total_weeks <= 0 or current_week <= 0:
        return Pace.ON_TRACK
    expected = min(current_week, total_weeks) / total_weeks
    ratio = (completion / 100.0) / expected
    if ratio >= thresholds.ahead:
        return Pace.AHEAD
    if ratio < thresholds.behind:
        return Pace.BEHIND
    return Pace.ON_TRACK


def project_completion(completion: float, current_week: int, total_weeks: int) -> float:
    if total_weeks <= 0:
        return 0.0
    elapsed = max(1, min(current_week, total_weeks))
    return clamp(completion / elapsed * total_weeks, 0.0, 100.0)


def _score_value(score) -> Optional[str]:
    return getattr(score, "value", score)


def compute_cycle_analytics(
    goals: Iterable,
    weekly_targets: Iterable,
    current_week: int,
    total_weeks: int,
    thresholds: PaceThresholds = PACE_THRESHOLDS,
) -> CycleAnalytics:
    """Aggregate analytics for a cycle.

    ``goals`` need ``id``, ``name``, ``target_value`` and ``current_value``;
    ``weekly_targets`` need ``goal_id``, ``week_number``, ``actual_value`` and
    ``score``.
    """
    goals = list(goals)
    targets = list(weekly_targets)
    total_weeks = max(0, int(total_weeks))
    current_week = max(0, min(int(current_week), total_weeks))

    if not goals:
        return CycleAnalytics(
            overall_completion=0.0,
            pace=Pace.ON_TRACK.value,
            projected_completion=0.0,
            consistent_weeks=0,
            total_reviewed_weeks=0,
            current_week=current_week,
            total_weeks=total_weeks,
        )

    completions = [goal_completion(g.current_value, g.target_value) for g in goals]
    overall = sum(completions) / len(completions)

    by_key = {(t.goal_id, t.week_number): t for t in targets}

    trends = []
    for g, completion in zip(goals, completions):
        actuals = []
        for week in range(1, total_weeks + 1):
            row = by_key.get((g.id, week))
            actuals.append(finite_or_zero(row.actual_value) if row is not None else 0.0)
        trends.append(GoalTrend(
            goal_id=g.id,
            goal_name=getattr(g, "name", "") or "",
            weekly_actuals=actuals,
            completion=round(completion, 1),
            pace=classify_pace(completion, current_week, total_weeks, thresholds).value,
        ))

    goal_ids = [g.id for g in goals]
    consistent = 0
    reviewed = 0
    for week in range(1, total_weeks + 1):
        scores = [_score_value(by_key[(gid, week)].score) if (gid, week) in by_key else None
                  for gid in goal_ids]
        if not any(s is not None for s in scores):
            continue
        reviewed += 1
        if all(s in CONSISTENT_SCORES for s in scores):
            consistent += 1

    return CycleAnalytics(
        overall_completion=round(overall, 1),
        pace=classify_pace(overall, current_week, total_weeks, thresholds).value,
        projected_completion=round(project_completion(overall, current_week, total_weeks), 1),
        consistent_weeks=consistent,
        total_reviewed_weeks=reviewed,
        current_week=current_week,
        total_weeks=total_weeks,
        goal_trends=trends,
    )
