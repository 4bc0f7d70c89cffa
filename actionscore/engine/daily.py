"""
daily.py — Daily Aggregator
Groups the points of every task scored on a date by pillar, turns each pillar
into a 0..100 score and folds the pillars into a weighted Action Score.
"""

from dataclasses import dataclass, field, asdict
from datetime import date
from typing import Iterable, List, Optional

from actionscore.engine.completion import clamp
from actionscore.engine.enums import ScoreTier
from actionscore.engine.recurrence import is_weekend

# (minimum score, tier), checked top down
SCORE_TIER_BANDS = (
    (95.0, ScoreTier.LEGENDARY),
    (85.0, ScoreTier.EXCELLENT),
    (70.0, ScoreTier.GOOD),
    (50.0, ScoreTier.DECENT),
    (30.0, ScoreTier.NEEDS_WORK),
)
DEFAULT_PASS_THRESHOLD = 70.0
VACUOUS_PILLAR_SCORE = 100.0
UNASSIGNED_WEIGHT = 0.0


@dataclass(frozen=True)
class ScoredTask:
    task_id: int
    pillar_id: Optional[int]
    base_points: float
    points_earned: float
    completed: bool = False


@dataclass(frozen=True)
class PillarWeight:
    id: int
    weight: float
    name: str = ""
    sort_order: int = 0


@dataclass
class PillarScore:
    pillar_id: Optional[int]
    name: str
    weight: float
    score: float
    due_tasks: int
    points_earned: float
    base_points: float


@dataclass
class DayScore:
    action_score: float
    score_tier: str
    is_passing: bool
    total_tasks: int
    completed_tasks: int
    pillar_scores: List[PillarScore] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def score_tier(score: float, bands=SCORE_TIER_BANDS) -> ScoreTier:
    for minimum, tier in bands:
        if score >= minimum:
            return tier
    return ScoreTier.POOR


def pass_threshold_for(
    on_date: date,
    weekday_threshold: float = DEFAULT_PASS_THRESHOLD,
    weekend_threshold: float = DEFAULT_PASS_THRESHOLD,
) -> float:
    return weekend_threshold if is_weekend(on_date) else weekday_threshold


def _pillar_score(points: float, base: float) -> float:
    if base <= 0:
        return VACUOUS_PILLAR_SCORE
    return 100.0 * clamp(points / base)


def aggregate_day(
    entries: Iterable[ScoredTask],
    pillars: Iterable,
    pass_threshold: float = DEFAULT_PASS_THRESHOLD,
    bands=SCORE_TIER_BANDS,
) -> DayScore:
    """Weighted Action Score for one day.

    ``pillars`` is any iterable of objects with ``id``, ``weight`` and
    optionally ``name``/``sort_order`` (ORM rows or PillarWeight).
    """
    ordered = sorted(pillars, key=lambda p: (getattr(p, "sort_order", 0) or 0, p.id))
    known = {p.id for p in ordered}

    groups = {p.id: [] for p in ordered}
    unassigned = []
    for entry in entries:
        if entry.pillar_id in known:
            groups[entry.pillar_id].append(entry)
        else:
            unassigned.append(entry)

    pillar_scores = []
    for p in ordered:
        members = groups[p.id]
        points = sum(max(0.0, e.points_earned) for e in members)
        base = sum(max(0.0, e.base_points) for e in members)
        pillar_scores.append(PillarScore(
            pillar_id=p.id,
            name=getattr(p, "name", "") or "",
            weight=max(0.0, float(p.weight or 0)),
            score=round(_pillar_score(points, base), 1) if members else VACUOUS_PILLAR_SCORE,
            due_tasks=len(members),
            points_earned=round(points, 2),
            base_points=round(base, 2),
        ))
    if unassigned:
        points = sum(max(0.0, e.points_earned) for e in unassigned)
        base = sum(max(0.0, e.base_points) for e in unassigned)
        pillar_scores.append(PillarScore(
            pillar_id=None,
            name="Unassigned",
            weight=UNASSIGNED_WEIGHT,
            score=round(_pillar_score(points, base), 1),
            due_tasks=len(unassigned),
            points_earned=round(points, 2),
            base_points=round(base, 2),
        ))

    active = [ps for ps in pillar_scores if ps.due_tasks > 0]
    total_weight = sum(ps.weight for ps in active)
    if not active:
        action_score = 0.0
    elif total_weight > 0:
        action_score = sum(ps.score * ps.weight for ps in active) / total_weight
    else:
        action_score = sum(ps.score for ps in active) / len(active)
    action_score = round(clamp(action_score, 0.0, 100.0), 1)

    all_entries = [e for members in groups.values() for e in members] + unassigned
    return DayScore(
        action_score=action_score,
        score_tier=score_tier(action_score, bands).value,
        is_passing=bool(active) and action_score >= pass_threshold,
        total_tasks=len(all_entries),
        completed_tasks=sum(1 for e in all_entries if e.completed),
        pillar_scores=pillar_scores,
    )
