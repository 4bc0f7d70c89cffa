"""
engine — Pure scoring and planning computations.
Nothing in this package touches the database or the clock unless a value is
passed in; services feed it rows and persist what it returns.
"""

from actionscore.engine.analytics import compute_cycle_analytics
from actionscore.engine.completion import score_completion, score_task
from actionscore.engine.cycles import distribute_targets, score_week, total_weeks
from actionscore.engine.daily import aggregate_day, score_tier
from actionscore.engine.progression import advance, level_info, replay
from actionscore.engine.recurrence import resolve

__all__ = [
    "compute_cycle_analytics",
    "score_completion",
    "score_task",
    "distribute_targets",
    "score_week",
    "total_weeks",
    "aggregate_day",
    "score_tier",
    "advance",
    "level_info",
    "replay",
    "resolve",
]
