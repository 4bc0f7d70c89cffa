"""
enums.py — Closed value sets shared by the engine, models and routes.
"""

from enum import Enum
from typing import Optional, Type, TypeVar

E = TypeVar("E", bound=Enum)


class CompletionType(str, Enum):
    CHECKBOX = "checkbox"
    COUNT = "count"
    DURATION = "duration"
    NUMERIC = "numeric"
    PERCENTAGE = "percentage"


class FlexibilityRule(str, Enum):
    MUST_TODAY = "must_today"
    WINDOW = "window"
    LIMIT_AVOID = "limit_avoid"
    CARRYOVER = "carryover"


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    CUSTOM = "custom"
    ADHOC = "adhoc"


class Importance(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ScoreTier(str, Enum):
    LEGENDARY = "LEGENDARY"
    EXCELLENT = "Excellent"
    GOOD = "Good"
    DECENT = "Decent"
    NEEDS_WORK = "Needs Work"
    POOR = "Poor"


class WeekScore(str, Enum):
    EXCEEDED = "exceeded"
    GOOD = "good"
    PARTIAL = "partial"
    MISSED = "missed"


class Pace(str, Enum):
    AHEAD = "ahead"
    ON_TRACK = "on_track"
    BEHIND = "behind"


class ReportType(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"


def coerce(enum_cls: Type[E], value) -> Optional[E]:
    """Map a persisted value onto ``enum_cls``; unknown values give None."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None
