"""
recurrence.py — Recurrence Resolver
Decides whether a task is due on a calendar date, and whether that date is the
one its occurrence gets scored on, under the task's flexibility rule.

Weekdays are indexed 0=Sunday ... 6=Saturday throughout.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from actionscore.engine.enums import FlexibilityRule, Frequency, coerce

DEFAULT_WEEKLY_DAY = 1  # Monday
DEFAULT_CARRYOVER_LOOKBACK_DAYS = 60
WEEKEND_DAYS = frozenset({0, 6})


@dataclass(frozen=True)
class DueStatus:
    due: bool
    scored: bool
    occurrence: Optional[date] = None
    window_start: Optional[date] = None
    window_end: Optional[date] = None
    carried_over: bool = False

    def to_dict(self) -> dict:
        return {
            "due": self.due,
            "scored": self.scored,
            "occurrence": self.occurrence.isoformat() if self.occurrence else None,
            "window_start": self.window_start.isoformat() if self.window_start else None,
            "window_end": self.window_end.isoformat() if self.window_end else None,
            "carried_over": self.carried_over,
        }


NOT_DUE = DueStatus(due=False, scored=False)


def weekday_index(d: date) -> int:
    return d.isoweekday() % 7


def is_weekend(d: date) -> bool:
    return weekday_index(d) in WEEKEND_DAYS


def _created_on(task) -> Optional[date]:
    created = getattr(task, "created_at", None)
    if isinstance(created, datetime):
        return created.date()
    return created


def weekly_due_day(task, default_day: int = DEFAULT_WEEKLY_DAY) -> int:
    """The canonical weekday of a weekly task: explicit, else creation weekday."""
    if task.weekly_day is not None:
        return task.weekly_day
    created = _created_on(task)
    if created is not None:
        return weekday_index(created)
    return default_day


def is_scheduled(task, d: date, default_weekly_day: int = DEFAULT_WEEKLY_DAY) -> bool:
    """Base due decision, before any flexibility rule is applied."""
    created = _created_on(task)
    if created is not None and d < created:
        return False

    frequency = coerce(Frequency, task.frequency)
    if frequency is Frequency.ADHOC:
        return task.scheduled_date == d

    weekday = weekday_index(d)
    if task.is_weekend_task:
        return weekday in WEEKEND_DAYS
    if frequency is Frequency.DAILY:
        return True
    if frequency is Frequency.CUSTOM:
        return weekday in set(task.custom_days or [])
    if frequency is Frequency.WEEKLY:
        return weekday == weekly_due_day(task, default_weekly_day)
    return False


def resolve(
    task,
    on_date: date,
    completed_dates: Iterable[date] = (),
    default_weekly_day: int = DEFAULT_WEEKLY_DAY,
    carryover_lookback_days: int = DEFAULT_CARRYOVER_LOOKBACK_DAYS,
) -> DueStatus:
    """Resolve a task for ``on_date``.

    ``completed_dates`` are the dates the task has a completed record on; the
    window and carryover rules need them to know whether an earlier day
    already satisfied the occurrence.
    """
    if getattr(task, "is_active", True) is False:
        return NOT_DUE

    rule = coerce(FlexibilityRule, task.flexibility_rule) or FlexibilityRule.MUST_TODAY
    completed = set(completed_dates)

    if rule is FlexibilityRule.LIMIT_AVOID:
        created = _created_on(task)
        if created is not None and on_date < created:
            return NOT_DUE
        return DueStatus(True, True, on_date, on_date, on_date)

    if rule is FlexibilityRule.WINDOW:
        return _resolve_window(task, on_date, completed, default_weekly_day)

    scheduled = is_scheduled(task, on_date, default_weekly_day)

    if rule is FlexibilityRule.CARRYOVER and not scheduled:
        return _resolve_carryover(task, on_date, completed, default_weekly_day, carryover_lookback_days)

    if scheduled:
        return DueStatus(True, True, on_date, on_date, on_date)
    return NOT_DUE


def _window_offsets(task) -> tuple:
    start = task.window_start or 0
    end = task.window_end or 0
    return (start, end) if start <= end else (end, start)


def _resolve_window(task, on_date: date, completed: set, default_weekly_day: int) -> DueStatus:
    offset_start, offset_end = _window_offsets(task)

    # Latest occurrence whose window covers on_date
    covering = None
    for k in range(offset_start, offset_end + 1):
        candidate = on_date - timedelta(days=k)
        if is_scheduled(task, candidate, default_weekly_day):
            covering = candidate
            break
    if covering is None:
        return NOT_DUE

    start = covering + timedelta(days=offset_start)
    end = covering + timedelta(days=offset_end)

    if on_date in completed:
        # Only the first completion inside the window scores the occurrence
        if any(start <= c < on_date for c in completed):
            return NOT_DUE
        return DueStatus(True, True, covering, start, end)

    # Occurrence whose window closes today and was never satisfied is a miss
    closing = on_date - timedelta(days=offset_end)
    if is_scheduled(task, closing, default_weekly_day):
        closing_start = closing + timedelta(days=offset_start)
        if not any(closing_start <= c <= on_date for c in completed):
            return DueStatus(True, True, closing, closing_start, on_date)

    if any(start <= c < on_date for c in completed):
        return NOT_DUE
    return DueStatus(True, False, covering, start, end)


def _resolve_carryover(
    task, on_date: date, completed: set, default_weekly_day: int, lookback_days: int
) -> DueStatus:
    created = _created_on(task)
    for back in range(1, lookback_days + 1):
        candidate = on_date - timedelta(days=back)
        if created is not None and candidate < created:
            return NOT_DUE
        if is_scheduled(task, candidate, default_weekly_day):
            if any(candidate <= c < on_date for c in completed):
                return NOT_DUE
            return DueStatus(True, True, candidate, candidate, on_date, carried_over=True)
    return NOT_DUE
