"""
progression.py — Streak & XP Engine
Advances streak counters one closed day at a time, awards XP with a capped
streak bonus and maps total XP onto levels and titles.
"""

from dataclasses import dataclass, asdict, replace
from datetime import date, timedelta
from typing import Iterable, List, Optional, Tuple

STREAK_BONUS_MIN_DAYS = 3
STREAK_BONUS_PER_DAY = 2
STREAK_BONUS_CAP = 50
XP_PER_LEVEL_STEP = 100
MAX_LEVEL = 99

LEVEL_TITLES = {
    1: "Beginner",
    2: "Novice",
    3: "Apprentice",
    4: "Journeyman",
    5: "Adept",
    6: "Expert",
    7: "Master",
    8: "Grandmaster",
    9: "Legend",
    10: "Mythic",
}


@dataclass(frozen=True)
class Stats:
    total_xp: int = 0
    current_streak: int = 0
    best_streak: int = 0
    last_closed_date: Optional[date] = None

    @property
    def level(self) -> int:
        return level_for(self.total_xp)

    @property
    def level_title(self) -> str:
        return level_title(self.level)


@dataclass(frozen=True)
class DayResult:
    date: date
    action_score: float
    is_passing: bool


@dataclass(frozen=True)
class LevelInfo:
    level: int
    title: str
    current_xp: int
    xp_for_next_level: int
    xp_progress: int

    def to_dict(self) -> dict:
        return asdict(self)


def base_xp(action_score: float) -> int:
    return max(0, int(round(action_score)))


def streak_bonus(streak: int) -> int:
    if streak < STREAK_BONUS_MIN_DAYS:
        return 0
    return min(streak * STREAK_BONUS_PER_DAY, STREAK_BONUS_CAP)


def advance(stats: Stats, day: DayResult) -> Tuple[Stats, int]:
    """Close one day: returns the new stats and the XP that day earned."""
    consecutive = (
        stats.last_closed_date is None
        or day.date - stats.last_closed_date == timedelta(days=1)
    )
    previous = stats.current_streak if consecutive else 0
    current = previous + 1 if day.is_passing else 0
    xp = base_xp(day.action_score) + streak_bonus(current)
    return replace(
        stats,
        total_xp=stats.total_xp + xp,
        current_streak=current,
        best_streak=max(stats.best_streak, current),
        last_closed_date=day.date,
    ), xp


def replay(days: Iterable[DayResult]) -> Tuple[Stats, List[int]]:
    """Rebuild stats from scratch over every closed day.

    Days are processed in date order; a calendar gap counts as a failed day.
    Returns the final stats plus the XP earned on each day, in date order.
    """
    stats = Stats()
    earned = []
    for day in sorted(days, key=lambda d: d.date):
        stats, xp = advance(stats, day)
        earned.append(xp)
    return stats, earned


def level_for(total_xp: int) -> int:
    return level_info(total_xp).level


def level_title(level: int) -> str:
    return LEVEL_TITLES[max(1, min(level, max(LEVEL_TITLES)))]


def level_info(total_xp: int) -> LevelInfo:
    """Level L needs L * 100 XP to reach L + 1."""
    remaining = max(0, int(total_xp))
    level = 1
    while remaining >= level * XP_PER_LEVEL_STEP and level < MAX_LEVEL:
        remaining -= level * XP_PER_LEVEL_STEP
        level += 1

    needed = level * XP_PER_LEVEL_STEP
    return LevelInfo(
        level=level,
        title=level_title(level),
        current_xp=remaining,
        xp_for_next_level=needed,
        xp_progress=min(100, int(round(remaining / needed * 100))),
    )
