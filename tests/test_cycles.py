import math
from datetime import date
from types import SimpleNamespace

import pytest

from actionscore.engine.analytics import compute_cycle_analytics, classify_pace, goal_completion
from actionscore.engine.cycles import (
    current_week_number,
    default_end_date,
    distribute_targets,
    redistribute_deficit,
    score_week,
    total_weeks,
)
from actionscore.engine.enums import Pace, WeekScore


def week(week_number, target_value, actual_value=0.0, is_overridden=False, score=None, goal_id=1):
    return SimpleNamespace(
        goal_id=goal_id,
        week_number=week_number,
        target_value=target_value,
        actual_value=actual_value,
        is_overridden=is_overridden,
        score=score,
        reviewed_at=None,
    )


def test_default_cycle_is_twelve_weeks():
    start = date(2024, 1, 1)
    assert total_weeks(start, default_end_date(start)) == 12
    assert total_weeks(start, date(2024, 1, 3)) == 1
    assert total_weeks(start, date(2024, 2, 26)) == 8


def test_current_week_is_clamped():
    start, end = date(2024, 1, 1), date(2024, 3, 24)
    assert current_week_number(start, end, date(2023, 12, 1)) == 1
    assert current_week_number(start, end, date(2024, 1, 15)) == 3
    assert current_week_number(start, end, date(2025, 1, 1)) == 12


def test_even_distribution():
    planned = distribute_targets(84, 12)
    assert len(planned) == 12
    assert all(p.target_value == 7 for p in planned)


def test_override_survives_distribution():
    existing = [week(w, 7) for w in range(1, 13)]
    existing[4] = week(5, 14, is_overridden=True)
    planned = distribute_targets(84, 12, existing)
    assert planned[4].target_value == 14
    assert planned[4].locked
    assert all(p.target_value == 7 for p in planned if p.week_number != 5)


def test_reviewed_week_keeps_its_target():
    existing = [week(1, 5, actual_value=5, score="good")]
    planned = distribute_targets(120, 12, existing)
    assert planned[0].target_value == 5
    assert planned[1].target_value == 10


def test_redistribute_spreads_deficit_over_open_weeks():
    rows = [week(1, 10, actual_value=4, score="partial")] + [week(w, 10) for w in range(2, 5)]
    rows[2] = week(3, 12, is_overridden=True)
    result = {p.week_number: p.target_value for p in redistribute_deficit(rows, 2)}
    assert result == {2: 13.0, 4: 13.0}


def test_redistribute_with_no_deficit_is_empty():
    rows = [week(1, 10, actual_value=12, score="exceeded"), week(2, 10)]
    assert redistribute_deficit(rows, 2) == []


@pytest.mark.parametrize("actual,expected", [
    (11, WeekScore.EXCEEDED),
    (10, WeekScore.GOOD),
    (6, WeekScore.PARTIAL),
    (2, WeekScore.MISSED),
])
def test_week_tiering(actual, expected):
    assert score_week(actual, 10) is expected


def test_zero_target_week_counts_as_met():
    assert score_week(0, 0) is WeekScore.GOOD
    assert score_week(float("nan"), 10) is WeekScore.MISSED


class TestCycleAnalytics:
    def goals(self):
        return [
            SimpleNamespace(id=1, name="Workouts", target_value=120, current_value=29),
            SimpleNamespace(id=2, name="Pages", target_value=0, current_value=0),
        ]

    def test_no_goals(self):
        result = compute_cycle_analytics([], [], 3, 12)
        assert result.overall_completion == 0
        assert result.pace == Pace.ON_TRACK.value
        assert result.goal_trends == []

    def test_zero_target_goal_never_produces_nan(self):
        result = compute_cycle_analytics(self.goals(), [], 1, 12).to_dict()
        for key in ("overall_completion", "projected_completion"):
            assert not math.isnan(result[key])
        assert result["goal_trends"][1]["completion"] == 100.0

    def test_consistency_and_trends(self):
        targets = [
            week(1, 10, 11, score="exceeded", goal_id=1),
            week(2, 10, 10, score="good", goal_id=1),
            week(3, 10, 6, score="partial", goal_id=1),
            week(4, 10, 2, score="missed", goal_id=1),
        ]
        goals = self.goals()[:1]
        result = compute_cycle_analytics(goals, targets, 4, 12)
        assert result.total_reviewed_weeks == 4
        assert result.consistent_weeks == 2
        assert result.goal_trends[0].weekly_actuals[:5] == [11, 10, 6, 2, 0]
        assert len(result.goal_trends[0].weekly_actuals) == 12
        assert result.pace == Pace.BEHIND.value

    def test_projection_is_capped(self):
        goals = [SimpleNamespace(id=1, name="g", target_value=10, current_value=10)]
        result = compute_cycle_analytics(goals, [], 2, 12)
        assert result.projected_completion == 100.0
        assert result.pace == Pace.AHEAD.value


def test_pace_classification():
    assert classify_pace(50, 6, 12) is Pace.ON_TRACK
    assert classify_pace(50, 3, 12) is Pace.AHEAD
    assert classify_pace(20, 6, 12) is Pace.BEHIND


def test_goal_completion_is_clamped():
    assert goal_completion(200, 100) == 100.0
    assert goal_completion(-5, 100) == 0.0
