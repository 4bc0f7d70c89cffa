from datetime import date, datetime, timedelta, timezone

import pytest

from actionscore.errors import InvalidInput, NotFound
from actionscore.models.task import Task
from actionscore.services.cycle_service import CycleService
from actionscore.services.planner_service import PlannerService
from actionscore.services.report_service import ReportService
from actionscore.services.scoring_service import ScoringService
from actionscore.services.settings_service import SettingsService

DAY = date(2024, 1, 1)  # Monday
TODAY = date(2024, 3, 1)


@pytest.fixture
def pillar(db, user_id):
    return PlannerService.create_pillar(db, user_id, {"name": "Body", "weight": 100})


@pytest.fixture
def checkbox_task(db, user_id, pillar):
    return new_task(db, user_id, {"name": "Stretch", "pillar_id": pillar.id, "base_points": 10})


CREATED = datetime(2023, 12, 1)


def new_task(db, user_id, data: dict) -> Task:
    """Create a task that already existed on every date these tests score."""
    task = PlannerService.create_task(db, user_id, data)
    task.created_at = CREATED
    db.commit()
    return task


class TestPlanner:
    def test_rejects_bad_task_definitions(self, db, user_id):
        with pytest.raises(InvalidInput):
            PlannerService.create_task(db, user_id, {"name": "Run", "completion_type": "count"})
        with pytest.raises(InvalidInput):
            PlannerService.create_task(db, user_id, {"name": "Run", "completion_type": "sprint"})
        with pytest.raises(InvalidInput):
            PlannerService.create_task(db, user_id, {"name": "Run", "flexibility_rule": "window",
                                                     "window_start": 3, "window_end": 1})
        with pytest.raises(InvalidInput):
            PlannerService.create_task(db, user_id, {"name": "Run", "frequency": "custom", "custom_days": [7]})

    def test_unknown_task_is_not_found(self, db, user_id):
        with pytest.raises(NotFound):
            PlannerService.get_task(db, user_id, 999)

    def test_archive_removes_task_from_scoring(self, db, user_id, checkbox_task):
        PlannerService.archive_task(db, user_id, checkbox_task.id)
        assert ScoringService.compute_daily_score(db, user_id, DAY)["total_tasks"] == 0


class TestDailyScore:
    def test_completed_checkbox_is_legendary(self, db, user_id, checkbox_task):
        result = ScoringService.record_completion(db, user_id, checkbox_task.id, DAY, completed=True)
        assert result["points_earned"] == 10
        score = result["daily_score"]
        assert score["action_score"] == 100
        assert score["score_tier"] == "LEGENDARY"
        assert score["is_passing"] is True

    def test_compute_is_idempotent(self, db, user_id, checkbox_task):
        ScoringService.record_completion(db, user_id, checkbox_task.id, DAY, completed=True)
        first = ScoringService.compute_daily_score(db, user_id, DAY)
        second = ScoringService.compute_daily_score(db, user_id, DAY)
        assert first == second

    def test_undo_returns_points_to_zero(self, db, user_id, checkbox_task):
        ScoringService.record_completion(db, user_id, checkbox_task.id, DAY, completed=True)
        result = ScoringService.undo_completion(db, user_id, checkbox_task.id, DAY)
        assert result["points_earned"] == 0
        assert result["completed"] is False
        assert result["daily_score"]["action_score"] == 0
        actions = [a["action"] for a in ScoringService.get_activity(db, user_id, DAY)]
        assert actions == ["complete", "reverse"]

    def test_undo_without_completion(self, db, user_id, checkbox_task):
        with pytest.raises(InvalidInput):
            ScoringService.undo_completion(db, user_id, checkbox_task.id, DAY)

    def test_repeated_completion_updates_one_row(self, db, user_id, pillar):
        task = new_task(db, user_id, {
            "name": "Pushups", "pillar_id": pillar.id, "completion_type": "count", "target": 20,
        })
        ScoringService.record_completion(db, user_id, task.id, DAY, value=10)
        result = ScoringService.record_completion(db, user_id, task.id, DAY, value=15)
        assert result["points_earned"] == pytest.approx(7.5)
        assert result["daily_score"]["action_score"] == 75.0
        assert [a["action"] for a in ScoringService.get_activity(db, user_id, DAY)] == ["complete", "add"]

    def test_negative_value_rejected(self, db, user_id, checkbox_task):
        with pytest.raises(InvalidInput):
            ScoringService.record_completion(db, user_id, checkbox_task.id, DAY, value=-1)

    def test_weekend_threshold_applies(self, db, user_id, pillar):
        task = new_task(db, user_id, {
            "name": "Pages", "pillar_id": pillar.id, "completion_type": "count", "target": 10,
        })
        SettingsService.update(db, user_id, {"weekend_pass_threshold": 50})
        saturday = date(2024, 1, 6)
        result = ScoringService.record_completion(db, user_id, task.id, saturday, value=6)
        assert result["daily_score"]["is_passing"] is True
        monday = ScoringService.record_completion(db, user_id, task.id, DAY, value=6)
        assert monday["daily_score"]["is_passing"] is False

    def test_carryover_task_stays_due_until_done(self, db, user_id, pillar):
        task = new_task(db, user_id, {
            "name": "Review budget", "pillar_id": pillar.id, "frequency": "weekly",
            "weekly_day": 1, "flexibility_rule": "carryover",
        })

        due = ScoringService.get_due_tasks(db, user_id, date(2024, 1, 3))
        assert [d["status"]["carried_over"] for d in due] == [True]

        ScoringService.record_completion(db, user_id, task.id, date(2024, 1, 3), completed=True)
        assert ScoringService.get_due_tasks(db, user_id, date(2024, 1, 4)) == []

    def test_window_task_scored_once(self, db, user_id, pillar):
        task = new_task(db, user_id, {
            "name": "Long run", "pillar_id": pillar.id, "frequency": "weekly", "weekly_day": 1,
            "flexibility_rule": "window", "window_start": 0, "window_end": 2,
        })
        assert ScoringService.compute_daily_score(db, user_id, DAY)["total_tasks"] == 0
        ScoringService.record_completion(db, user_id, task.id, date(2024, 1, 2), completed=True)
        assert ScoringService.compute_daily_score(db, user_id, date(2024, 1, 2))["action_score"] == 100
        assert ScoringService.compute_daily_score(db, user_id, date(2024, 1, 3))["total_tasks"] == 0


class TestCloseDay:
    def close_with(self, db, user_id, task_id, d, done):
        if done:
            ScoringService.record_completion(db, user_id, task_id, d, completed=True)
        return ScoringService.close_day(db, user_id, d, today=TODAY)

    def test_streak_and_xp(self, db, user_id, checkbox_task):
        for i in range(3):
            result = self.close_with(db, user_id, checkbox_task.id, DAY + timedelta(days=i), True)
        assert result["current_streak"] == 3
        assert result["total_xp"] == 306

        result = self.close_with(db, user_id, checkbox_task.id, DAY + timedelta(days=3), False)
        assert result["current_streak"] == 0
        assert result["best_streak"] == 3
        assert result["total_xp"] == 306
        assert result["level_info"]["level"] == 3

    def test_closing_twice_keeps_xp(self, db, user_id, checkbox_task):
        first = self.close_with(db, user_id, checkbox_task.id, DAY, True)
        second = ScoringService.close_day(db, user_id, DAY, today=TODAY)
        assert first["total_xp"] == second["total_xp"] == 100
        assert second["day"]["xp_earned"] == 100

    def test_closed_day_is_locked(self, db, user_id, checkbox_task):
        self.close_with(db, user_id, checkbox_task.id, DAY, False)
        with pytest.raises(InvalidInput):
            ScoringService.record_completion(db, user_id, checkbox_task.id, DAY, completed=True)

    def test_future_day_cannot_close(self, db, user_id):
        with pytest.raises(InvalidInput):
            ScoringService.close_day(db, user_id, TODAY + timedelta(days=1), today=TODAY)

    def test_stats_default(self, db, user_id):
        stats = ScoringService.get_user_stats(db, user_id)
        assert stats["total_xp"] == 0
        assert stats["level_info"]["title"] == "Beginner"


class TestTimer:
    def test_stop_records_elapsed_minutes(self, db, user_id, pillar):
        task = new_task(db, user_id, {
            "name": "Meditate", "pillar_id": pillar.id, "completion_type": "duration", "target": 60,
        })
        start = datetime(2024, 1, 1, 7, 0, tzinfo=timezone.utc)
        ScoringService.start_timer(db, user_id, task.id, now=start)
        with pytest.raises(InvalidInput):
            ScoringService.start_timer(db, user_id, task.id, now=start)

        result = ScoringService.stop_timer(db, user_id, task.id, on_date=DAY, now=start + timedelta(minutes=30))
        assert result["elapsed_minutes"] == 30.0
        assert result["value"] == 30.0
        assert result["points_earned"] == pytest.approx(5.0)

        with pytest.raises(NotFound):
            ScoringService.stop_timer(db, user_id, task.id, on_date=DAY)

    def test_timer_needs_duration_task(self, db, user_id, checkbox_task):
        with pytest.raises(InvalidInput):
            ScoringService.start_timer(db, user_id, checkbox_task.id)


class TestCycles:
    @pytest.fixture
    def cycle(self, db, user_id):
        return CycleService.create_cycle(db, user_id, {"name": "Q1", "start_date": "2024-01-01"})

    def test_goal_is_distributed_evenly(self, db, user_id, cycle):
        goal = CycleService.create_goal(db, user_id, cycle.id, {"name": "Workouts", "target_value": 84})
        targets = goal["weekly_targets"]
        assert len(targets) == 12
        assert {t["target_value"] for t in targets} == {7}

    def test_override_keeps_other_weeks(self, db, user_id, cycle):
        goal = CycleService.create_goal(db, user_id, cycle.id, {"name": "Workouts", "target_value": 84})
        CycleService.save_weekly_review(db, user_id, cycle.id, 5,
                                        overrides=[{"goal_id": goal["id"], "target_value": 14}])
        targets = CycleService.distribute_weekly_targets(db, user_id, goal["id"])
        by_week = {t["week_number"]: t["target_value"] for t in targets}
        assert by_week[5] == 14
        assert all(v == 7 for w, v in by_week.items() if w != 5)

    def test_review_scores_weeks_and_feeds_analytics(self, db, user_id, cycle):
        goal = CycleService.create_goal(db, user_id, cycle.id, {"name": "Workouts", "target_value": 120})
        for week_number, actual in enumerate([11, 10, 6, 2], start=1):
            result = CycleService.save_weekly_review(
                db, user_id, cycle.id, week_number,
                actuals=[{"goal_id": goal["id"], "actual_value": actual}],
                review={"wins": f"week {week_number}"},
            )
        scores = [t["score"] for t in result["weekly_targets"][:4]]
        assert scores == ["exceeded", "good", "partial", "missed"]
        assert result["review"]["wins"] == "week 4"
        assert CycleService.get_goal(db, user_id, goal["id"]).current_value == 29

        analytics = CycleService.cycle_analytics(db, user_id, cycle.id, current_week=4)
        assert analytics["total_reviewed_weeks"] == 4
        assert analytics["consistent_weeks"] == 2
        assert analytics["pace"] == "behind"

    def test_redistribution_applies_deficit_once(self, db, user_id, cycle):
        goal = CycleService.create_goal(db, user_id, cycle.id, {"name": "Pages", "target_value": 120})
        actual = [{"goal_id": goal["id"], "actual_value": 4}]
        CycleService.save_weekly_review(db, user_id, cycle.id, 1, actuals=actual, redistribute=True)
        result = CycleService.save_weekly_review(db, user_id, cycle.id, 1, actuals=actual, redistribute=True)
        week2 = result["weekly_targets"][1]
        assert week2["target_value"] == pytest.approx(10 + 6 / 11, abs=1e-3)

    def test_week_out_of_range(self, db, user_id, cycle):
        with pytest.raises(InvalidInput):
            CycleService.save_weekly_review(db, user_id, cycle.id, 13)

    def test_end_before_start_rejected(self, db, user_id):
        with pytest.raises(InvalidInput):
            CycleService.create_cycle(db, user_id, {"name": "x", "start_date": "2024-02-01",
                                                    "end_date": "2024-01-01"})

    def test_tactics(self, db, user_id, cycle):
        goal = CycleService.create_goal(db, user_id, cycle.id, {"name": "Workouts", "target_value": 12})
        tactic = CycleService.create_tactic(db, user_id, goal["id"], {"title": "Book gym slots", "week_number": 1})
        CycleService.set_tactic_done(db, user_id, tactic.id, True)
        assert [t.is_done for t in CycleService.get_tactics(db, user_id, goal["id"])] == [True]


def test_weekly_reports_are_upserted(db, user_id, checkbox_task):
    ScoringService.record_completion(db, user_id, checkbox_task.id, DAY, completed=True)
    today = DAY + timedelta(days=2)
    first = ReportService.run_reports(db, "weekly", today=today)
    second = ReportService.run_reports(db, "weekly", today=today)
    assert first["generated"] == second["generated"] == 1
    reports = ReportService.list_reports(db, user_id)
    assert len(reports) == 1
    assert reports[0]["data"]["summary"]["avg_score"] == 100.0

    with pytest.raises(InvalidInput):
        ReportService.run_reports(db, "yearly")


def test_task_created_later_leaves_earlier_day_alone(db, user_id, pillar, checkbox_task):
    ScoringService.record_completion(db, user_id, checkbox_task.id, DAY, completed=True)
    PlannerService.create_task(db, user_id, {"name": "New habit", "pillar_id": pillar.id})

    result = ScoringService.close_day(db, user_id, DAY, today=TODAY)
    assert result["day"]["action_score"] == 100
    assert result["day"]["is_passing"] is True
    assert result["current_streak"] == 1


def test_second_completion_in_window_scores_nothing(db, user_id, pillar):
    task = new_task(db, user_id, {
        "name": "Long run", "pillar_id": pillar.id, "frequency": "weekly", "weekly_day": 1,
        "flexibility_rule": "window", "window_start": 0, "window_end": 3,
    })
    ScoringService.record_completion(db, user_id, task.id, date(2024, 1, 2), completed=True)
    result = ScoringService.record_completion(db, user_id, task.id, date(2024, 1, 3), completed=True)
    assert result["daily_score"]["total_tasks"] == 0
    assert ScoringService.compute_daily_score(db, user_id, date(2024, 1, 2))["total_tasks"] == 1


def test_rescoring_a_closed_day_replays_stats(db, user_id, pillar, checkbox_task):
    other = new_task(db, user_id, {"name": "Journal", "pillar_id": pillar.id, "base_points": 10})
    ScoringService.record_completion(db, user_id, checkbox_task.id, DAY, completed=True)
    closed = ScoringService.close_day(db, user_id, DAY, today=TODAY)
    assert closed["total_xp"] == 50
    assert closed["current_streak"] == 0

    PlannerService.archive_task(db, user_id, other.id)
    score = ScoringService.compute_daily_score(db, user_id, DAY)
    assert score["action_score"] == 100
    assert score["xp_earned"] == 100

    stats = ScoringService.get_user_stats(db, user_id)
    assert stats["total_xp"] == 100
    assert stats["current_streak"] == 1


def test_invalid_review_amount_changes_nothing(db, user_id):
    cycle = CycleService.create_cycle(db, user_id, {"name": "Q1", "start_date": "2024-01-01"})
    goal = CycleService.create_goal(db, user_id, cycle.id, {"name": "Workouts", "target_value": 84})

    with pytest.raises(InvalidInput):
        CycleService.save_weekly_review(
            db, user_id, cycle.id, 1,
            actuals=[{"goal_id": goal["id"], "actual_value": 5}],
            overrides=[{"goal_id": goal["id"], "target_value": -1}],
        )
    db.rollback()

    week1 = CycleService.get_weekly_targets(db, user_id, cycle.id)[0]
    assert week1["actual_value"] == 0
    assert week1["score"] is None
    assert week1["target_value"] == 7
    assert CycleService.get_reviews(db, user_id, cycle.id) == []
