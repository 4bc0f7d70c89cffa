"""
scoring_service.py — Daily track: completions, Action Score, streaks & XP
Loads a user's tasks, pillars and completions, hands them to the engine and
persists what comes back. DailyScore and UserStats are caches: every method
here recomputes them from TaskCompletion history, so calling twice is safe.
"""

import logging
import math
from dataclasses import asdict
from datetime import date, datetime, timedelta, timezone

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from actionscore.config import CARRYOVER_LOOKBACK_DAYS, LOCK_CLOSED_DAYS, WEEKLY_DEFAULT_DAY
from actionscore.engine.completion import elapsed_minutes, infer_completed, score_completion, score_task
from actionscore.engine.daily import ScoredTask, aggregate_day
from actionscore.engine.enums import CompletionType, FlexibilityRule
from actionscore.engine.progression import DayResult, level_info, replay
from actionscore.engine.recurrence import resolve
from actionscore.errors import InvalidInput, NotFound
from actionscore.models.activity_log import ActivityLog
from actionscore.models.daily_score import DailyScore
from actionscore.models.task import Task
from actionscore.models.task_completion import TaskCompletion
from actionscore.models.task_timer import TaskTimer
from actionscore.models.user_stats import UserStats
from actionscore.services.planner_service import PlannerService
from actionscore.services.settings_service import SettingsService

logger = logging.getLogger(__name__)


def _history_days(tasks: list[Task]) -> int:
    """How many days of completions the resolver needs to look at."""
    days = CARRYOVER_LOOKBACK_DAYS
    for t in tasks:
        if t.flexibility_rule == FlexibilityRule.WINDOW.value:
            days = max(days, abs(t.window_start or 0) + abs(t.window_end or 0))
    return days


class ScoringService:
    # --- Due status ---

    @staticmethod
    def _completed_dates(db: Session, task_ids: list[int], start: date, end: date) -> dict:
        if not task_ids:
            return {}
        rows = db.query(TaskCompletion.task_id, TaskCompletion.date).filter(
            TaskCompletion.task_id.in_(task_ids),
            TaskCompletion.completed.is_(True),
            TaskCompletion.date >= start,
            TaskCompletion.date <= end,
        ).all()
        result: dict = {}
        for task_id, d in rows:
            result.setdefault(task_id, set()).add(d)
        return result

    @staticmethod
    def resolve_day(db: Session, user_id: int, on_date: date) -> list[tuple]:
        """(task, DueStatus) for every active task of the user."""
        tasks = PlannerService.get_tasks(db, user_id)
        history = ScoringService._completed_dates(
            db, [t.id for t in tasks], on_date - timedelta(days=_history_days(tasks)), on_date
        )
        return [
            (t, resolve(
                t, on_date, history.get(t.id, ()),
                default_weekly_day=WEEKLY_DEFAULT_DAY,
                carryover_lookback_days=CARRYOVER_LOOKBACK_DAYS,
            ))
            for t in tasks
        ]

    @staticmethod
    def get_due_tasks(db: Session, user_id: int, on_date: date) -> list[dict]:
        completions = ScoringService._completions_on(db, user_id, on_date)
        result = []
        for task, status in ScoringService.resolve_day(db, user_id, on_date):
            if not status.due:
                continue
            completion = completions.get(task.id)
            result.append({
                "task": task.to_dict(),
                "status": status.to_dict(),
                "completion": completion.to_dict() if completion else None,
            })
        return result

    @staticmethod
    def _completions_on(db: Session, user_id: int, on_date: date) -> dict:
        rows = db.query(TaskCompletion).filter_by(user_id=user_id, date=on_date).all()
        return {c.task_id: c for c in rows}

    # --- Daily score ---

    @staticmethod
    def compute_daily_score(db: Session, user_id: int, on_date: date) -> dict:
        """ComputeDailyScore: recompute, cache and return the day's score."""
        completions = ScoringService._completions_on(db, user_id, on_date)
        entries = []
        for task, status in ScoringService.resolve_day(db, user_id, on_date):
            if not status.scored:
                continue
            completion = completions.get(task.id)
            entries.append(ScoredTask(
                task_id=task.id,
                pillar_id=task.pillar_id,
                base_points=task.base_points or 0,
                points_earned=score_task(task, completion),
                completed=bool(completion and completion.completed),
            ))

        pillars = PlannerService.get_pillars(db, user_id)
        threshold = SettingsService.pass_threshold(db, user_id, on_date)
        day = aggregate_day(entries, pillars, threshold)

        previous = db.query(DailyScore).filter_by(user_id=user_id, date=on_date).first()
        frozen = (previous.action_score, previous.is_passing) if previous and previous.closed_at else None

        row = ScoringService._upsert_daily_score(db, user_id, on_date, day)
        if frozen is not None and frozen != (row.action_score, row.is_passing):
            # A closed day moved: streaks and XP downstream of it are stale
            try:
                ScoringService._replay_stats(db, user_id)
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Failed to replay stats for user {user_id} after {on_date} changed: {e}")
                raise
            db.refresh(row)
            logger.info(f"Closed day {on_date} for user {user_id} rescored {frozen[0]} -> {row.action_score}")
        result = {"date": on_date.isoformat()}
        result.update(day.to_dict())
        result["xp_earned"] = row.xp_earned
        result["closed"] = row.closed_at is not None
        return result

    @staticmethod
    def _upsert_daily_score(db: Session, user_id: int, on_date: date, day) -> DailyScore:
        values = {
            "action_score": day.action_score,
            "score_tier": day.score_tier,
            "pillar_scores": [asdict(ps) for ps in day.pillar_scores],
            "total_tasks": day.total_tasks,
            "completed_tasks": day.completed_tasks,
            "is_passing": day.is_passing,
        }
        try:
            row = db.query(DailyScore).filter_by(user_id=user_id, date=on_date).first()
            if row is None:
                try:
                    with db.begin_nested():
                        row = DailyScore(user_id=user_id, date=on_date, **values)
                        db.add(row)
                except IntegrityError:
                    # Lost the insert race; the row exists now
                    row = db.query(DailyScore).filter_by(user_id=user_id, date=on_date).one()
            for k, v in values.items():
                setattr(row, k, v)
            db.commit()
            db.refresh(row)
            return row
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to store daily score for user {user_id} on {on_date}: {e}")
            raise

    @staticmethod
    def get_history(db: Session, user_id: int, start: date, end: date) -> list[dict]:
        if start > end:
            raise InvalidInput("start must not be after end")
        rows = db.query(DailyScore).filter(
            DailyScore.user_id == user_id,
            DailyScore.date >= start,
            DailyScore.date <= end,
        ).order_by(DailyScore.date).all()
        return [r.to_dict() for r in rows]

    # --- Completions ---

    @staticmethod
    def _ensure_open(db: Session, user_id: int, on_date: date):
        if not LOCK_CLOSED_DAYS:
            return
        closed = db.query(DailyScore).filter(
            DailyScore.user_id == user_id,
            DailyScore.date == on_date,
            DailyScore.closed_at.isnot(None),
        ).first()
        if closed:
            raise InvalidInput(f"{on_date.isoformat()} is already closed")

    @staticmethod
    def record_completion(
        db: Session,
        user_id: int,
        task_id: int,
        on_date: date,
        completed: bool | None = None,
        value: float | None = None,
        source: str = "manual",
    ) -> dict:
        """RecordCompletion: upsert the (task, date) row and rescore the day."""
        task = PlannerService.get_task(db, user_id, task_id)
        ScoringService._ensure_open(db, user_id, on_date)
        if value is not None and (not math.isfinite(value) or value < 0):
            raise InvalidInput("value must be a finite, non-negative number")

        is_completed = infer_completed(task.completion_type, value, completed)
        if value is None:
            is_checkbox = task.completion_type == CompletionType.CHECKBOX.value
            value = (1.0 if is_completed else 0.0) if is_checkbox else 0.0
        points = score_completion(
            task.completion_type, task.base_points, value, is_completed,
            task.target, task.flexibility_rule, task.limit_value,
        )

        try:
            existing = db.query(TaskCompletion).filter_by(task_id=task_id, date=on_date).first()
            if existing is None:
                try:
                    with db.begin_nested():
                        existing = TaskCompletion(task_id=task_id, user_id=user_id, date=on_date,
                                                  completed=False, value=None, points_earned=0)
                        db.add(existing)
                    previous_value, points_before, is_new = None, 0.0, True
                except IntegrityError:
                    existing = db.query(TaskCompletion).filter_by(task_id=task_id, date=on_date).one()
                    previous_value, points_before, is_new = existing.value, existing.points_earned, False
            else:
                previous_value, points_before, is_new = existing.value, existing.points_earned, False

            existing.completed = is_completed
            existing.value = value
            existing.points_earned = points
            existing.completed_at = datetime.now(timezone.utc) if is_completed else None

            if is_new:
                action = "complete"
            elif value > (previous_value or 0):
                action = "add"
            elif value < (previous_value or 0):
                action = "subtract"
            else:
                action = "adjust"

            db.add(ActivityLog(
                user_id=user_id,
                task_id=task.id,
                pillar_id=task.pillar_id,
                date=on_date,
                action=action,
                previous_value=previous_value,
                new_value=value,
                delta=value - (previous_value or 0),
                points_before=points_before,
                points_after=points,
                points_delta=points - points_before,
                source=source,
            ))
            db.commit()
            db.refresh(existing)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to record completion of task {task_id} on {on_date}: {e}")
            raise

        logger.info(f"Task {task_id} {action} on {on_date}: {points_before} -> {points} points")
        result = existing.to_dict()
        result["daily_score"] = ScoringService.compute_daily_score(db, user_id, on_date)
        return result

    @staticmethod
    def undo_completion(db: Session, user_id: int, task_id: int, on_date: date) -> dict:
        """UndoCompletion: reset the (task, date) row and rescore the day."""
        task = PlannerService.get_task(db, user_id, task_id)
        ScoringService._ensure_open(db, user_id, on_date)

        existing = db.query(TaskCompletion).filter_by(task_id=task_id, date=on_date).first()
        if not existing or (not existing.completed and not existing.value):
            raise InvalidInput("No completion to undo")

        try:
            last_log = db.query(ActivityLog).filter_by(
                task_id=task_id, user_id=user_id, date=on_date
            ).order_by(ActivityLog.id.desc()).first()

            previous_value, points_before = existing.value, existing.points_earned
            existing.completed = False
            existing.value = 0.0
            existing.completed_at = None
            existing.points_earned = score_task(task, existing)

            db.add(ActivityLog(
                user_id=user_id,
                task_id=task.id,
                pillar_id=task.pillar_id,
                date=on_date,
                action="reverse",
                previous_value=previous_value,
                new_value=0.0,
                delta=-(previous_value or 0),
                points_before=points_before,
                points_after=existing.points_earned,
                points_delta=existing.points_earned - points_before,
                source="manual",
                reversal_of=last_log.id if last_log else None,
            ))
            db.commit()
            db.refresh(existing)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to undo completion of task {task_id} on {on_date}: {e}")
            raise

        result = existing.to_dict()
        result["daily_score"] = ScoringService.compute_daily_score(db, user_id, on_date)
        return result

    @staticmethod
    def get_activity(db: Session, user_id: int, on_date: date) -> list[dict]:
        rows = db.query(ActivityLog).filter_by(user_id=user_id, date=on_date).order_by(ActivityLog.id).all()
        return [r.to_dict() for r in rows]

    # --- Duration timers ---

    @staticmethod
    def start_timer(db: Session, user_id: int, task_id: int, now: datetime | None = None) -> dict:
        task = PlannerService.get_task(db, user_id, task_id)
        if task.completion_type != CompletionType.DURATION.value:
            raise InvalidInput("Timers are only available for duration tasks")
        if db.query(TaskTimer).filter_by(task_id=task_id).first():
            raise InvalidInput("Timer already running")
        try:
            timer = TaskTimer(task_id=task_id, user_id=user_id, started_at=now or datetime.now(timezone.utc))
            db.add(timer)
            db.commit()
            db.refresh(timer)
            return timer.to_dict()
        except IntegrityError:
            db.rollback()
            raise InvalidInput("Timer already running")

    @staticmethod
    def stop_timer(
        db: Session,
        user_id: int,
        task_id: int,
        on_date: date | None = None,
        now: datetime | None = None,
    ) -> dict:
        """Reduce the running timer to minutes and add them to the day's value."""
        PlannerService.get_task(db, user_id, task_id)
        timer = db.query(TaskTimer).filter_by(task_id=task_id, user_id=user_id).first()
        if not timer:
            raise NotFound(f"No running timer for task {task_id}")

        now = now or datetime.now(timezone.utc)
        on_date = on_date or now.date()
        minutes = elapsed_minutes(timer.started_at, now)
        existing = db.query(TaskCompletion).filter_by(task_id=task_id, date=on_date).first()
        total = round((existing.value or 0) + minutes, 2) if existing else minutes

        result = ScoringService.record_completion(
            db, user_id, task_id, on_date, value=total, source="timer"
        )
        try:
            db.delete(timer)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise
        result["elapsed_minutes"] = minutes
        return result

    # --- Day close, streaks & XP ---

    @staticmethod
    def close_day(db: Session, user_id: int, on_date: date, today: date | None = None) -> dict:
        """CloseDay: freeze the day's score and replay streak/XP over every closed day."""
        today = today or datetime.now(timezone.utc).date()
        if on_date > today:
            raise InvalidInput("Cannot close a day that has not happened yet")

        score = ScoringService.compute_daily_score(db, user_id, on_date)
        try:
            row = db.query(DailyScore).filter_by(user_id=user_id, date=on_date).one()
            if row.closed_at is None:
                row.closed_at = datetime.now(timezone.utc)
            stats_row = ScoringService._replay_stats(db, user_id)
            db.refresh(row)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to close {on_date} for user {user_id}: {e}")
            raise

        logger.info(
            f"Closed {on_date} for user {user_id}: score={score['action_score']} "
            f"passing={score['is_passing']} xp={row.xp_earned} streak={stats_row.current_streak}"
        )
        result = stats_row.to_dict()
        result["level_info"] = level_info(stats_row.total_xp).to_dict()
        result["day"] = row.to_dict()
        return result

    @staticmethod
    def _replay_stats(db: Session, user_id: int) -> UserStats:
        """Rebuild UserStats and per-day XP from every closed day, then commit."""
        closed = db.query(DailyScore).filter(
            DailyScore.user_id == user_id,
            DailyScore.closed_at.isnot(None),
        ).order_by(DailyScore.date).all()

        stats, earned = replay(
            DayResult(date=r.date, action_score=r.action_score, is_passing=r.is_passing)
            for r in closed
        )
        for r, xp in zip(closed, earned):
            r.xp_earned = xp

        stats_row = ScoringService._stats_row(db, user_id)
        stats_row.total_xp = stats.total_xp
        stats_row.level = stats.level
        stats_row.level_title = stats.level_title
        stats_row.current_streak = stats.current_streak
        stats_row.best_streak = stats.best_streak
        stats_row.last_closed_date = stats.last_closed_date
        db.commit()
        db.refresh(stats_row)
        return stats_row

    @staticmethod
    def _stats_row(db: Session, user_id: int) -> UserStats:
        row = db.query(UserStats).filter_by(user_id=user_id).first()
        if row is None:
            try:
                with db.begin_nested():
                    row = UserStats(user_id=user_id, total_xp=0, level=1, level_title="Beginner",
                                    current_streak=0, best_streak=0)
                    db.add(row)
            except IntegrityError:
                row = db.query(UserStats).filter_by(user_id=user_id).one()
        return row

    @staticmethod
    def get_user_stats(db: Session, user_id: int) -> dict:
        row = db.query(UserStats).filter_by(user_id=user_id).first()
        if row:
            result = row.to_dict()
        else:
            result = {"total_xp": 0, "level": 1, "level_title": "Beginner",
                      "current_streak": 0, "best_streak": 0, "last_closed_date": None}
        result["level_info"] = level_info(result["total_xp"]).to_dict()
        return result
