"""
cycle_service.py — Goal cycles
Cycles, their goals and tactics, weekly target distribution, weekly reviews
(scoring each goal-week) and cycle analytics.
"""

import logging
import math
from datetime import date, datetime, timezone

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from actionscore.engine.analytics import compute_cycle_analytics
from actionscore.engine.cycles import (
    current_week_number,
    default_end_date,
    distribute_targets,
    is_reviewed,
    redistribute_deficit,
    score_week,
    total_weeks,
)
from actionscore.errors import InvalidInput, NotFound
from actionscore.models.cycle import Cycle
from actionscore.models.goal import Goal
from actionscore.models.tactic import Tactic
from actionscore.models.weekly_review import WeeklyReview
from actionscore.models.weekly_target import WeeklyTarget
from actionscore.services.planner_service import parse_date

logger = logging.getLogger(__name__)


def _check_amount(value, field: str) -> float:
    if value is None or not math.isfinite(value) or value < 0:
        raise InvalidInput(f"{field} must be a finite, non-negative number")
    return float(value)


class CycleService:
    # --- Cycles ---

    @staticmethod
    def create_cycle(db: Session, user_id: int, data: dict) -> Cycle:
        if not data.get("name"):
            raise InvalidInput("name is required")
        start = parse_date(data.get("start_date"), "start_date")
        end = parse_date(data["end_date"], "end_date") if data.get("end_date") else default_end_date(start)
        if end <= start:
            raise InvalidInput("end_date must be after start_date")
        try:
            cycle = Cycle(
                user_id=user_id,
                name=data["name"],
                vision=data.get("vision"),
                theme=data.get("theme"),
                start_date=start,
                end_date=end,
            )
            db.add(cycle)
            db.commit()
            db.refresh(cycle)
            return cycle
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to create cycle for user {user_id}: {e}")
            raise

    @staticmethod
    def get_cycles(db: Session, user_id: int) -> list[Cycle]:
        return db.query(Cycle).filter_by(user_id=user_id).order_by(Cycle.start_date.desc()).all()

    @staticmethod
    def get_cycle(db: Session, user_id: int, cycle_id: int) -> Cycle:
        cycle = db.query(Cycle).filter_by(id=cycle_id, user_id=user_id).first()
        if not cycle:
            raise NotFound(f"Cycle {cycle_id} not found")
        return cycle

    # --- Goals ---

    @staticmethod
    def create_goal(db: Session, user_id: int, cycle_id: int, data: dict) -> dict:
        cycle = CycleService.get_cycle(db, user_id, cycle_id)
        if not data.get("name"):
            raise InvalidInput("name is required")
        target = _check_amount(data.get("target_value"), "target_value")
        try:
            goal = Goal(
                cycle_id=cycle.id,
                user_id=user_id,
                name=data["name"],
                target_value=target,
                current_value=data.get("current_value") or 0.0,
                unit=data.get("unit"),
                linked_outcome_id=data.get("linked_outcome_id"),
            )
            db.add(goal)
            db.commit()
            db.refresh(goal)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to create goal in cycle {cycle_id}: {e}")
            raise

        result = goal.to_dict()
        result["weekly_targets"] = CycleService.distribute_weekly_targets(db, user_id, goal.id)
        return result

    @staticmethod
    def get_goals(db: Session, user_id: int, cycle_id: int) -> list[Goal]:
        CycleService.get_cycle(db, user_id, cycle_id)
        return db.query(Goal).filter_by(cycle_id=cycle_id, user_id=user_id).order_by(Goal.id).all()

    @staticmethod
    def get_goal(db: Session, user_id: int, goal_id: int) -> Goal:
        goal = db.query(Goal).filter_by(id=goal_id, user_id=user_id).first()
        if not goal:
            raise NotFound(f"Goal {goal_id} not found")
        return goal

    @staticmethod
    def update_goal(db: Session, user_id: int, goal_id: int, data: dict) -> dict:
        goal = CycleService.get_goal(db, user_id, goal_id)
        for field in ("current_value", "target_value"):
            if data.get(field) is not None:
                _check_amount(data[field], field)
        try:
            if data.get("name"):
                goal.name = data["name"]
            if "unit" in data:
                goal.unit = data["unit"]
            if "linked_outcome_id" in data:
                goal.linked_outcome_id = data["linked_outcome_id"]
            if data.get("current_value") is not None:
                goal.current_value = float(data["current_value"])
            retarget = data.get("target_value") is not None
            if retarget:
                goal.target_value = float(data["target_value"])
            db.commit()
            db.refresh(goal)
        except SQLAlchemyError:
            db.rollback()
            raise
        result = goal.to_dict()
        if retarget:
            result["weekly_targets"] = CycleService.distribute_weekly_targets(db, user_id, goal.id)
        return result

    # --- Weekly targets ---

    @staticmethod
    def _targets_for_goal(db: Session, goal_id: int) -> list[WeeklyTarget]:
        return db.query(WeeklyTarget).filter_by(goal_id=goal_id).order_by(WeeklyTarget.week_number).all()

    @staticmethod
    def distribute_weekly_targets(db: Session, user_id: int, goal_id: int) -> list[dict]:
        """DistributeWeeklyTargets: even split, leaving overridden/reviewed weeks alone."""
        goal = CycleService.get_goal(db, user_id, goal_id)
        cycle = CycleService.get_cycle(db, user_id, goal.cycle_id)
        weeks = total_weeks(cycle.start_date, cycle.end_date)

        try:
            existing = CycleService._targets_for_goal(db, goal.id)
            by_week = {row.week_number: row for row in existing}
            for planned in distribute_targets(goal.target_value, weeks, existing):
                if planned.locked:
                    continue
                row = by_week.get(planned.week_number)
                if row is None:
                    try:
                        with db.begin_nested():
                            row = WeeklyTarget(
                                goal_id=goal.id,
                                cycle_id=cycle.id,
                                user_id=user_id,
                                week_number=planned.week_number,
                                target_value=planned.target_value,
                                actual_value=0.0,
                                is_overridden=False,
                            )
                            db.add(row)
                    except IntegrityError:
                        row = db.query(WeeklyTarget).filter_by(
                            goal_id=goal.id, week_number=planned.week_number
                        ).one()
                        if row.is_overridden or is_reviewed(row):
                            continue
                row.target_value = planned.target_value

            for row in existing:
                if row.week_number > weeks and not row.is_overridden and not is_reviewed(row):
                    db.delete(row)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to distribute targets for goal {goal_id}: {e}")
            raise

        logger.info(f"Distributed goal {goal.id} target {goal.target_value} over {weeks} weeks")
        return [row.to_dict() for row in CycleService._targets_for_goal(db, goal.id)]

    @staticmethod
    def get_weekly_targets(db: Session, user_id: int, cycle_id: int) -> list[dict]:
        CycleService.get_cycle(db, user_id, cycle_id)
        rows = db.query(WeeklyTarget).filter_by(cycle_id=cycle_id, user_id=user_id).order_by(
            WeeklyTarget.goal_id, WeeklyTarget.week_number
        ).all()
        return [r.to_dict() for r in rows]

    @staticmethod
    def save_weekly_review(
        db: Session,
        user_id: int,
        cycle_id: int,
        week_number: int,
        actuals: list[dict] = (),
        overrides: list[dict] = (),
        review: dict | None = None,
        redistribute: bool = False,
    ) -> dict:
        """SaveWeeklyReview: apply overrides and actuals, score the week, store notes."""
        cycle = CycleService.get_cycle(db, user_id, cycle_id)
        weeks = total_weeks(cycle.start_date, cycle.end_date)
        if not 1 <= week_number <= weeks:
            raise InvalidInput(f"week_number must be between 1 and {weeks}")

        goals = {g.id: g for g in CycleService.get_goals(db, user_id, cycle_id)}
        for item in list(actuals) + list(overrides):
            if item["goal_id"] not in goals:
                raise NotFound(f"Goal {item['goal_id']} not found in cycle {cycle_id}")

        override_values = [_check_amount(item.get("target_value"), "target_value") for item in overrides]
        actual_values = [_check_amount(item.get("actual_value"), "actual_value") for item in actuals]

        affected = {item["goal_id"] for item in list(actuals) + list(overrides)}
        for goal_id in affected:
            if not db.query(WeeklyTarget).filter_by(goal_id=goal_id, week_number=week_number).first():
                CycleService.distribute_weekly_targets(db, user_id, goal_id)

        now = datetime.now(timezone.utc)
        try:
            def target_row(goal_id: int) -> WeeklyTarget:
                return db.query(WeeklyTarget).filter_by(goal_id=goal_id, week_number=week_number).one()

            for item, value in zip(overrides, override_values):
                row = target_row(item["goal_id"])
                row.target_value = value
                row.is_overridden = True
                if row.score is not None:
                    row.score = score_week(row.actual_value, row.target_value).value

            for item, value in zip(actuals, actual_values):
                row = target_row(item["goal_id"])
                row.actual_value = value
                row.score = score_week(row.actual_value, row.target_value).value
                row.reviewed_at = now
            db.flush()

            for goal_id in sorted(affected):
                rows = CycleService._targets_for_goal(db, goal_id)
                if redistribute:
                    by_week = {r.week_number: r for r in rows}
                    # Open weeks restart from the even split, then take the whole deficit
                    for planned in distribute_targets(goals[goal_id].target_value, weeks, rows):
                        if not planned.locked and planned.week_number in by_week:
                            by_week[planned.week_number].target_value = planned.target_value
                    for planned in redistribute_deficit(rows, week_number + 1):
                        by_week[planned.week_number].target_value = planned.target_value
                goal = goals[goal_id]
                if goal.linked_outcome_id is None:
                    goal.current_value = sum(r.actual_value or 0 for r in rows)

            review_row = db.query(WeeklyReview).filter_by(cycle_id=cycle_id, week_number=week_number).first()
            if review_row is None:
                review_row = WeeklyReview(cycle_id=cycle_id, user_id=user_id, week_number=week_number)
                db.add(review_row)
            for field in ("notes", "wins", "blockers"):
                if review and review.get(field) is not None:
                    setattr(review_row, field, review[field])
            db.commit()
            db.refresh(review_row)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to save review of week {week_number} in cycle {cycle_id}: {e}")
            raise

        logger.info(f"Reviewed week {week_number} of cycle {cycle_id} for {len(affected)} goal(s)")
        return {
            "weekly_targets": CycleService.get_weekly_targets(db, user_id, cycle_id),
            "review": review_row.to_dict(),
        }

    @staticmethod
    def get_reviews(db: Session, user_id: int, cycle_id: int) -> list[dict]:
        CycleService.get_cycle(db, user_id, cycle_id)
        rows = db.query(WeeklyReview).filter_by(cycle_id=cycle_id, user_id=user_id).order_by(
            WeeklyReview.week_number
        ).all()
        return [r.to_dict() for r in rows]

    # --- Analytics ---

    @staticmethod
    def cycle_analytics(
        db: Session,
        user_id: int,
        cycle_id: int,
        current_week: int | None = None,
        today: date | None = None,
    ) -> dict:
        """ComputeCycleAnalytics for a stored cycle."""
        cycle = CycleService.get_cycle(db, user_id, cycle_id)
        weeks = total_weeks(cycle.start_date, cycle.end_date)
        if current_week is None:
            current_week = current_week_number(cycle.start_date, cycle.end_date, today or date.today())
        goals = CycleService.get_goals(db, user_id, cycle_id)
        targets = db.query(WeeklyTarget).filter_by(cycle_id=cycle_id, user_id=user_id).all()

        analytics = compute_cycle_analytics(goals, targets, current_week, weeks)
        result = {"cycle_id": cycle.id}
        result.update(analytics.to_dict())
        return result

    # --- Tactics ---

    @staticmethod
    def create_tactic(db: Session, user_id: int, goal_id: int, data: dict) -> Tactic:
        CycleService.get_goal(db, user_id, goal_id)
        if not data.get("title"):
            raise InvalidInput("title is required")
        try:
            tactic = Tactic(
                goal_id=goal_id,
                user_id=user_id,
                title=data["title"],
                week_number=data.get("week_number"),
                is_done=bool(data.get("is_done", False)),
            )
            db.add(tactic)
            db.commit()
            db.refresh(tactic)
            return tactic
        except SQLAlchemyError:
            db.rollback()
            raise

    @staticmethod
    def get_tactics(db: Session, user_id: int, goal_id: int) -> list[Tactic]:
        CycleService.get_goal(db, user_id, goal_id)
        return db.query(Tactic).filter_by(goal_id=goal_id, user_id=user_id).order_by(Tactic.id).all()

    @staticmethod
    def set_tactic_done(db: Session, user_id: int, tactic_id: int, is_done: bool) -> Tactic:
        tactic = db.query(Tactic).filter_by(id=tactic_id, user_id=user_id).first()
        if not tactic:
            raise NotFound(f"Tactic {tactic_id} not found")
        try:
            tactic.is_done = is_done
            db.commit()
            db.refresh(tactic)
            return tactic
        except SQLAlchemyError:
            db.rollback()
            raise
