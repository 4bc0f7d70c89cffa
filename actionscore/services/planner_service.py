"""
planner_service.py — Pillars & Tasks
CRUD for the weighted pillars and the recurring task definitions, with the
validation every stored task must pass before the scoring engine sees it.
"""

import logging
from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from actionscore.engine.enums import CompletionType, FlexibilityRule, Frequency, Importance, coerce
from actionscore.errors import InvalidInput, NotFound
from actionscore.models.pillar import Pillar
from actionscore.models.task import Task

logger = logging.getLogger(__name__)

PILLAR_FIELDS = ("name", "emoji", "weight", "sort_order")
TASK_FIELDS = (
    "pillar_id", "name", "completion_type", "target", "unit", "flexibility_rule",
    "window_start", "window_end", "limit_value", "importance", "frequency",
    "custom_days", "weekly_day", "scheduled_date", "is_weekend_task", "base_points",
)


def parse_date(value, field: str = "date") -> date:
    """Accept a date or an ISO ``YYYY-MM-DD`` string."""
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (TypeError, ValueError):
        raise InvalidInput(f"Invalid {field}: {value!r}, expected YYYY-MM-DD")


def _require_enum(enum_cls, value, field: str) -> str:
    member = coerce(enum_cls, value)
    if member is None:
        allowed = ", ".join(m.value for m in enum_cls)
        raise InvalidInput(f"Unknown {field} {value!r}; expected one of: {allowed}")
    return member.value


def _non_negative(data: dict, field: str):
    value = data.get(field)
    if value is not None and value < 0:
        raise InvalidInput(f"{field} must not be negative")


def validate_task(data: dict) -> dict:
    """Normalise and check a full task definition; returns the cleaned dict."""
    clean = dict(data)
    if not clean.get("name"):
        raise InvalidInput("name is required")

    clean["completion_type"] = _require_enum(CompletionType, clean.get("completion_type", "checkbox"), "completion_type")
    clean["flexibility_rule"] = _require_enum(FlexibilityRule, clean.get("flexibility_rule", "must_today"), "flexibility_rule")
    clean["frequency"] = _require_enum(Frequency, clean.get("frequency", "daily"), "frequency")
    clean["importance"] = _require_enum(Importance, clean.get("importance", "medium"), "importance")

    for field in ("target", "base_points", "limit_value"):
        _non_negative(clean, field)

    if clean["completion_type"] != CompletionType.CHECKBOX.value and not clean.get("target"):
        raise InvalidInput(f"target is required for {clean['completion_type']} tasks")

    if clean["flexibility_rule"] == FlexibilityRule.WINDOW.value:
        start, end = clean.get("window_start"), clean.get("window_end")
        if start is None or end is None:
            raise InvalidInput("window_start and window_end are required for window tasks")
        if start > end:
            raise InvalidInput("window_start must not be after window_end")

    if clean["flexibility_rule"] == FlexibilityRule.LIMIT_AVOID.value and clean.get("limit_value") is None:
        raise InvalidInput("limit_value is required for limit_avoid tasks")

    if clean["frequency"] == Frequency.ADHOC.value and not clean.get("scheduled_date"):
        raise InvalidInput("scheduled_date is required for adhoc tasks")
    if clean.get("scheduled_date"):
        clean["scheduled_date"] = parse_date(clean["scheduled_date"], "scheduled_date")

    days = clean.get("custom_days") or []
    if any(not isinstance(d, int) or not 0 <= d <= 6 for d in days):
        raise InvalidInput("custom_days must be weekday indices 0 (Sunday) to 6 (Saturday)")
    clean["custom_days"] = sorted(set(days))
    if clean["frequency"] == Frequency.CUSTOM.value and not clean["custom_days"]:
        raise InvalidInput("custom_days is required for custom tasks")

    weekly_day = clean.get("weekly_day")
    if weekly_day is not None and not 0 <= weekly_day <= 6:
        raise InvalidInput("weekly_day must be a weekday index 0 (Sunday) to 6 (Saturday)")

    return clean


class PlannerService:
    # --- Pillars ---

    @staticmethod
    def create_pillar(db: Session, user_id: int, data: dict) -> Pillar:
        weight = data.get("weight", 0)
        if weight is None or not 0 <= weight <= 100:
            raise InvalidInput("weight must be between 0 and 100")
        try:
            pillar = Pillar(
                user_id=user_id,
                name=data.get("name"),
                emoji=data.get("emoji"),
                weight=weight,
                sort_order=data.get("sort_order", 0),
            )
            db.add(pillar)
            db.commit()
            db.refresh(pillar)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to create pillar for user {user_id}: {e}")
            raise
        PlannerService._warn_on_weights(db, user_id)
        return pillar

    @staticmethod
    def get_pillars(db: Session, user_id: int, include_archived: bool = False) -> list[Pillar]:
        query = db.query(Pillar).filter(Pillar.user_id == user_id)
        if not include_archived:
            query = query.filter(Pillar.is_archived.is_(False))
        return query.order_by(Pillar.sort_order, Pillar.id).all()

    @staticmethod
    def get_pillar(db: Session, user_id: int, pillar_id: int) -> Pillar:
        pillar = db.query(Pillar).filter_by(id=pillar_id, user_id=user_id).first()
        if not pillar:
            raise NotFound(f"Pillar {pillar_id} not found")
        return pillar

    @staticmethod
    def update_pillar(db: Session, user_id: int, pillar_id: int, data: dict) -> Pillar:
        pillar = PlannerService.get_pillar(db, user_id, pillar_id)
        if "weight" in data and (data["weight"] is None or not 0 <= data["weight"] <= 100):
            raise InvalidInput("weight must be between 0 and 100")
        try:
            for k, v in data.items():
                if k in PILLAR_FIELDS:
                    setattr(pillar, k, v)
            db.commit()
            db.refresh(pillar)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to update pillar {pillar_id}: {e}")
            raise
        PlannerService._warn_on_weights(db, user_id)
        return pillar

    @staticmethod
    def archive_pillar(db: Session, user_id: int, pillar_id: int) -> Pillar:
        pillar = PlannerService.get_pillar(db, user_id, pillar_id)
        try:
            pillar.is_archived = True
            db.commit()
            db.refresh(pillar)
            return pillar
        except SQLAlchemyError:
            db.rollback()
            raise

    @staticmethod
    def _warn_on_weights(db: Session, user_id: int):
        total = sum(p.weight or 0 for p in PlannerService.get_pillars(db, user_id))
        if round(total, 2) != 100:
            logger.warning(f"Active pillar weights for user {user_id} sum to {total}, not 100")

    # --- Tasks ---

    @staticmethod
    def create_task(db: Session, user_id: int, data: dict) -> Task:
        clean = validate_task(data)
        if clean.get("pillar_id") is not None:
            PlannerService.get_pillar(db, user_id, clean["pillar_id"])
        try:
            task = Task(user_id=user_id, **{k: clean[k] for k in TASK_FIELDS if k in clean})
            db.add(task)
            db.commit()
            db.refresh(task)
            logger.info(f"Created task {task.id} ({task.frequency}/{task.flexibility_rule}) for user {user_id}")
            return task
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to create task for user {user_id}: {e}")
            raise

    @staticmethod
    def get_tasks(db: Session, user_id: int, include_inactive: bool = False) -> list[Task]:
        query = db.query(Task).filter(Task.user_id == user_id)
        if not include_inactive:
            query = query.filter(Task.is_active.is_(True))
        return query.order_by(Task.id).all()

    @staticmethod
    def get_task(db: Session, user_id: int, task_id: int) -> Task:
        task = db.query(Task).filter_by(id=task_id, user_id=user_id).first()
        if not task:
            raise NotFound(f"Task {task_id} not found")
        return task

    @staticmethod
    def update_task(db: Session, user_id: int, task_id: int, data: dict) -> Task:
        task = PlannerService.get_task(db, user_id, task_id)
        merged = {k: getattr(task, k) for k in TASK_FIELDS}
        merged.update({k: v for k, v in data.items() if k in TASK_FIELDS})
        clean = validate_task(merged)
        if clean.get("pillar_id") is not None:
            PlannerService.get_pillar(db, user_id, clean["pillar_id"])
        try:
            for k in TASK_FIELDS:
                setattr(task, k, clean.get(k))
            if "is_active" in data:
                task.is_active = bool(data["is_active"])
            db.commit()
            db.refresh(task)
            return task
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to update task {task_id}: {e}")
            raise

    @staticmethod
    def archive_task(db: Session, user_id: int, task_id: int) -> Task:
        return PlannerService.update_task(db, user_id, task_id, {"is_active": False})
