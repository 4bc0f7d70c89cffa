from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session
from typing import List, Optional

from actionscore.auth import get_current_user
from actionscore.database import get_db
from actionscore.engine.analytics import compute_cycle_analytics
from actionscore.services.cycle_service import CycleService
from actionscore.services.planner_service import parse_date

router = APIRouter(prefix="/api/v1", tags=["Cycles"])


class CycleCreate(BaseModel):
    name: str
    start_date: str
    end_date: Optional[str] = None
    vision: Optional[str] = None
    theme: Optional[str] = None


class GoalCreate(BaseModel):
    name: str
    target_value: float
    current_value: Optional[float] = 0.0
    unit: Optional[str] = None
    linked_outcome_id: Optional[int] = None


class GoalUpdate(BaseModel):
    name: Optional[str] = None
    target_value: Optional[float] = None
    current_value: Optional[float] = None
    unit: Optional[str] = None
    linked_outcome_id: Optional[int] = None


class WeekActual(BaseModel):
    goal_id: int
    actual_value: float


class WeekOverride(BaseModel):
    goal_id: int
    target_value: float


class WeeklyReviewRequest(BaseModel):
    actuals: List[WeekActual] = []
    overrides: List[WeekOverride] = []
    notes: Optional[str] = None
    wins: Optional[str] = None
    blockers: Optional[str] = None
    redistribute: bool = False


class TacticCreate(BaseModel):
    title: str
    week_number: Optional[int] = None


class TacticUpdate(BaseModel):
    is_done: bool


class AnalyticsGoal(BaseModel):
    id: int
    name: str = ""
    target_value: float
    current_value: float = 0.0


class AnalyticsWeek(BaseModel):
    goal_id: int
    week_number: int
    target_value: float = 0.0
    actual_value: float = 0.0
    score: Optional[str] = None


class CycleAnalyticsRequest(BaseModel):
    goals: List[AnalyticsGoal]
    weekly_targets: List[AnalyticsWeek] = []
    current_week: int
    total_weeks: int


@router.get("/cycles")
def list_cycles(user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    return [c.to_dict() for c in CycleService.get_cycles(db, user_id)]


@router.post("/cycles")
def create_cycle(body: CycleCreate, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    return CycleService.create_cycle(db, user_id, body.model_dump()).to_dict()


@router.get("/cycles/{cycle_id}")
def get_cycle(cycle_id: int, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    cycle = CycleService.get_cycle(db, user_id, cycle_id).to_dict()
    cycle["goals"] = [g.to_dict() for g in CycleService.get_goals(db, user_id, cycle_id)]
    cycle["weekly_targets"] = CycleService.get_weekly_targets(db, user_id, cycle_id)
    cycle["reviews"] = CycleService.get_reviews(db, user_id, cycle_id)
    return cycle


@router.post("/cycles/{cycle_id}/goals")
def create_goal(
    cycle_id: int,
    body: GoalCreate,
    user_id: int = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return CycleService.create_goal(db, user_id, cycle_id, body.model_dump())


@router.put("/cycles/goals/{goal_id}")
def update_goal(
    goal_id: int,
    body: GoalUpdate,
    user_id: int = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return CycleService.update_goal(db, user_id, goal_id, body.model_dump(exclude_unset=True))


@router.post("/cycles/goals/{goal_id}/distribute")
def distribute(goal_id: int, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    return CycleService.distribute_weekly_targets(db, user_id, goal_id)


@router.get("/cycles/goals/{goal_id}/tactics")
def list_tactics(goal_id: int, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    return [t.to_dict() for t in CycleService.get_tactics(db, user_id, goal_id)]


@router.post("/cycles/goals/{goal_id}/tactics")
def create_tactic(
    goal_id: int,
    body: TacticCreate,
    user_id: int = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return CycleService.create_tactic(db, user_id, goal_id, body.model_dump()).to_dict()


@router.patch("/cycles/tactics/{tactic_id}")
def update_tactic(
    tactic_id: int,
    body: TacticUpdate,
    user_id: int = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return CycleService.set_tactic_done(db, user_id, tactic_id, body.is_done).to_dict()


@router.put("/cycles/{cycle_id}/weekly/{week_number}")
def save_weekly_review(
    cycle_id: int,
    week_number: int,
    body: WeeklyReviewRequest,
    user_id: int = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return CycleService.save_weekly_review(
        db, user_id, cycle_id, week_number,
        actuals=[a.model_dump() for a in body.actuals],
        overrides=[o.model_dump() for o in body.overrides],
        review={"notes": body.notes, "wins": body.wins, "blockers": body.blockers},
        redistribute=body.redistribute,
    )


@router.get("/cycles/{cycle_id}/analytics")
def cycle_analytics(
    cycle_id: int,
    today: Optional[str] = None,
    user_id: int = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    on_date = parse_date(today, "today") if today else None
    return CycleService.cycle_analytics(db, user_id, cycle_id, today=on_date)


@router.post("/analytics/cycle")
def analytics_over_rows(body: CycleAnalyticsRequest, user_id: int = Depends(get_current_user)):
    return compute_cycle_analytics(body.goals, body.weekly_targets, body.current_week, body.total_weeks).to_dict()
