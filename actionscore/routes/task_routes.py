from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session
from typing import List, Optional

from actionscore.auth import get_current_user
from actionscore.database import get_db
from actionscore.services.planner_service import PlannerService, parse_date
from actionscore.services.scoring_service import ScoringService

router = APIRouter(prefix="/api/v1/tasks", tags=["Tasks"])


class TaskCreate(BaseModel):
    name: str
    pillar_id: Optional[int] = None
    completion_type: str = "checkbox"
    target: Optional[float] = None
    unit: Optional[str] = None
    flexibility_rule: str = "must_today"
    window_start: Optional[int] = None
    window_end: Optional[int] = None
    limit_value: Optional[float] = None
    importance: str = "medium"
    frequency: str = "daily"
    custom_days: Optional[List[int]] = None
    weekly_day: Optional[int] = None
    scheduled_date: Optional[str] = None
    is_weekend_task: bool = False
    base_points: float = 10


class TaskUpdate(BaseModel):
    name: Optional[str] = None
    pillar_id: Optional[int] = None
    completion_type: Optional[str] = None
    target: Optional[float] = None
    unit: Optional[str] = None
    flexibility_rule: Optional[str] = None
    window_start: Optional[int] = None
    window_end: Optional[int] = None
    limit_value: Optional[float] = None
    importance: Optional[str] = None
    frequency: Optional[str] = None
    custom_days: Optional[List[int]] = None
    weekly_day: Optional[int] = None
    scheduled_date: Optional[str] = None
    is_weekend_task: Optional[bool] = None
    base_points: Optional[float] = None
    is_active: Optional[bool] = None


class CompletionRequest(BaseModel):
    task_id: int
    date: str
    completed: Optional[bool] = None
    value: Optional[float] = None


class UndoRequest(BaseModel):
    task_id: int
    date: str


class TimerStopRequest(BaseModel):
    date: Optional[str] = None


@router.get("")
def list_tasks(
    include_inactive: bool = False,
    user_id: int = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return [t.to_dict() for t in PlannerService.get_tasks(db, user_id, include_inactive)]


@router.post("")
def create_task(body: TaskCreate, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    return PlannerService.create_task(db, user_id, body.model_dump()).to_dict()


# Fixed paths are registered before /{task_id}
@router.get("/due")
def due_tasks(date: str, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    return ScoringService.get_due_tasks(db, user_id, parse_date(date))


@router.get("/activity")
def activity(date: str, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    return ScoringService.get_activity(db, user_id, parse_date(date))


@router.post("/complete")
def complete_task(body: CompletionRequest, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    return ScoringService.record_completion(
        db, user_id, body.task_id, parse_date(body.date),
        completed=body.completed, value=body.value,
    )


@router.post("/complete/undo")
def undo_completion(body: UndoRequest, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    return ScoringService.undo_completion(db, user_id, body.task_id, parse_date(body.date))


@router.get("/{task_id}")
def get_task(task_id: int, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    return PlannerService.get_task(db, user_id, task_id).to_dict()


@router.put("/{task_id}")
def update_task(
    task_id: int,
    body: TaskUpdate,
    user_id: int = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return PlannerService.update_task(db, user_id, task_id, body.model_dump(exclude_unset=True)).to_dict()


@router.delete("/{task_id}")
def archive_task(task_id: int, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    PlannerService.archive_task(db, user_id, task_id)
    return {"status": "success", "message": "Task archived"}


@router.post("/{task_id}/timer")
def start_timer(task_id: int, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    return ScoringService.start_timer(db, user_id, task_id)


@router.post("/{task_id}/timer/stop")
def stop_timer(
    task_id: int,
    body: Optional[TimerStopRequest] = None,
    user_id: int = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    on_date = parse_date(body.date) if body and body.date else None
    return ScoringService.stop_timer(db, user_id, task_id, on_date=on_date)
