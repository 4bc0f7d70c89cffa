from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session
from typing import Optional

from actionscore.auth import get_current_user
from actionscore.database import get_db
from actionscore.services.planner_service import parse_date
from actionscore.services.scoring_service import ScoringService
from actionscore.services.settings_service import SettingsService

router = APIRouter(prefix="/api/v1", tags=["Scores"])


class CloseDayRequest(BaseModel):
    date: str


class SettingsUpdate(BaseModel):
    weekday_pass_threshold: Optional[float] = Field(None, ge=0, le=100)
    weekend_pass_threshold: Optional[float] = Field(None, ge=0, le=100)


@router.get("/daily-score")
def daily_score(date: str, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    return ScoringService.compute_daily_score(db, user_id, parse_date(date))


@router.get("/daily-score/history")
def daily_score_history(
    start: str,
    end: str,
    user_id: int = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ScoringService.get_history(db, user_id, parse_date(start, "start"), parse_date(end, "end"))


@router.post("/days/close")
def close_day(body: CloseDayRequest, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    return ScoringService.close_day(db, user_id, parse_date(body.date))


@router.get("/user-stats")
def user_stats(user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    return ScoringService.get_user_stats(db, user_id)


@router.get("/settings")
def get_settings(user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    return SettingsService.get(db, user_id)


@router.put("/settings")
def update_settings(body: SettingsUpdate, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    return SettingsService.update(db, user_id, body.model_dump(exclude_unset=True))
