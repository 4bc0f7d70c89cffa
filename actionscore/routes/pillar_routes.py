from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session
from typing import Optional

from actionscore.auth import get_current_user
from actionscore.database import get_db
from actionscore.services.planner_service import PlannerService

router = APIRouter(prefix="/api/v1/pillars", tags=["Pillars"])


class PillarCreate(BaseModel):
    name: str
    emoji: Optional[str] = None
    weight: float = 0
    sort_order: int = 0


class PillarUpdate(BaseModel):
    name: Optional[str] = None
    emoji: Optional[str] = None
    weight: Optional[float] = None
    sort_order: Optional[int] = None


@router.get("")
def list_pillars(
    include_archived: bool = False,
    user_id: int = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return [p.to_dict() for p in PlannerService.get_pillars(db, user_id, include_archived)]


@router.post("")
def create_pillar(body: PillarCreate, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    return PlannerService.create_pillar(db, user_id, body.model_dump()).to_dict()


@router.get("/{pillar_id}")
def get_pillar(pillar_id: int, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    return PlannerService.get_pillar(db, user_id, pillar_id).to_dict()


@router.put("/{pillar_id}")
def update_pillar(
    pillar_id: int,
    body: PillarUpdate,
    user_id: int = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return PlannerService.update_pillar(db, user_id, pillar_id, body.model_dump(exclude_unset=True)).to_dict()


@router.delete("/{pillar_id}")
def archive_pillar(pillar_id: int, user_id: int = Depends(get_current_user), db: Session = Depends(get_db)):
    PlannerService.archive_pillar(db, user_id, pillar_id)
    return {"status": "success", "message": "Pillar archived"}
