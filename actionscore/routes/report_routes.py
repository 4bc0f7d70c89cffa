from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional

from actionscore.auth import get_current_user, verify_cron
from actionscore.database import get_db
from actionscore.services.report_service import ReportService

router = APIRouter(prefix="/api/v1/reports", tags=["Reports"])


@router.post("/run", dependencies=[Depends(verify_cron)])
def run_reports(type: str = "weekly", db: Session = Depends(get_db)):
    return ReportService.run_reports(db, type)


@router.get("")
def list_reports(
    type: Optional[str] = None,
    user_id: int = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ReportService.list_reports(db, user_id, type)
