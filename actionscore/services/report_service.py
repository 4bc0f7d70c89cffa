"""
report_service.py — Scheduled weekly / monthly report snapshots.
Run by the external scheduler; one GeneratedReport per user, type and period.
"""

import logging
from datetime import date, timedelta

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from actionscore.engine.enums import ReportType, coerce
from actionscore.engine.reports import build_report, report_period
from actionscore.errors import InvalidInput
from actionscore.models.daily_score import DailyScore
from actionscore.models.generated_report import GeneratedReport
from actionscore.models.pillar import Pillar
from actionscore.models.task import Task
from actionscore.models.task_completion import TaskCompletion
from actionscore.models.user_stats import UserStats

logger = logging.getLogger(__name__)


class ReportService:
    @staticmethod
    def generate_for_user(db: Session, user_id: int, report_type: ReportType, end_date: date) -> GeneratedReport:
        start, end = report_period(report_type, end_date)
        scores = db.query(DailyScore).filter(
            DailyScore.user_id == user_id,
            DailyScore.date >= start,
            DailyScore.date <= end,
        ).all()
        completions = db.query(TaskCompletion).filter(
            TaskCompletion.user_id == user_id,
            TaskCompletion.date >= start,
            TaskCompletion.date <= end,
        ).all()
        tasks = db.query(Task).filter_by(user_id=user_id).all()
        pillars = db.query(Pillar).filter_by(user_id=user_id, is_archived=False).order_by(
            Pillar.sort_order, Pillar.id
        ).all()
        stats = db.query(UserStats).filter_by(user_id=user_id).first()

        data = build_report(report_type, end, scores, tasks, completions, pillars, stats)

        row = db.query(GeneratedReport).filter_by(
            user_id=user_id, type=report_type.value, period_start=start
        ).first()
        if row is None:
            try:
                with db.begin_nested():
                    row = GeneratedReport(
                        user_id=user_id, type=report_type.value,
                        period_start=start, period_end=end, data=data,
                    )
                    db.add(row)
            except IntegrityError:
                row = db.query(GeneratedReport).filter_by(
                    user_id=user_id, type=report_type.value, period_start=start
                ).one()
        row.period_end = end
        row.data = data
        db.commit()
        db.refresh(row)
        return row

    @staticmethod
    def run_reports(db: Session, report_type: str, today: date | None = None) -> dict:
        """Generate the report ending yesterday for every user with any score in the period."""
        rtype = coerce(ReportType, report_type)
        if rtype is None:
            raise InvalidInput(f"Unknown report type {report_type!r}; expected weekly or monthly")
        end = (today or date.today()) - timedelta(days=1)
        start, _ = report_period(rtype, end)

        user_ids = [
            uid for (uid,) in db.query(DailyScore.user_id).filter(
                DailyScore.date >= start,
                DailyScore.date <= end,
            ).distinct().order_by(DailyScore.user_id).all()
        ]

        generated, failed = 0, 0
        for user_id in user_ids:
            try:
                ReportService.generate_for_user(db, user_id, rtype, end)
                generated += 1
            except SQLAlchemyError as e:
                db.rollback()
                failed += 1
                logger.error(f"{rtype.value} report failed for user {user_id}: {e}")

        logger.info(f"{rtype.value} reports for {start}..{end}: {generated} generated, {failed} failed")
        return {
            "type": rtype.value,
            "period_start": start.isoformat(),
            "period_end": end.isoformat(),
            "generated": generated,
            "failed": failed,
        }

    @staticmethod
    def list_reports(db: Session, user_id: int, report_type: str | None = None) -> list[dict]:
        query = db.query(GeneratedReport).filter_by(user_id=user_id)
        if report_type:
            rtype = coerce(ReportType, report_type)
            if rtype is None:
                raise InvalidInput(f"Unknown report type {report_type!r}")
            query = query.filter_by(type=rtype.value)
        return [r.to_dict() for r in query.order_by(GeneratedReport.period_start.desc()).all()]
