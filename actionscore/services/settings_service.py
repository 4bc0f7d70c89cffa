"""
settings_service.py — Per-user scoring preferences (pass thresholds).
"""

from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from actionscore.config import DEFAULT_WEEKDAY_PASS_THRESHOLD, DEFAULT_WEEKEND_PASS_THRESHOLD
from actionscore.engine.daily import pass_threshold_for
from actionscore.errors import InvalidInput
from actionscore.models.user_settings import UserSettings


class SettingsService:
    @staticmethod
    def get(db: Session, user_id: int) -> dict:
        row = db.query(UserSettings).filter_by(user_id=user_id).first()
        if row:
            return row.to_dict()
        return {
            "weekday_pass_threshold": DEFAULT_WEEKDAY_PASS_THRESHOLD,
            "weekend_pass_threshold": DEFAULT_WEEKEND_PASS_THRESHOLD,
        }

    @staticmethod
    def update(db: Session, user_id: int, data: dict) -> dict:
        for key in ("weekday_pass_threshold", "weekend_pass_threshold"):
            value = data.get(key)
            if value is not None and not 0 <= value <= 100:
                raise InvalidInput(f"{key} must be between 0 and 100")
        try:
            row = db.query(UserSettings).filter_by(user_id=user_id).first()
            if not row:
                row = UserSettings(
                    user_id=user_id,
                    weekday_pass_threshold=DEFAULT_WEEKDAY_PASS_THRESHOLD,
                    weekend_pass_threshold=DEFAULT_WEEKEND_PASS_THRESHOLD,
                )
                db.add(row)
            if data.get("weekday_pass_threshold") is not None:
                row.weekday_pass_threshold = data["weekday_pass_threshold"]
            if data.get("weekend_pass_threshold") is not None:
                row.weekend_pass_threshold = data["weekend_pass_threshold"]
            db.commit()
            db.refresh(row)
            return row.to_dict()
        except SQLAlchemyError:
            db.rollback()
            raise

    @staticmethod
    def pass_threshold(db: Session, user_id: int, on_date: date) -> float:
        prefs = SettingsService.get(db, user_id)
        return pass_threshold_for(on_date, prefs["weekday_pass_threshold"], prefs["weekend_pass_threshold"])
