from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Float, Boolean, Date, DateTime, JSON, ForeignKey
from actionscore.database import Base


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    pillar_id = Column(Integer, ForeignKey("pillars.id"), nullable=True)
    name = Column(String(200), nullable=False)
    completion_type = Column(String(20), nullable=False, default="checkbox")  # checkbox/count/duration/numeric/percentage
    target = Column(Float, nullable=True)  # required unless checkbox
    unit = Column(String(30), nullable=True)
    flexibility_rule = Column(String(20), nullable=False, default="must_today")  # must_today/window/limit_avoid/carryover
    window_start = Column(Integer, nullable=True)  # day offsets from the due date
    window_end = Column(Integer, nullable=True)
    limit_value = Column(Float, nullable=True)
    importance = Column(String(10), nullable=False, default="medium")  # high/medium/low
    frequency = Column(String(10), nullable=False, default="daily")  # daily/weekly/custom/adhoc
    custom_days = Column(JSON, nullable=True)  # weekday indices, 0=Sunday
    weekly_day = Column(Integer, nullable=True)  # weekday index for weekly tasks
    scheduled_date = Column(Date, nullable=True)  # adhoc tasks only
    is_weekend_task = Column(Boolean, nullable=False, default=False)
    base_points = Column(Float, nullable=False, default=10)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "pillar_id": self.pillar_id,
            "name": self.name,
            "completion_type": self.completion_type,
            "target": self.target,
            "unit": self.unit,
            "flexibility_rule": self.flexibility_rule,
            "window_start": self.window_start,
            "window_end": self.window_end,
            "limit_value": self.limit_value,
            "importance": self.importance,
            "frequency": self.frequency,
            "custom_days": list(self.custom_days or []),
            "weekly_day": self.weekly_day,
            "scheduled_date": self.scheduled_date.isoformat() if self.scheduled_date else None,
            "is_weekend_task": self.is_weekend_task,
            "base_points": self.base_points,
            "is_active": self.is_active,
        }
