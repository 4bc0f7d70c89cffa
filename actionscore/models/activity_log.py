from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Float, Date, DateTime, ForeignKey
from actionscore.database import Base


class ActivityLog(Base):
    __tablename__ = "activity_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    task_id = Column(Integer, ForeignKey("tasks.id"), nullable=False)
    pillar_id = Column(Integer, ForeignKey("pillars.id"), nullable=True)
    date = Column(Date, nullable=False)
    action = Column(String(20), nullable=False)  # complete/add/subtract/adjust/reverse
    previous_value = Column(Float, nullable=True)
    new_value = Column(Float, nullable=True)
    delta = Column(Float, nullable=False, default=0)
    points_before = Column(Float, nullable=False, default=0)
    points_after = Column(Float, nullable=False, default=0)
    points_delta = Column(Float, nullable=False, default=0)
    source = Column(String(20), nullable=False, default="manual")  # manual/timer
    reversal_of = Column(Integer, ForeignKey("activity_log.id"), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "date": self.date.isoformat(),
            "action": self.action,
            "previous_value": self.previous_value,
            "new_value": self.new_value,
            "delta": self.delta,
            "points_before": self.points_before,
            "points_after": self.points_after,
            "points_delta": self.points_delta,
            "source": self.source,
            "reversal_of": self.reversal_of,
        }
