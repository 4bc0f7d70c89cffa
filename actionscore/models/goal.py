from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Float, ForeignKey
from actionscore.database import Base


class Goal(Base):
    __tablename__ = "cycle_goals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    cycle_id = Column(Integer, ForeignKey("cycles.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    name = Column(String(500), nullable=False)
    target_value = Column(Float, nullable=False)  # e.g., 84.0 for "84 workouts"
    current_value = Column(Float, nullable=False, default=0.0)
    unit = Column(String(30), nullable=True)
    linked_outcome_id = Column(Integer, nullable=True)  # current_value mirrored from an outcome
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cycle_id": self.cycle_id,
            "name": self.name,
            "target_value": self.target_value,
            "current_value": self.current_value,
            "unit": self.unit,
            "linked_outcome_id": self.linked_outcome_id,
        }
