from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey, UniqueConstraint
from actionscore.database import Base


class WeeklyTarget(Base):
    __tablename__ = "weekly_targets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    goal_id = Column(Integer, ForeignKey("cycle_goals.id"), nullable=False)
    cycle_id = Column(Integer, ForeignKey("cycles.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    week_number = Column(Integer, nullable=False)  # 1-based
    target_value = Column(Float, nullable=False, default=0)
    actual_value = Column(Float, nullable=False, default=0)
    is_overridden = Column(Boolean, nullable=False, default=False)
    score = Column(String(20), nullable=True)  # exceeded/good/partial/missed
    reviewed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("goal_id", "week_number", name="uq_weeklytarget_goal_week"),
    )

    def to_dict(self) -> dict:
        return {
            "goal_id": self.goal_id,
            "week_number": self.week_number,
            "target_value": round(self.target_value, 4),
            "actual_value": self.actual_value,
            "is_overridden": self.is_overridden,
            "score": self.score,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
        }
