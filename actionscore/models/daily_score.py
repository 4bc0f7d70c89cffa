from sqlalchemy import Column, Integer, String, Float, Boolean, Date, DateTime, JSON, ForeignKey, UniqueConstraint
from actionscore.database import Base


class DailyScore(Base):
    __tablename__ = "daily_scores"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    date = Column(Date, nullable=False)
    action_score = Column(Float, nullable=False, default=0)  # out of 100
    score_tier = Column(String(20), nullable=False, default="Poor")
    pillar_scores = Column(JSON, nullable=True)  # list of per-pillar breakdowns
    total_tasks = Column(Integer, nullable=False, default=0)
    completed_tasks = Column(Integer, nullable=False, default=0)
    is_passing = Column(Boolean, nullable=False, default=False)
    xp_earned = Column(Integer, nullable=False, default=0)  # set when the day is closed
    closed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_dailyscore_user_date"),
    )

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "action_score": self.action_score,
            "score_tier": self.score_tier,
            "pillar_scores": list(self.pillar_scores or []),
            "total_tasks": self.total_tasks,
            "completed_tasks": self.completed_tasks,
            "is_passing": self.is_passing,
            "xp_earned": self.xp_earned,
            "closed": self.closed_at is not None,
        }
