from datetime import datetime, timezone

from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, UniqueConstraint
from actionscore.database import Base


class WeeklyReview(Base):
    __tablename__ = "weekly_reviews"

    id = Column(Integer, primary_key=True, autoincrement=True)
    cycle_id = Column(Integer, ForeignKey("cycles.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    week_number = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)
    wins = Column(Text, nullable=True)
    blockers = Column(Text, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("cycle_id", "week_number", name="uq_weeklyreview_cycle_week"),
    )

    def to_dict(self) -> dict:
        return {
            "cycle_id": self.cycle_id,
            "week_number": self.week_number,
            "notes": self.notes,
            "wins": self.wins,
            "blockers": self.blockers,
        }
