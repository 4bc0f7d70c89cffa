from sqlalchemy import Column, Integer, String, Date, ForeignKey
from actionscore.database import Base


class UserStats(Base):
    __tablename__ = "user_stats"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    total_xp = Column(Integer, nullable=False, default=0)
    level = Column(Integer, nullable=False, default=1)
    level_title = Column(String(30), nullable=False, default="Beginner")
    current_streak = Column(Integer, nullable=False, default=0)
    best_streak = Column(Integer, nullable=False, default=0)
    last_closed_date = Column(Date, nullable=True)

    def to_dict(self) -> dict:
        return {
            "total_xp": self.total_xp,
            "level": self.level,
            "level_title": self.level_title,
            "current_streak": self.current_streak,
            "best_streak": self.best_streak,
            "last_closed_date": self.last_closed_date.isoformat() if self.last_closed_date else None,
        }
