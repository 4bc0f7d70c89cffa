from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey
from actionscore.database import Base


class Cycle(Base):
    """A goal period of variable length (twelve weeks unless told otherwise)."""

    __tablename__ = "cycles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    name = Column(String(200), nullable=False)
    vision = Column(Text, nullable=True)
    theme = Column(String(200), nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "vision": self.vision,
            "theme": self.theme,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
        }
