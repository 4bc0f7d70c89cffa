from sqlalchemy import Column, Integer, DateTime, ForeignKey
from actionscore.database import Base


class TaskTimer(Base):
    """A running timer for a duration task; elapsed time is derived on stop."""

    __tablename__ = "task_timers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    task_id = Column(Integer, ForeignKey("tasks.id"), unique=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=False)

    def to_dict(self) -> dict:
        return {"task_id": self.task_id, "started_at": self.started_at.isoformat()}
