from sqlalchemy import Column, Integer, Float, Boolean, Date, DateTime, ForeignKey, UniqueConstraint
from actionscore.database import Base


class TaskCompletion(Base):
    __tablename__ = "task_completions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    task_id = Column(Integer, ForeignKey("tasks.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    date = Column(Date, nullable=False)
    completed = Column(Boolean, nullable=False, default=False)
    value = Column(Float, nullable=True)
    points_earned = Column(Float, nullable=False, default=0)  # audit copy, always recomputable
    completed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("task_id", "date", name="uq_completion_task_date"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "date": self.date.isoformat(),
            "completed": self.completed,
            "value": self.value,
            "points_earned": self.points_earned,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
