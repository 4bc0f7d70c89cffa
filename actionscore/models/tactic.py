from sqlalchemy import Column, Integer, String, Boolean, ForeignKey
from actionscore.database import Base


class Tactic(Base):
    __tablename__ = "tactics"

    id = Column(Integer, primary_key=True, autoincrement=True)
    goal_id = Column(Integer, ForeignKey("cycle_goals.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    title = Column(String(300), nullable=False)
    week_number = Column(Integer, nullable=True)
    is_done = Column(Boolean, nullable=False, default=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "goal_id": self.goal_id,
            "title": self.title,
            "week_number": self.week_number,
            "is_done": self.is_done,
        }
