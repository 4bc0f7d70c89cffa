from sqlalchemy import Column, Integer, Float, ForeignKey
from actionscore.database import Base


class UserSettings(Base):
    __tablename__ = "user_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    weekday_pass_threshold = Column(Float, nullable=False, default=70)
    weekend_pass_threshold = Column(Float, nullable=False, default=70)

    def to_dict(self) -> dict:
        return {
            "weekday_pass_threshold": self.weekday_pass_threshold,
            "weekend_pass_threshold": self.weekend_pass_threshold,
        }
