from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Date, DateTime, JSON, ForeignKey, UniqueConstraint
from actionscore.database import Base


class GeneratedReport(Base):
    __tablename__ = "generated_reports"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    type = Column(String(10), nullable=False)  # weekly/monthly
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    data = Column(JSON, nullable=False)
    generated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("user_id", "type", "period_start", name="uq_report_user_type_start"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
            "data": self.data,
            "generated_at": self.generated_at.isoformat() if self.generated_at else None,
        }
