from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, DateTime
from database import Base


class Habit(Base):
    __tablename__ = "habits"

    id = Column(String(64), primary_key=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, default="")
    points = Column(Integer, nullable=False)
    category = Column(String(20), default="other")  # health/productivity/mindfulness/fitness/other
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
