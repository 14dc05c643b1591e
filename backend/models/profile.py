from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, DateTime, JSON, ForeignKey
from database import Base


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(64), primary_key=True)  # auth user id
    email = Column(String(255), nullable=False)
    name = Column(String(200), default="")
    role = Column(String(10), default="MEMBER")  # ADMIN/MEMBER
    team_id = Column(String(64), ForeignKey("teams.id"), nullable=True)
    avatar_url = Column(Text, nullable=True)
    habit_ids = Column(JSON, nullable=True)  # personal habit selection, list of habit ids
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
