from sqlalchemy import Column, Integer, String, Text, Boolean, Float
from database import Base


class ChallengeSettings(Base):
    __tablename__ = "settings"

    id = Column(Integer, primary_key=True)  # single row, id=1
    name = Column(String(200), nullable=False)
    start_date = Column(String(10), nullable=False)
    end_date = Column(String(10), nullable=False)
    is_active = Column(Boolean, default=True)
    rules = Column(Text, default="")
    stake_amount = Column(Float, nullable=True)
