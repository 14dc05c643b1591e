from sqlalchemy import Column, Integer, String
from database import Base


class Team(Base):
    __tablename__ = "teams"

    id = Column(String(64), primary_key=True)
    name = Column(String(100), nullable=False)
    color = Column(String(20), default="#4f46e5")
    order_index = Column(Integer, default=0)  # admin display rank
