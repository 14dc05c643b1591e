from sqlalchemy import Column, String, Boolean, ForeignKey, UniqueConstraint
from database import Base


class HabitLog(Base):
    __tablename__ = "logs"

    # Deterministic "<user_id>-<habit_id>-<date>" so toggles are idempotent
    id = Column(String(200), primary_key=True)
    user_id = Column(String(64), ForeignKey("profiles.id"), nullable=False)
    habit_id = Column(String(64), ForeignKey("habits.id"), nullable=False)
    date = Column(String(10), nullable=False)  # YYYY-MM-DD, challenge-local calendar
    completed = Column(Boolean, default=True)

    __table_args__ = (
        UniqueConstraint("user_id", "habit_id", "date", name="uq_user_habit_date"),
    )
