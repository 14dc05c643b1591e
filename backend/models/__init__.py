# Import all models so they register with SQLAlchemy Base.metadata
# This ensures Base.metadata.create_all() creates all tables

from models.habit import Habit
from models.habit_log import HabitLog
from models.profile import Profile
from models.team import Team
from models.challenge_settings import ChallengeSettings

__all__ = [
    "Habit",
    "HabitLog",
    "Profile",
    "Team",
    "ChallengeSettings",
]
