"""
schemas.py — Domain entities and derived view models
Entities mirror the rows the data stores normalize into; view models are what
the derivation services return and the routes serialize.
"""

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from services.calendar_utils import parse_local_date

HabitCategory = Literal["health", "productivity", "mindfulness", "fitness", "other"]


class Role(str, Enum):
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


# ── Entities ──────────────────────────────────────────────────────
class Habit(BaseModel):
    id: str
    name: str
    description: str = ""
    points: int = Field(..., gt=0)
    category: HabitCategory = "other"


class User(BaseModel):
    id: str
    name: str = ""
    email: str = ""
    role: Role = Role.MEMBER
    team_id: Optional[str] = None
    avatar_url: Optional[str] = None
    habit_ids: list[str] = Field(default_factory=list)


class Team(BaseModel):
    id: str
    name: str
    color: str = "#4f46e5"
    order: int = 0


class Log(BaseModel):
    id: str
    user_id: str
    habit_id: str
    date: str
    completed: bool = True

    @field_validator("date")
    @classmethod
    def check_date(cls, v: str) -> str:
        parse_local_date(v)
        return v


class ChallengeSettings(BaseModel):
    name: str
    start_date: str
    end_date: str
    is_active: bool = True
    rules: str = ""
    stake_amount: float = Field(..., ge=0, allow_inf_nan=False)

    @field_validator("start_date", "end_date")
    @classmethod
    def check_dates(cls, v: str) -> str:
        parse_local_date(v)
        return v


class AppState(BaseModel):
    current_user: Optional[User] = None
    users: list[User] = Field(default_factory=list)
    teams: list[Team] = Field(default_factory=list)
    habits: list[Habit] = Field(default_factory=list)
    logs: list[Log] = Field(default_factory=list)
    settings: ChallengeSettings


# ── Derived views ─────────────────────────────────────────────────
class Countdown(BaseModel):
    days: int = 0
    hours: int = 0
    minutes: int = 0
    seconds: int = 0


class TimelineSnapshot(BaseModel):
    is_future: bool
    is_finished: bool
    percent_complete: float
    current_day_number: int
    days_left: int
    countdown: Countdown


class StakeSummary(BaseModel):
    stake_amount: float
    duration_days: int
    daily_possible_points: int
    total_possible_points: int
    value_per_point: float
    earned_points: int
    saved_so_far: float
    lost_so_far: float
    missed_habits_count: int
    current_debt: float
    cost_of_today: float


class TeamMemberStanding(BaseModel):
    user_id: str
    name: str
    avatar_url: Optional[str] = None
    score: int
    current_debt: float
    active_today: bool


class TeamStanding(BaseModel):
    team_id: str
    name: str
    color: str
    order: int
    score: int
    debt: float
    member_count: int
    members: list[TeamMemberStanding]


class Leaderboard(BaseModel):
    by_order: list[TeamStanding]
    by_rank: list[TeamStanding]
    pot: float


class DashboardHabit(BaseModel):
    habit: Habit
    completed: bool


class Dashboard(BaseModel):
    challenge_name: str
    day: str
    is_today: bool
    team_name: Optional[str] = None
    timeline: TimelineSnapshot
    daily_points: int
    completed_count: int
    active_count: int
    streak: int
    needs_habit_selection: bool
    habits: list[DashboardHabit]
    stake: StakeSummary


class DailyPoints(BaseModel):
    date: str
    points: int


class HabitCount(BaseModel):
    habit_id: str
    name: str
    count: int


class ProfileStats(BaseModel):
    user_id: str
    name: str
    avatar_url: Optional[str] = None
    points_today: int
    streak: int
    chart: list[DailyPoints]
    top_habits: list[HabitCount]
    stake: StakeSummary
