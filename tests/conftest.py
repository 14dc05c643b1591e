"""Shared fixtures: a 10-day, $200 challenge with two habits worth 5 and 10 points."""

import threading
from datetime import datetime, timezone
from typing import Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import init_db
from schemas import AppState, ChallengeSettings, Habit, Log, Role, Team, User
from services.completion_index import log_id
from services.data_store import StoreError
from services.sql_store import SqlStore
from services.state_service import StateService

START = "2024-03-01"
END = "2024-03-10"


def at(day: str, hour: int = 12) -> datetime:
    """Instant on a challenge day (tests run with CHALLENGE_TIMEZONE=UTC)."""
    y, m, d = (int(p) for p in day.split("-"))
    return datetime(y, m, d, hour, tzinfo=timezone.utc)


def make_log(user_id: str, habit_id: str, day: str, completed: bool = True) -> Log:
    return Log(id=log_id(user_id, habit_id, day), user_id=user_id, habit_id=habit_id, date=day,
               completed=completed)


def days(start: int, end: int, month: str = "2024-03") -> list[str]:
    return [f"{month}-{d:02d}" for d in range(start, end + 1)]


@pytest.fixture
def settings() -> ChallengeSettings:
    return ChallengeSettings(name="Family Face-off", start_date=START, end_date=END,
                             is_active=True, rules="Be honest", stake_amount=200)


@pytest.fixture
def habits() -> list[Habit]:
    return [
        Habit(id="h1", name="Drink 3L Water", description="Stay hydrated", points=5, category="health"),
        Habit(id="h2", name="30m Exercise", description="Move", points=10, category="fitness"),
    ]


@pytest.fixture
def teams() -> list[Team]:
    return [
        Team(id="t1", name="Team Alpha", color="#4f46e5", order=0),
        Team(id="t2", name="Team Bravo", color="#ea580c", order=1),
    ]


@pytest.fixture
def users() -> list[User]:
    return [
        User(id="u1", name="Alice", email="alice@family.com", role=Role.ADMIN, team_id="t1"),
        User(id="u2", name="Bob", email="bob@family.com", role=Role.MEMBER, team_id="t1"),
        User(id="u3", name="Charlie", email="charlie@family.com", role=Role.MEMBER, team_id="t2"),
    ]


@pytest.fixture
def make_state(settings, habits, teams, users):
    def _make(logs: Optional[list[Log]] = None, **overrides) -> AppState:
        data = dict(users=users, teams=teams, habits=habits, logs=logs or [], settings=settings)
        data.update(overrides)
        return AppState(**data)
    return _make


class FakeStore:
    """In-memory DataStore with failure injection and an optional gate on toggles."""

    def __init__(self, state: AppState):
        self.habits = list(state.habits)
        self.users = {u.id: u for u in state.users}
        self.teams = {t.id: t for t in state.teams}
        self.logs = {l.id: l for l in state.logs}
        self.settings = state.settings
        self.fail = False
        self.gate: Optional[threading.Event] = None
        self.fetches = 0
        self.toggle_calls = []

    def fetch_snapshot(self, current_user_id=None) -> AppState:
        self.fetches += 1
        return AppState(users=list(self.users.values()), teams=list(self.teams.values()),
                        habits=list(self.habits), logs=list(self.logs.values()), settings=self.settings)

    def toggle_completion(self, user_id, habit_id, date, was_completed):
        self.toggle_calls.append((user_id, habit_id, date, was_completed))
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.fail:
            raise StoreError("backend unavailable")
        lid = log_id(user_id, habit_id, date)
        if was_completed:
            self.logs.pop(lid, None)
            return {"type": "delete", "id": lid}
        self.logs[lid] = make_log(user_id, habit_id, date)
        return {"type": "insert", "log": self.logs[lid]}

    def update_user_habits(self, user_id, habit_ids):
        self.users[user_id] = self.users[user_id].model_copy(update={"habit_ids": list(habit_ids)})

    def update_team(self, team):
        self.teams[team.id] = team

    def add_team(self, team):
        self.teams[team.id] = team

    def add_habit(self, habit):
        self.habits.append(habit)


@pytest.fixture
def fake_store(make_state):
    return FakeStore(make_state())


@pytest.fixture
def fake_state_service(fake_store):
    return StateService(fake_store, ttl_seconds=60)


@pytest.fixture
def sql_store():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(engine)
    return SqlStore(sessionmaker(bind=engine, autocommit=False, autoflush=False))


@pytest.fixture
def seeded_sql_store(sql_store, settings, habits, teams, users):
    for team in teams:
        sql_store.add_team(team)
    for habit in habits:
        sql_store.add_habit(habit)
    for user in users:
        sql_store.create_profile(user)
    sql_store.update_settings(settings)
    return sql_store
