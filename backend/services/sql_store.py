"""
sql_store.py — DataStore over SQLAlchemy (local SQLite or any DATABASE_URL)
Same contract as SupabaseStore, with real columns for habit selections and
stake amount.
"""

import logging
from contextlib import contextmanager
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.challenge_settings import ChallengeSettings as SettingsRow
from models.habit import Habit as HabitRow
from models.habit_log import HabitLog
from models.profile import Profile
from models.team import Team as TeamRow
from schemas import AppState, ChallengeSettings, Habit, Log, Team, User
from services.completion_index import log_id
from services.data_store import StoreError, build_state
from services.legacy_fields import unpack_name

logger = logging.getLogger(__name__)

SETTINGS_ROW_ID = 1


def _row_dict(row, columns) -> dict:
    return {c: getattr(row, c) for c in columns}


class SqlStore:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    @contextmanager
    def _session(self):
        db: Session = self.session_factory()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning(f"Database call failed: {e}")
            raise StoreError(str(e)) from e
        finally:
            db.close()

    def _profile(self, db: Session, user_id: str) -> Profile:
        profile = db.get(Profile, user_id)
        if profile is None:
            raise KeyError(user_id)
        return profile

    # ── Reads ─────────────────────────────────────────────────────
    def fetch_snapshot(self, current_user_id: Optional[str] = None) -> AppState:
        with self._session() as db:
            habits = [_row_dict(h, ("id", "name", "description", "points", "category"))
                      for h in db.query(HabitRow).all()]
            teams = [_row_dict(t, ("id", "name", "color", "order_index"))
                     for t in db.query(TeamRow).order_by(TeamRow.order_index.asc()).all()]
            logs = [_row_dict(l, ("id", "user_id", "habit_id", "date", "completed"))
                    for l in db.query(HabitLog).order_by(HabitLog.date.desc()).all()]
            settings = db.get(SettingsRow, SETTINGS_ROW_ID)
            settings_row = _row_dict(settings, ("name", "start_date", "end_date", "is_active",
                                                "rules", "stake_amount")) if settings else None
            profiles = [_row_dict(p, ("id", "email", "name", "role", "team_id", "avatar_url", "habit_ids"))
                        for p in db.query(Profile).all()]
        return build_state(habits, teams, logs, settings_row, profiles, current_user_id)

    def count_profiles(self) -> int:
        with self._session() as db:
            return db.query(Profile).count()

    # ── Logs ──────────────────────────────────────────────────────
    def toggle_completion(self, user_id: str, habit_id: str, date: str, was_completed: bool) -> dict:
        lid = log_id(user_id, habit_id, date)
        with self._session() as db:
            if was_completed:
                db.query(HabitLog).filter_by(id=lid).delete()
                return {"type": "delete", "id": lid}

            # merge() is an upsert on the primary key
            db.merge(HabitLog(id=lid, user_id=user_id, habit_id=habit_id, date=date, completed=True))
        return {"type": "insert", "log": Log(id=lid, user_id=user_id, habit_id=habit_id, date=date)}

    # ── Habits ────────────────────────────────────────────────────
    def add_habit(self, habit: Habit) -> None:
        with self._session() as db:
            db.add(HabitRow(**habit.model_dump()))

    def update_habit(self, habit: Habit) -> None:
        with self._session() as db:
            row = db.get(HabitRow, habit.id)
            if row is None:
                raise KeyError(habit.id)
            for k, v in habit.model_dump(exclude={"id"}).items():
                setattr(row, k, v)

    def remove_habit(self, habit_id: str) -> None:
        with self._session() as db:
            db.query(HabitLog).filter_by(habit_id=habit_id).delete()
            db.query(HabitRow).filter_by(id=habit_id).delete()

    # ── Settings ──────────────────────────────────────────────────
    def update_settings(self, settings: ChallengeSettings) -> None:
        with self._session() as db:
            db.merge(SettingsRow(id=SETTINGS_ROW_ID, **settings.model_dump()))

    # ── Teams ─────────────────────────────────────────────────────
    def add_team(self, team: Team) -> None:
        with self._session() as db:
            db.add(TeamRow(id=team.id, name=team.name, color=team.color, order_index=team.order))

    def update_team(self, team: Team) -> None:
        with self._session() as db:
            row = db.get(TeamRow, team.id)
            if row is None:
                raise KeyError(team.id)
            row.name, row.color, row.order_index = team.name, team.color, team.order

    def remove_team(self, team_id: str) -> None:
        with self._session() as db:
            db.query(Profile).filter_by(team_id=team_id).update({"team_id": None})
            db.query(TeamRow).filter_by(id=team_id).delete()

    # ── Profiles ──────────────────────────────────────────────────
    def create_profile(self, user: User) -> None:
        with self._session() as db:
            db.merge(Profile(id=user.id, email=user.email, name=user.name, role=user.role.value,
                             avatar_url=user.avatar_url, team_id=user.team_id,
                             habit_ids=list(user.habit_ids) or None))

    def update_user_team(self, user_id: str, team_id: Optional[str]) -> None:
        with self._session() as db:
            self._profile(db, user_id).team_id = team_id

    def update_user_avatar(self, user_id: str, avatar_url: str) -> None:
        with self._session() as db:
            self._profile(db, user_id).avatar_url = avatar_url

    def update_user_name(self, user_id: str, name: str) -> None:
        with self._session() as db:
            profile = self._profile(db, user_id)
            _, packed_ids = unpack_name(profile.name)
            if packed_ids and not profile.habit_ids:
                profile.habit_ids = packed_ids
            profile.name = name.strip()

    def update_user_habits(self, user_id: str, habit_ids: list[str]) -> None:
        with self._session() as db:
            profile = self._profile(db, user_id)
            profile.name, _ = unpack_name(profile.name)
            profile.habit_ids = list(habit_ids)

    def delete_account(self, user_id: str) -> None:
        with self._session() as db:
            db.query(HabitLog).filter_by(user_id=user_id).delete()
            db.query(Profile).filter_by(id=user_id).delete()
