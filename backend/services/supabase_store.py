"""
supabase_store.py — DataStore over Supabase PostgREST (supabase_rest helpers)
Tables: habits, teams(order_index), logs, settings(single row id=1), profiles.
Structured columns profiles.habit_ids and settings.stake_amount are used unless
LEGACY_FIELD_ENCODING is on, in which case the packed text formats are written.
"""

import functools
import logging
from typing import Optional

import httpx

import supabase_rest
from config import LEGACY_FIELD_ENCODING, LOG_FETCH_LIMIT
from schemas import AppState, ChallengeSettings, Habit, Log, Team, User
from services.completion_index import log_id
from services.data_store import StoreError, build_state
from services.legacy_fields import pack_name, pack_rules, unpack_name

logger = logging.getLogger(__name__)

SETTINGS_ROW_ID = 1


def backend_call(fn):
    """Turn transport/HTTP failures into StoreError."""
    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"Supabase call {fn.__name__} failed: {e}")
            raise StoreError(str(e)) from e
    return wrapper


class SupabaseStore:
    def __init__(self, legacy_encoding: bool = LEGACY_FIELD_ENCODING, log_limit: int = LOG_FETCH_LIMIT):
        self.legacy_encoding = legacy_encoding
        self.log_limit = log_limit

    # ── Reads ─────────────────────────────────────────────────────
    @backend_call
    def fetch_snapshot(self, current_user_id: Optional[str] = None) -> AppState:
        habits = supabase_rest.sb_select("habits")
        teams = supabase_rest.sb_select("teams", order="order_index.asc")
        # Newest first so current data is never cut off by the limit
        logs = supabase_rest.sb_select("logs", order="date.desc", limit=self.log_limit)
        settings = supabase_rest.sb_select("settings", filters={"id": SETTINGS_ROW_ID})
        profiles = supabase_rest.sb_select("profiles")
        logger.debug(f"Fetched snapshot: {len(habits)} habits, {len(logs)} logs, {len(profiles)} profiles")
        return build_state(habits, teams, logs, settings[0] if settings else None, profiles, current_user_id)

    @backend_call
    def count_profiles(self) -> int:
        return supabase_rest.sb_count("profiles")

    def _profile(self, user_id: str, columns: str) -> dict:
        rows = supabase_rest.sb_select("profiles", filters={"id": user_id}, columns=columns)
        return rows[0] if rows else {}

    # ── Logs ──────────────────────────────────────────────────────
    @backend_call
    def toggle_completion(self, user_id: str, habit_id: str, date: str, was_completed: bool) -> dict:
        lid = log_id(user_id, habit_id, date)
        if was_completed:
            supabase_rest.sb_delete("logs", "id", lid)
            return {"type": "delete", "id": lid}

        log = Log(id=lid, user_id=user_id, habit_id=habit_id, date=date, completed=True)
        supabase_rest.sb_upsert("logs", log.model_dump())
        return {"type": "insert", "log": log}

    # ── Habits ────────────────────────────────────────────────────
    @backend_call
    def add_habit(self, habit: Habit) -> None:
        supabase_rest.sb_insert("habits", habit.model_dump())

    @backend_call
    def update_habit(self, habit: Habit) -> None:
        supabase_rest.sb_update("habits", "id", habit.id, habit.model_dump(exclude={"id"}))

    @backend_call
    def remove_habit(self, habit_id: str) -> None:
        supabase_rest.sb_delete("logs", "habit_id", habit_id)
        supabase_rest.sb_delete("habits", "id", habit_id)

    # ── Settings ──────────────────────────────────────────────────
    @backend_call
    def update_settings(self, settings: ChallengeSettings) -> None:
        row = {
            "id": SETTINGS_ROW_ID,
            "name": settings.name,
            "start_date": settings.start_date,
            "end_date": settings.end_date,
            "is_active": settings.is_active,
        }
        if self.legacy_encoding:
            row["rules"] = pack_rules(settings.rules, settings.stake_amount)
        else:
            row["rules"] = settings.rules
            row["stake_amount"] = settings.stake_amount
        supabase_rest.sb_upsert("settings", row)

    # ── Teams ─────────────────────────────────────────────────────
    @backend_call
    def add_team(self, team: Team) -> None:
        supabase_rest.sb_insert("teams", {
            "id": team.id, "name": team.name, "color": team.color, "order_index": team.order,
        })

    @backend_call
    def update_team(self, team: Team) -> None:
        supabase_rest.sb_update("teams", "id", team.id, {
            "name": team.name, "color": team.color, "order_index": team.order,
        })

    @backend_call
    def remove_team(self, team_id: str) -> None:
        supabase_rest.sb_update("profiles", "team_id", team_id, {"team_id": None})
        supabase_rest.sb_delete("teams", "id", team_id)

    # ── Profiles ──────────────────────────────────────────────────
    @backend_call
    def create_profile(self, user: User) -> None:
        row = {
            "id": user.id,
            "email": user.email,
            "name": user.name,
            "avatar_url": user.avatar_url,
            "role": user.role.value,
        }
        supabase_rest.sb_upsert("profiles", row)

    @backend_call
    def update_user_team(self, user_id: str, team_id: Optional[str]) -> None:
        supabase_rest.sb_update("profiles", "id", user_id, {"team_id": team_id})

    @backend_call
    def update_user_avatar(self, user_id: str, avatar_url: str) -> None:
        supabase_rest.sb_update("profiles", "id", user_id, {"avatar_url": avatar_url})

    @backend_call
    def update_user_name(self, user_id: str, name: str) -> None:
        if self.legacy_encoding:
            # Keep the packed habit list that shares the column
            _, ids = unpack_name(self._profile(user_id, "name").get("name"))
            supabase_rest.sb_update("profiles", "id", user_id, {"name": pack_name(name, ids)})
            return

        profile = self._profile(user_id, "name,habit_ids")
        data = {"name": name.strip()}
        _, packed_ids = unpack_name(profile.get("name"))
        if packed_ids and not profile.get("habit_ids"):
            # Move a legacy packed selection into its own column before the name loses it
            data["habit_ids"] = packed_ids
        supabase_rest.sb_update("profiles", "id", user_id, data)

    @backend_call
    def update_user_habits(self, user_id: str, habit_ids: list[str]) -> None:
        if self.legacy_encoding:
            name, _ = unpack_name(self._profile(user_id, "name").get("name"))
            supabase_rest.sb_update("profiles", "id", user_id, {"name": pack_name(name, habit_ids)})
            return

        profile = self._profile(user_id, "name")
        name, packed_ids = unpack_name(profile.get("name"))
        data = {"habit_ids": list(habit_ids)}
        if packed_ids is not None:
            data["name"] = name
        supabase_rest.sb_update("profiles", "id", user_id, data)

    @backend_call
    def delete_account(self, user_id: str) -> None:
        supabase_rest.sb_delete("logs", "user_id", user_id)
        supabase_rest.sb_delete("profiles", "id", user_id)
