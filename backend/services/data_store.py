"""
data_store.py — Data-access contract shared by the Supabase and SQL stores
Stores return raw rows; the normalizers here turn them into schema entities,
falling back to safe defaults on malformed data instead of failing the load.
"""

import json
import logging
from datetime import timedelta
from typing import Optional, Protocol

from pydantic import ValidationError

from config import (
    DEFAULT_CHALLENGE_DAYS, DEFAULT_CHALLENGE_NAME, DEFAULT_RULES, DEFAULT_STAKE_AMOUNT,
)
from schemas import AppState, ChallengeSettings, Habit, Log, Role, Team, User
from services.calendar_utils import date_key, local_day, local_now
from services.legacy_fields import parse_stake, unpack_name, unpack_rules

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """A backend read or write failed (network, HTTP status, database)."""


class DataStore(Protocol):
    def fetch_snapshot(self, current_user_id: Optional[str] = None) -> AppState: ...
    def toggle_completion(self, user_id: str, habit_id: str, date: str, was_completed: bool) -> dict: ...
    def add_habit(self, habit: Habit) -> None: ...
    def update_habit(self, habit: Habit) -> None: ...
    def remove_habit(self, habit_id: str) -> None: ...
    def update_settings(self, settings: ChallengeSettings) -> None: ...
    def add_team(self, team: Team) -> None: ...
    def update_team(self, team: Team) -> None: ...
    def remove_team(self, team_id: str) -> None: ...
    def update_user_team(self, user_id: str, team_id: Optional[str]) -> None: ...
    def update_user_avatar(self, user_id: str, avatar_url: str) -> None: ...
    def update_user_name(self, user_id: str, name: str) -> None: ...
    def update_user_habits(self, user_id: str, habit_ids: list[str]) -> None: ...
    def delete_account(self, user_id: str) -> None: ...
    def create_profile(self, user: User) -> None: ...
    def count_profiles(self) -> int: ...


# ── Row normalization ─────────────────────────────────────────────
def default_settings(rules: str = DEFAULT_RULES, stake_amount: float = DEFAULT_STAKE_AMOUNT) -> ChallengeSettings:
    today = local_day(local_now())
    return ChallengeSettings(
        name=DEFAULT_CHALLENGE_NAME,
        start_date=date_key(today),
        end_date=date_key(today + timedelta(days=DEFAULT_CHALLENGE_DAYS)),
        is_active=True,
        rules=rules,
        stake_amount=stake_amount,
    )


def normalize_settings(row: Optional[dict]) -> ChallengeSettings:
    if not row:
        logger.warning("No challenge settings row found; using defaults.")
        return default_settings()

    rules, tagged_stake = unpack_rules(row.get("rules") or DEFAULT_RULES)
    stake = parse_stake(row.get("stake_amount"))
    if stake is None and row.get("stake_amount") is not None:
        logger.warning(f"Invalid stake_amount {row['stake_amount']!r}; ignoring it")
    if stake is None:
        stake = tagged_stake if tagged_stake is not None else float(DEFAULT_STAKE_AMOUNT)

    try:
        return ChallengeSettings(
            name=row.get("name") or DEFAULT_CHALLENGE_NAME,
            start_date=row.get("start_date") or "",
            end_date=row.get("end_date") or "",
            is_active=bool(row.get("is_active", True)),
            rules=rules,
            stake_amount=stake,
        )
    except ValidationError as e:
        logger.warning(f"Malformed settings row {row!r}; using defaults: {e}")
        return default_settings(rules=rules, stake_amount=stake)


def _habit_ids_column(value) -> Optional[list[str]]:
    if value in (None, ""):
        return None
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            logger.warning(f"Unreadable habit_ids column {value!r}")
            return None
    if not isinstance(value, list):
        return None
    return [str(v) for v in value]


def normalize_user(row: dict) -> User:
    name, packed_ids = unpack_name(row.get("name"))
    habit_ids = _habit_ids_column(row.get("habit_ids")) or packed_ids or []

    role = row.get("role") or Role.MEMBER.value
    if role not in (Role.ADMIN.value, Role.MEMBER.value):
        logger.warning(f"Unknown role {role!r} for profile {row.get('id')}; treating as MEMBER")
        role = Role.MEMBER.value

    return User(
        id=str(row["id"]),
        name=name,
        email=row.get("email") or "",
        role=role,
        team_id=row.get("team_id"),
        avatar_url=row.get("avatar_url"),
        habit_ids=habit_ids,
    )


def normalize_team(row: dict) -> Team:
    return Team(
        id=str(row["id"]),
        name=row.get("name") or "",
        color=row.get("color") or "#4f46e5",
        order=row.get("order_index") or 0,
    )


def _parse_rows(rows: list[dict], model, label: str) -> list:
    parsed = []
    for row in rows or []:
        try:
            parsed.append(model(**row))
        except (ValidationError, TypeError) as e:
            logger.warning(f"Skipping malformed {label} row {row.get('id')!r}: {e}")
    return parsed


def build_state(habit_rows, team_rows, log_rows, settings_row, profile_rows,
                current_user_id: Optional[str] = None) -> AppState:
    habits = _parse_rows(
        [{**r, "description": r.get("description") or "", "category": r.get("category") or "other"}
         for r in habit_rows or []],
        Habit, "habit",
    )
    logs = _parse_rows(log_rows, Log, "log")
    teams = [normalize_team(r) for r in team_rows or []]
    users = [normalize_user(r) for r in profile_rows or []]

    current = None
    if current_user_id is not None:
        current = next((u for u in users if u.id == current_user_id), None)

    return AppState(
        current_user=current,
        users=users,
        teams=teams,
        habits=habits,
        logs=logs,
        settings=normalize_settings(settings_row),
    )
