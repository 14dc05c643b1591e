"""
state_service.py — Latest snapshot + mutations against the data store
Holds the most recently fetched AppState (refetched after SNAPSHOT_TTL_SECONDS
or after any write). Log toggles are applied optimistically to the cached
snapshot and undone with the command's inverse if the store call fails. At
most one toggle per (user, habit, day) may be in flight.
"""

import logging
import time
import uuid
from dataclasses import dataclass
from datetime import date as date_cls
from typing import Optional

from fastapi.concurrency import run_in_threadpool

from config import HABIT_SELECTION_SIZE, SNAPSHOT_TTL_SECONDS
from schemas import AppState, Habit, Log, Team
from services.calendar_utils import date_key, parse_local_date
from services.completion_index import CompletionIndex, log_id
from services.data_store import DataStore, StoreError
from services.leaderboard_service import LeaderboardService

logger = logging.getLogger(__name__)


class ToggleInProgressError(Exception):
    """The same habit/day is already being toggled for this user."""


class HabitSelectionError(ValueError):
    def __init__(self, message: str, locked: bool = False):
        super().__init__(message)
        self.locked = locked


@dataclass(frozen=True)
class ToggleCommand:
    user_id: str
    habit_id: str
    date: str
    was_completed: bool

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.user_id, self.habit_id, self.date)

    def apply(self, logs: list[Log]) -> list[Log]:
        lid = log_id(self.user_id, self.habit_id, self.date)
        kept = [l for l in logs if l.id != lid and (l.user_id, l.habit_id, l.date) != self.key]
        if self.was_completed:
            return kept
        return kept + [Log(id=lid, user_id=self.user_id, habit_id=self.habit_id, date=self.date, completed=True)]

    def inverse(self) -> "ToggleCommand":
        return ToggleCommand(self.user_id, self.habit_id, self.date, not self.was_completed)


class StateService:
    def __init__(self, store: DataStore, ttl_seconds: float = SNAPSHOT_TTL_SECONDS, clock=time.monotonic):
        self.store = store
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._state: Optional[AppState] = None
        self._fetched_at = 0.0
        self._pending: set[tuple[str, str, str]] = set()

    # ── Snapshot ──────────────────────────────────────────────────
    def refresh(self) -> AppState:
        self._state = self.store.fetch_snapshot()
        self._fetched_at = self._clock()
        logger.debug("Snapshot refreshed")
        return self._state

    def snapshot(self, force: bool = False) -> AppState:
        expired = self._clock() - self._fetched_at > self.ttl_seconds
        if force or self._state is None or expired:
            return self.refresh()
        return self._state

    async def current(self, force: bool = False) -> AppState:
        """snapshot() off the event loop, for async routes."""
        return await run_in_threadpool(self.snapshot, force)

    def view(self, user_id: str) -> AppState:
        """Snapshot with current_user set (None when the profile is missing)."""
        state = self.snapshot()
        user = next((u for u in state.users if u.id == user_id), None)
        return state.model_copy(update={"current_user": user})

    def is_pending(self, user_id: str, habit_id: str, date: str) -> bool:
        return (user_id, habit_id, date) in self._pending

    # ── Log toggle ────────────────────────────────────────────────
    def _apply(self, command: ToggleCommand) -> None:
        self._state = self._state.model_copy(update={"logs": command.apply(self._state.logs)})

    async def toggle(self, user_id: str, habit_id: str, date: str, today: Optional[date_cls] = None) -> dict:
        """
        Flip completion of habit_id on `date` for user_id.
        Raises ToggleInProgressError, KeyError (unknown habit), ValueError
        (bad or future date) or StoreError (after rolling back).
        """
        day = parse_local_date(date)
        if today is not None and day > today:
            raise ValueError("Cannot log habits for a future day")
        date = date_key(day)

        key = (user_id, habit_id, date)
        if key in self._pending:
            raise ToggleInProgressError(f"Toggle already in progress for {habit_id} on {date}")
        self._pending.add(key)
        try:
            state = await self.current()
            if not any(h.id == habit_id for h in state.habits):
                raise KeyError(habit_id)

            was_completed = CompletionIndex(state.logs).completed(user_id, habit_id, date)
            command = ToggleCommand(user_id, habit_id, date, was_completed)
            self._apply(command)
            try:
                ack = await run_in_threadpool(
                    self.store.toggle_completion, user_id, habit_id, date, was_completed,
                )
            except StoreError:
                logger.warning(f"Toggle of {habit_id} on {date} for {user_id} failed; rolling back")
                self._apply(command.inverse())
                raise
            return {"habit_id": habit_id, "date": date, "completed": not was_completed, "ack": ack}
        finally:
            self._pending.discard(key)

    # ── Other writes ──────────────────────────────────────────────
    async def mutate(self, fn, *args) -> AppState:
        """One store write, then a fresh snapshot."""
        await run_in_threadpool(fn, *args)
        return await run_in_threadpool(self.refresh)

    async def add_habit(self, name: str, points: int, category: str, description: str = "") -> Habit:
        habit = Habit(id=f"h_{uuid.uuid4().hex[:12]}", name=name, description=description,
                      points=points, category=category)
        await self.mutate(self.store.add_habit, habit)
        return habit

    async def add_team(self, name: str, color: str) -> Team:
        state = await self.current()
        next_order = max((t.order for t in state.teams), default=-1) + 1
        team = Team(id=f"t_{uuid.uuid4().hex[:12]}", name=name, color=color, order=next_order)
        await self.mutate(self.store.add_team, team)
        return team

    async def move_team(self, team_id: str, direction: str) -> AppState:
        state = await self.current(force=True)
        changed = LeaderboardService.move(state.teams, team_id, direction)
        for team in changed:
            await run_in_threadpool(self.store.update_team, team)
        return await run_in_threadpool(self.refresh)

    async def select_habits(self, user_id: str, habit_ids: list[str]) -> AppState:
        """Save a personal selection: exactly HABIT_SELECTION_SIZE known habits, once."""
        state = await self.current(force=True)
        user = next((u for u in state.users if u.id == user_id), None)
        if user is None:
            raise KeyError(user_id)
        if user.habit_ids:
            raise HabitSelectionError("Habit selection is locked once saved", locked=True)
        if len(habit_ids) != HABIT_SELECTION_SIZE or len(set(habit_ids)) != len(habit_ids):
            raise HabitSelectionError(f"Select exactly {HABIT_SELECTION_SIZE} different habits")
        known = {h.id for h in state.habits}
        unknown = [i for i in habit_ids if i not in known]
        if unknown:
            raise HabitSelectionError(f"Unknown habits: {', '.join(unknown)}")
        return await self.mutate(self.store.update_user_habits, user_id, list(habit_ids))


_state_service: Optional[StateService] = None


def get_state_service() -> StateService:
    """FastAPI dependency — process-wide StateService over the configured store."""
    global _state_service

    if _state_service is None:
        from supabase_client import is_supabase_configured

        if is_supabase_configured():
            from services.supabase_store import SupabaseStore
            store = SupabaseStore()
            logger.info("Using Supabase data store")
        else:
            from database import SessionLocal
            from services.sql_store import SqlStore
            store = SqlStore(SessionLocal)
            logger.info("Supabase not configured; using local SQL data store")
        _state_service = StateService(store)

    return _state_service
