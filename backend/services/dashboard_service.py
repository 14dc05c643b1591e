"""
dashboard_service.py — The derivation pipeline
AppState + now -> (timeline, completion index) -> (points, streak) -> stake.
Everything here is recomputed from the snapshot on every call.
"""

from datetime import datetime
from typing import Optional

from schemas import AppState, Dashboard, DashboardHabit, ProfileStats, User
from services.calendar_utils import date_key, local_day, parse_local_date
from services.completion_index import CompletionIndex
from services.points_service import PointsService
from services.stake_service import StakeService
from services.timeline_service import TimelineService

TOP_HABITS = 5


class DashboardService:
    @staticmethod
    def build(state: AppState, user: User, now: datetime, day: Optional[str] = None) -> Dashboard:
        """Dashboard for `user` looking at `day` (defaults to today; future days are refused)."""
        today = local_day(now)
        viewed = parse_local_date(day) if day else today
        if viewed > today:
            raise ValueError("Cannot view or log habits for a future day")
        viewed_key = date_key(viewed)

        index = CompletionIndex(state.logs)
        start = parse_local_date(state.settings.start_date)
        team = next((t for t in state.teams if t.id == user.team_id), None)

        shown = PointsService.selected_habits(user, state.habits)
        rows = [
            DashboardHabit(habit=h, completed=index.completed(user.id, h.id, viewed_key))
            for h in shown
        ]
        # Incomplete first, then by points descending
        rows.sort(key=lambda r: (r.completed, -r.habit.points))

        return Dashboard(
            challenge_name=state.settings.name,
            day=viewed_key,
            is_today=viewed == today,
            team_name=team.name if team else None,
            timeline=TimelineService.snapshot(state.settings, now),
            daily_points=PointsService.daily_points(user, state.habits, index, viewed_key),
            completed_count=sum(1 for r in rows if r.completed),
            active_count=len(rows),
            streak=PointsService.streak(user, state.habits, index, today, start),
            needs_habit_selection=not shown,
            habits=rows,
            stake=StakeService.summary(user, state.habits, index, state.settings, today),
        )

    @staticmethod
    def profile(state: AppState, user: User, now: datetime) -> ProfileStats:
        today = local_day(now)
        index = CompletionIndex(state.logs)
        lookup = PointsService.habit_lookup(state.habits)
        start = parse_local_date(state.settings.start_date)
        end = parse_local_date(state.settings.end_date)

        return ProfileStats(
            user_id=user.id,
            name=user.name,
            avatar_url=user.avatar_url,
            points_today=PointsService.points_on(user.id, index, lookup, date_key(today)),
            streak=PointsService.streak(user, state.habits, index, today, start),
            chart=PointsService.points_by_day(user.id, index, lookup, start, min(today, end)),
            top_habits=PointsService.habit_counts(user.id, index, state.habits)[:TOP_HABITS],
            stake=StakeService.summary(user, state.habits, index, state.settings, today),
        )
