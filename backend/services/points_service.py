"""
points_service.py — Daily points & perfect-day streaks
Two "active habit set" policies exist and are kept apart on purpose:
  - scoring (active_habits): the user's selection, or the full catalog when
    nothing is selected. Used for points, streaks and stake math.
  - display (selected_habits): the user's selection only; empty until chosen.
"""

import logging
from datetime import date, timedelta

from schemas import DailyPoints, Habit, HabitCount, User
from services.calendar_utils import date_key, days_in_range
from services.completion_index import CompletionIndex

logger = logging.getLogger(__name__)


class PointsService:
    @staticmethod
    def habit_lookup(habits: list[Habit]) -> dict[str, Habit]:
        return {h.id: h for h in habits}

    @staticmethod
    def selected_habits(user: User, habits: list[Habit]) -> list[Habit]:
        """Display policy. Unknown ids in the selection are ignored."""
        wanted = set(user.habit_ids or [])
        return [h for h in habits if h.id in wanted]

    @staticmethod
    def active_habits(user: User, habits: list[Habit]) -> list[Habit]:
        """Scoring policy: selection if non-empty, else the whole catalog."""
        selected = PointsService.selected_habits(user, habits)
        return selected if selected else list(habits)

    @staticmethod
    def daily_points(user: User, habits: list[Habit], index: CompletionIndex, day: str) -> int:
        return sum(
            h.points for h in PointsService.active_habits(user, habits)
            if index.completed(user.id, h.id, day)
        )

    @staticmethod
    def is_perfect_day(user_id: str, active: list[Habit], index: CompletionIndex, day: str) -> bool:
        if not active:
            return False
        return all(index.completed(user_id, h.id, day) for h in active)

    @staticmethod
    def streak(user: User, habits: list[Habit], index: CompletionIndex, today: date, start: date) -> int:
        """
        Consecutive perfect days ending today (if today is perfect) or yesterday.
        Never looks before the challenge start date.
        """
        active = PointsService.active_habits(user, habits)
        if not active or today < start:
            return 0

        streak = 0
        check = today
        if PointsService.is_perfect_day(user.id, active, index, date_key(check)):
            streak = 1
        check -= timedelta(days=1)

        while check >= start and PointsService.is_perfect_day(user.id, active, index, date_key(check)):
            streak += 1
            check -= timedelta(days=1)
        return streak

    @staticmethod
    def earned_points(user_id: str, index: CompletionIndex, lookup: dict[str, Habit]) -> int:
        """Points of every completed log; logs of deleted habits contribute nothing."""
        total = 0
        for log in index.user_logs(user_id):
            habit = lookup.get(log.habit_id)
            if habit is None:
                logger.debug(f"Skipping orphan log {log.id}: habit {log.habit_id} no longer exists")
                continue
            total += habit.points
        return total

    @staticmethod
    def points_on(user_id: str, index: CompletionIndex, lookup: dict[str, Habit], day: str) -> int:
        """All completed habits that day, full catalog."""
        return sum(h.points for h in lookup.values() if index.completed(user_id, h.id, day))

    @staticmethod
    def points_by_day(user_id: str, index: CompletionIndex, lookup: dict[str, Habit],
                      start: date, end: date) -> list[DailyPoints]:
        return [
            DailyPoints(date=date_key(d), points=PointsService.points_on(user_id, index, lookup, date_key(d)))
            for d in days_in_range(start, end)
        ]

    @staticmethod
    def habit_counts(user_id: str, index: CompletionIndex, habits: list[Habit]) -> list[HabitCount]:
        counts = {h.id: 0 for h in habits}
        for log in index.user_logs(user_id):
            if log.habit_id in counts:
                counts[log.habit_id] += 1
        rows = [HabitCount(habit_id=h.id, name=h.name, count=counts[h.id]) for h in habits]
        return sorted(rows, key=lambda r: r.count, reverse=True)
