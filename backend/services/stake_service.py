"""
stake_service.py — Money at stake
Turns points into currency with a per-user value-per-point:

    value_per_point = stake / (daily possible points * challenge days)

and derives saved-so-far, current debt, lost-so-far (missed habits on past
days, never recoverable) and the cost of today (still recoverable).
"""

from datetime import date, timedelta

from schemas import ChallengeSettings, Habit, StakeSummary, User
from services.calendar_utils import count_days_inclusive, date_key, days_in_range, parse_local_date
from services.completion_index import CompletionIndex
from services.points_service import PointsService


class StakeService:
    @staticmethod
    def summary(user: User, habits: list[Habit], index: CompletionIndex,
                settings: ChallengeSettings, today: date) -> StakeSummary:
        start = parse_local_date(settings.start_date)
        end = parse_local_date(settings.end_date)
        stake = float(settings.stake_amount)

        duration_days = max(1, count_days_inclusive(start, end))
        active = PointsService.active_habits(user, habits)
        daily_possible = sum(h.points for h in active)
        total_possible = daily_possible * duration_days
        value_per_point = stake / total_possible if total_possible > 0 else 0.0

        earned = PointsService.earned_points(user.id, index, PointsService.habit_lookup(habits))
        saved = earned * value_per_point
        current_debt = max(0.0, stake - saved)

        # Past days only; today is still playable and days after the end never existed
        lost = 0.0
        missed = 0
        last_counted = min(today - timedelta(days=1), end)
        for d in days_in_range(start, last_counted):
            key = date_key(d)
            for habit in active:
                if not index.completed(user.id, habit.id, key):
                    missed += 1
                    lost += habit.points * value_per_point

        cost_of_today = 0.0
        if start <= today <= end:
            earned_today = PointsService.daily_points(user, habits, index, date_key(today))
            cost_of_today = max(0, daily_possible - earned_today) * value_per_point

        return StakeSummary(
            stake_amount=stake,
            duration_days=duration_days,
            daily_possible_points=daily_possible,
            total_possible_points=total_possible,
            value_per_point=value_per_point,
            earned_points=earned,
            saved_so_far=saved,
            lost_so_far=lost,
            missed_habits_count=missed,
            current_debt=current_debt,
            cost_of_today=cost_of_today,
        )

    @staticmethod
    def pot(users: list[User], habits: list[Habit], index: CompletionIndex,
            settings: ChallengeSettings, today: date) -> float:
        """Money guaranteed to be paid out: everyone's lost-so-far."""
        return sum(
            StakeService.summary(u, habits, index, settings, today).lost_so_far
            for u in users
        )
