"""
leaderboard_service.py — Team standings
Team score uses the full habit catalog so teams stay comparable; team debt is
the sum of member debts. Rows come back in two independent orders: admin
display order and rank (score, descending).
"""

from datetime import date

from schemas import (
    AppState, Leaderboard, Team, TeamMemberStanding, TeamStanding,
)
from services.calendar_utils import date_key
from services.completion_index import CompletionIndex
from services.points_service import PointsService
from services.stake_service import StakeService


class LeaderboardService:
    @staticmethod
    def by_display_order(rows: list[TeamStanding]) -> list[TeamStanding]:
        # sorted() is stable, so equal ranks keep insertion order
        return sorted(rows, key=lambda r: r.order)

    @staticmethod
    def by_rank(rows: list[TeamStanding]) -> list[TeamStanding]:
        return sorted(rows, key=lambda r: r.score, reverse=True)

    @staticmethod
    def standings(state: AppState, index: CompletionIndex, today: date) -> list[TeamStanding]:
        lookup = PointsService.habit_lookup(state.habits)
        today_key = date_key(today)
        rows = []
        for team in state.teams:
            members = []
            for user in state.users:
                if user.team_id != team.id:
                    continue
                stake = StakeService.summary(user, state.habits, index, state.settings, today)
                members.append(TeamMemberStanding(
                    user_id=user.id,
                    name=user.name,
                    avatar_url=user.avatar_url,
                    score=PointsService.earned_points(user.id, index, lookup),
                    current_debt=stake.current_debt,
                    active_today=index.active_on(user.id, today_key),
                ))
            rows.append(TeamStanding(
                team_id=team.id,
                name=team.name,
                color=team.color,
                order=team.order,
                score=sum(m.score for m in members),
                debt=sum(m.current_debt for m in members),
                member_count=len(members),
                members=members,
            ))
        return rows

    @staticmethod
    def build(state: AppState, index: CompletionIndex, today: date) -> Leaderboard:
        rows = LeaderboardService.standings(state, index, today)
        return Leaderboard(
            by_order=LeaderboardService.by_display_order(rows),
            by_rank=LeaderboardService.by_rank(rows),
            pot=StakeService.pot(state.users, state.habits, index, state.settings, today),
        )

    @staticmethod
    def move(teams: list[Team], team_id: str, direction: str) -> list[Team]:
        """
        Swap `order` with the neighbour above ("up") or below ("down") in
        display order. Returns the changed teams (empty at either edge).
        """
        if direction not in ("up", "down"):
            raise ValueError(f"Unknown direction: {direction}")
        ordered = sorted(teams, key=lambda t: t.order)
        pos = next((i for i, t in enumerate(ordered) if t.id == team_id), None)
        if pos is None:
            raise KeyError(team_id)

        other = pos - 1 if direction == "up" else pos + 1
        if other < 0 or other >= len(ordered):
            return []

        a, b = ordered[pos], ordered[other]
        if a.order == b.order:
            # Tied ranks: make them distinct, keeping the requested direction
            a_order, b_order = (b.order - 1, b.order) if direction == "up" else (b.order + 1, b.order)
        else:
            a_order, b_order = b.order, a.order
        return [a.model_copy(update={"order": a_order}), b.model_copy(update={"order": b_order})]
