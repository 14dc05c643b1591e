"""
completion_index.py — O(1) "did user U complete habit H on day D" lookups
Built once per derivation from the log set. Only logs with completed=True are
indexed; absence means "not done".
"""

from collections import defaultdict

from schemas import Log


def log_id(user_id: str, habit_id: str, date: str) -> str:
    """Deterministic log id; one row per (user, habit, day)."""
    return f"{user_id}-{habit_id}-{date}"


class CompletionIndex:
    def __init__(self, logs: list[Log]):
        self._done: set[tuple[str, str, str]] = set()
        self._days_active: set[tuple[str, str]] = set()
        self._by_user: dict[str, list[Log]] = defaultdict(list)

        for log in logs:
            if not log.completed:
                continue
            key = (log.user_id, log.habit_id, log.date)
            if key in self._done:
                continue  # duplicate rows for the same key count once
            self._done.add(key)
            self._days_active.add((log.user_id, log.date))
            self._by_user[log.user_id].append(log)

    def completed(self, user_id: str, habit_id: str, date: str) -> bool:
        return (user_id, habit_id, date) in self._done

    def active_on(self, user_id: str, date: str) -> bool:
        """Any completed habit at all on that day."""
        return (user_id, date) in self._days_active

    def user_logs(self, user_id: str) -> list[Log]:
        return self._by_user.get(user_id, [])

    def __len__(self):
        return len(self._done)
