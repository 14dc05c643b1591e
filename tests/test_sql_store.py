import pytest
from sqlalchemy.exc import OperationalError

from models.profile import Profile
from schemas import ChallengeSettings, Habit, Role, User
from services.data_store import StoreError


def _completed(store, user_id="u1"):
    return {(l.habit_id, l.date) for l in store.fetch_snapshot().logs if l.user_id == user_id}


def test_snapshot_round_trip(seeded_sql_store):
    state = seeded_sql_store.fetch_snapshot(current_user_id="u1")
    assert [t.id for t in state.teams] == ["t1", "t2"]
    assert {h.id for h in state.habits} == {"h1", "h2"}
    assert state.settings.stake_amount == 200
    assert state.current_user.role == Role.ADMIN
    assert state.logs == []


def test_toggle_twice_restores_state(seeded_sql_store):
    store = seeded_sql_store
    ack = store.toggle_completion("u1", "h1", "2024-03-02", was_completed=False)
    assert ack["type"] == "insert"
    assert ack["log"].id == "u1-h1-2024-03-02"
    assert _completed(store) == {("h1", "2024-03-02")}

    assert store.toggle_completion("u1", "h1", "2024-03-02", was_completed=True)["type"] == "delete"
    assert _completed(store) == set()


def test_repeated_insert_keeps_one_row(seeded_sql_store):
    for _ in range(3):
        seeded_sql_store.toggle_completion("u1", "h1", "2024-03-02", was_completed=False)
    assert len(seeded_sql_store.fetch_snapshot().logs) == 1


def test_remove_habit_drops_its_logs(seeded_sql_store):
    seeded_sql_store.toggle_completion("u1", "h1", "2024-03-02", was_completed=False)
    seeded_sql_store.toggle_completion("u1", "h2", "2024-03-02", was_completed=False)
    seeded_sql_store.remove_habit("h1")

    state = seeded_sql_store.fetch_snapshot()
    assert [h.id for h in state.habits] == ["h2"]
    assert {l.habit_id for l in state.logs} == {"h2"}


def test_update_habit(seeded_sql_store):
    seeded_sql_store.update_habit(Habit(id="h1", name="Drink 2L Water", points=3, category="health"))
    habit = next(h for h in seeded_sql_store.fetch_snapshot().habits if h.id == "h1")
    assert (habit.name, habit.points) == ("Drink 2L Water", 3)

    with pytest.raises(KeyError):
        seeded_sql_store.update_habit(Habit(id="missing", name="x", points=1))


def test_remove_team_unassigns_members(seeded_sql_store):
    seeded_sql_store.remove_team("t1")
    state = seeded_sql_store.fetch_snapshot()
    assert [t.id for t in state.teams] == ["t2"]
    assert {u.id: u.team_id for u in state.users} == {"u1": None, "u2": None, "u3": "t2"}


def test_update_settings_replaces_row(seeded_sql_store, settings):
    seeded_sql_store.update_settings(settings.model_copy(update={"stake_amount": 50, "name": "Round 2"}))
    s = seeded_sql_store.fetch_snapshot().settings
    assert (s.name, s.stake_amount) == ("Round 2", 50)


def test_profile_updates(seeded_sql_store):
    store = seeded_sql_store
    store.update_user_team("u3", "t1")
    store.update_user_avatar("u3", "https://example.com/c.png")
    store.update_user_name("u3", "  Chuck ")
    store.update_user_habits("u3", ["h1", "h2"])

    user = next(u for u in store.fetch_snapshot().users if u.id == "u3")
    assert (user.team_id, user.avatar_url, user.name) == ("t1", "https://example.com/c.png", "Chuck")
    assert user.habit_ids == ["h1", "h2"]

    with pytest.raises(KeyError):
        store.update_user_team("ghost", None)


def test_rename_keeps_packed_selection(sql_store):
    sql_store.create_profile(User(id="u9", name="Dana"))
    with sql_store._session() as db:
        db.get(Profile, "u9").name = 'Dana:::["h1"]'

    sql_store.update_user_name("u9", "Danielle")
    user = sql_store.fetch_snapshot().users[0]
    assert user.name == "Danielle"
    assert user.habit_ids == ["h1"]


def test_delete_account(seeded_sql_store):
    seeded_sql_store.toggle_completion("u2", "h1", "2024-03-02", was_completed=False)
    seeded_sql_store.delete_account("u2")
    state = seeded_sql_store.fetch_snapshot()
    assert "u2" not in {u.id for u in state.users}
    assert state.logs == []
    assert seeded_sql_store.count_profiles() == 2


def test_missing_settings_row_falls_back(sql_store):
    assert sql_store.fetch_snapshot().settings.stake_amount == 200


def test_database_errors_become_store_errors(sql_store, monkeypatch):
    def broken(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("disk I/O error"))

    monkeypatch.setattr(sql_store, "session_factory", broken_factory(sql_store.session_factory, broken))
    with pytest.raises(StoreError):
        sql_store.fetch_snapshot()
    with pytest.raises(StoreError):
        sql_store.update_settings(ChallengeSettings(name="x", start_date="2024-03-01",
                                                    end_date="2024-03-02", stake_amount=1))


def broken_factory(factory, failing_query):
    def make():
        db = factory()
        db.query = failing_query
        db.merge = failing_query
        return db
    return make
