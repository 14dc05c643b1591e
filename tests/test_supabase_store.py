import httpx
import pytest

import supabase_rest
from schemas import User
from services.data_store import StoreError
from services.supabase_store import SupabaseStore


class RecordingRest:
    """Stands in for the supabase_rest helpers and records every call."""

    def __init__(self, tables=None):
        self.tables = tables or {}
        self.calls = []

    def sb_select(self, table, filters=None, columns="*", order=None, limit=None):
        self.calls.append(("select", table, filters, order, limit))
        return list(self.tables.get(table, []))

    def sb_insert(self, table, data):
        self.calls.append(("insert", table, data))
        return data

    def sb_upsert(self, table, data):
        self.calls.append(("upsert", table, data))
        return data

    def sb_update(self, table, col, val, data):
        self.calls.append(("update", table, col, val, data))
        return data

    def sb_delete(self, table, col, val):
        self.calls.append(("delete", table, col, val))

    def sb_count(self, table, filters=None):
        return len(self.tables.get(table, []))

    def writes(self):
        return [c for c in self.calls if c[0] != "select"]


@pytest.fixture
def rest(monkeypatch):
    fake = RecordingRest({
        "habits": [{"id": "h1", "name": "Water", "points": 5, "category": "health", "description": None}],
        "teams": [{"id": "t1", "name": "Alpha", "color": "#000", "order_index": 0}],
        "logs": [{"id": "u1-h1-2024-03-01", "user_id": "u1", "habit_id": "h1",
                  "date": "2024-03-01", "completed": True}],
        "settings": [{"id": 1, "name": "C", "start_date": "2024-03-01", "end_date": "2024-03-10",
                      "is_active": True, "rules": "[STAKE:300] Be honest"}],
        "profiles": [{"id": "u1", "name": 'Alice:::["h1"]', "email": "a@family.com", "role": "ADMIN"}],
    })
    for name in ("sb_select", "sb_insert", "sb_upsert", "sb_update", "sb_delete", "sb_count"):
        monkeypatch.setattr(supabase_rest, name, getattr(fake, name))
    return fake


def test_fetch_snapshot_reads_legacy_rows(rest):
    state = SupabaseStore(legacy_encoding=False, log_limit=500).fetch_snapshot("u1")
    assert state.settings.stake_amount == 300
    assert state.settings.rules == "Be honest"
    assert state.current_user.name == "Alice"
    assert state.current_user.habit_ids == ["h1"]
    assert len(state.logs) == 1
    assert ("select", "logs", None, "date.desc", 500) in rest.calls


def test_toggle_uses_deterministic_id(rest):
    store = SupabaseStore()
    ack = store.toggle_completion("u1", "h1", "2024-03-02", was_completed=False)
    assert ack["log"].id == "u1-h1-2024-03-02"
    store.toggle_completion("u1", "h1", "2024-03-02", was_completed=True)
    assert rest.writes() == [
        ("upsert", "logs", {"id": "u1-h1-2024-03-02", "user_id": "u1", "habit_id": "h1",
                            "date": "2024-03-02", "completed": True}),
        ("delete", "logs", "id", "u1-h1-2024-03-02"),
    ]


def test_structured_settings_write(rest, settings):
    SupabaseStore(legacy_encoding=False).update_settings(settings)
    (_, table, row), = rest.writes()
    assert table == "settings"
    assert row["stake_amount"] == 200
    assert row["rules"] == "Be honest"


def test_legacy_settings_write_packs_stake(rest, settings):
    SupabaseStore(legacy_encoding=True).update_settings(settings)
    (_, _, row), = rest.writes()
    assert "stake_amount" not in row
    assert row["rules"] == "[STAKE:200] Be honest"


def test_legacy_rename_keeps_packed_list(rest):
    SupabaseStore(legacy_encoding=True).update_user_name("u1", "Alicia")
    assert rest.writes() == [("update", "profiles", "id", "u1", {"name": 'Alicia:::["h1"]'})]


def test_structured_rename_migrates_packed_list(rest):
    SupabaseStore(legacy_encoding=False).update_user_name("u1", "Alicia")
    assert rest.writes() == [("update", "profiles", "id", "u1", {"name": "Alicia", "habit_ids": ["h1"]})]


def test_structured_selection_cleans_packed_name(rest):
    SupabaseStore(legacy_encoding=False).update_user_habits("u1", ["h1", "h2"])
    assert rest.writes() == [("update", "profiles", "id", "u1", {"habit_ids": ["h1", "h2"], "name": "Alice"})]


def test_remove_team_unassigns_first(rest):
    SupabaseStore().remove_team("t1")
    assert rest.writes() == [
        ("update", "profiles", "team_id", "t1", {"team_id": None}),
        ("delete", "teams", "id", "t1"),
    ]


def test_create_profile_and_count(rest):
    store = SupabaseStore()
    store.create_profile(User(id="u2", name="Bob", email="bob@family.com"))
    assert rest.writes()[0][2]["role"] == "MEMBER"
    assert store.count_profiles() == 1


def test_http_failure_is_store_error(monkeypatch):
    def boom(*args, **kwargs):
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(supabase_rest, "sb_upsert", boom)
    with pytest.raises(StoreError):
        SupabaseStore().toggle_completion("u1", "h1", "2024-03-02", was_completed=False)


class TestRestHelpers:
    @pytest.fixture
    def transport(self, monkeypatch):
        seen = []
        real_client = httpx.Client

        def handler(request: httpx.Request):
            seen.append(request)
            if request.method == "HEAD":
                return httpx.Response(200, headers={"content-range": "0-2/3"})
            if request.url.path.endswith("/broken"):
                return httpx.Response(500, json={"message": "boom"})
            return httpx.Response(200, json=[{"id": "x"}])

        monkeypatch.setattr(supabase_rest, "SUPABASE_URL", "https://demo.supabase.co")
        monkeypatch.setattr(supabase_rest.httpx, "Client",
                            lambda **kw: real_client(transport=httpx.MockTransport(handler), **kw))
        return seen

    def test_select_builds_query(self, transport):
        assert supabase_rest.sb_select("logs", filters={"user_id": "u1", "team_id": None},
                                       order="date.desc", limit=10) == [{"id": "x"}]
        query = str(transport[0].url)
        assert "user_id=eq.u1" in query
        assert "team_id=is.null" in query
        assert "order=date.desc" in query
        assert "limit=10" in query

    def test_upsert_merges_duplicates(self, transport):
        supabase_rest.sb_upsert("logs", {"id": "x"})
        assert "resolution=merge-duplicates" in transport[0].headers["Prefer"]

    def test_count_reads_content_range(self, transport):
        assert supabase_rest.sb_count("profiles") == 3

    def test_error_status_raises(self, transport):
        with pytest.raises(httpx.HTTPStatusError):
            supabase_rest.sb_select("broken")


def test_legacy_settings_write_rounds_fractional_stake(rest, settings):
    SupabaseStore(legacy_encoding=True).update_settings(settings.model_copy(update={"stake_amount": 149.6}))
    (_, _, row), = rest.writes()
    assert row["rules"] == "[STAKE:150] Be honest"
