import logging

import pytest
from pydantic import ValidationError

from schemas import ChallengeSettings, Role
from services.data_store import build_state, normalize_settings, normalize_user
from services.legacy_fields import pack_name, pack_rules, unpack_name, unpack_rules


class TestLegacyFields:
    def test_unpack_packed_name(self):
        assert unpack_name('Alice:::["h1","h2"]') == ("Alice", ["h1", "h2"])

    def test_plain_name_has_no_selection(self):
        assert unpack_name("Bob") == ("Bob", None)
        assert unpack_name(None) == ("", None)

    def test_unreadable_list_is_empty_selection(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert unpack_name("Carol:::[not json") == ("Carol", [])
        assert "Unreadable habit id list" in caplog.text

    def test_pack_name(self):
        assert pack_name("Alice", ["h1"]) == 'Alice:::["h1"]'
        assert pack_name("Alice", []) == "Alice"

    def test_unpack_rules(self):
        assert unpack_rules("[STAKE:350] 1. Be honest") == ("1. Be honest", 350.0)
        assert unpack_rules("Just rules") == ("Just rules", None)

    def test_malformed_stake_tag_uses_default(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert unpack_rules("[STAKE:lots] Rules") == ("Rules", 200.0)
            assert unpack_rules("[STAKE:-5] Rules") == ("Rules", 200.0)

    def test_pack_rules(self):
        assert pack_rules("Be kind", 200.0) == "[STAKE:200] Be kind"
        assert pack_rules("Be kind", 12.6) == "[STAKE:13] Be kind"

    @pytest.mark.parametrize("tag", ["nan", "inf", "-inf", "1e999", "", "-5"])
    def test_non_finite_or_negative_tag_uses_default(self, tag):
        assert unpack_rules(f"[STAKE:{tag}] Rules") == ("Rules", 200.0)


class TestNormalization:
    def test_missing_settings_row_defaults(self):
        s = normalize_settings(None)
        assert s.stake_amount == 200
        assert s.start_date <= s.end_date

    def test_structured_stake_wins_over_tag(self):
        row = {"name": "C", "start_date": "2024-03-01", "end_date": "2024-03-10",
               "rules": "[STAKE:350] Rules", "stake_amount": 100}
        s = normalize_settings(row)
        assert s.stake_amount == 100
        assert s.rules == "Rules"

    def test_tagged_stake_when_no_column(self):
        row = {"name": "C", "start_date": "2024-03-01", "end_date": "2024-03-10", "rules": "[STAKE:350] R"}
        assert normalize_settings(row).stake_amount == 350

    def test_bad_dates_fall_back_to_defaults(self):
        s = normalize_settings({"name": "C", "start_date": "soon", "end_date": "", "rules": "R"})
        assert s.rules == "R"
        assert len(s.start_date) == 10

    def test_user_habit_column_beats_packed_name(self):
        user = normalize_user({"id": "u1", "name": 'Alice:::["h9"]', "habit_ids": ["h1"], "role": "ADMIN"})
        assert user.name == "Alice"
        assert user.habit_ids == ["h1"]
        assert user.role == Role.ADMIN

    def test_user_packed_name_and_json_column(self):
        assert normalize_user({"id": "u1", "name": 'A:::["h2"]'}).habit_ids == ["h2"]
        assert normalize_user({"id": "u1", "name": "A", "habit_ids": '["h3"]'}).habit_ids == ["h3"]

    def test_unknown_role_is_member(self):
        assert normalize_user({"id": "u1", "name": "A", "role": "OWNER"}).role == Role.MEMBER

    def test_build_state_skips_malformed_rows(self):
        state = build_state(
            habit_rows=[{"id": "h1", "name": "Water", "points": 5, "description": None},
                        {"id": "h2", "name": "Broken", "points": "many"}],
            team_rows=[{"id": "t1", "name": "Alpha", "order_index": None}],
            log_rows=[{"id": "x", "user_id": "u1", "habit_id": "h1", "date": "2024-03-01", "completed": True},
                      {"id": "y", "user_id": "u1", "habit_id": "h1", "date": "yesterday", "completed": True}],
            settings_row=None,
            profile_rows=[{"id": "u1", "name": "Alice", "email": "alice@family.com"}],
            current_user_id="u1",
        )
        assert [h.id for h in state.habits] == ["h1"]
        assert state.habits[0].category == "other"
        assert [l.id for l in state.logs] == ["x"]
        assert state.teams[0].order == 0
        assert state.current_user.name == "Alice"


class TestBadStakeKeepsChallengeDates:
    ROW = {"name": "C", "start_date": "2024-03-01", "end_date": "2024-03-10", "rules": "be good"}

    @pytest.mark.parametrize("rules", ["[STAKE:nan] be good", "[STAKE:inf] be good", "[STAKE:-1] be good"])
    def test_bad_tag(self, rules):
        s = normalize_settings({**self.ROW, "rules": rules})
        assert (s.start_date, s.end_date, s.name) == ("2024-03-01", "2024-03-10", "C")
        assert s.stake_amount == 200
        assert s.rules == "be good"

    @pytest.mark.parametrize("column", [-50, float("nan"), float("inf"), "lots"])
    def test_bad_column(self, column):
        s = normalize_settings({**self.ROW, "stake_amount": column})
        assert (s.start_date, s.end_date) == ("2024-03-01", "2024-03-10")
        assert s.stake_amount == 200

    def test_bad_column_falls_back_to_tag(self):
        s = normalize_settings({**self.ROW, "rules": "[STAKE:80] be good", "stake_amount": -1})
        assert s.stake_amount == 80

    def test_bad_dates_keep_a_good_stake(self):
        s = normalize_settings({**self.ROW, "start_date": "2024-3-1", "stake_amount": 75})
        assert s.stake_amount == 75
        assert s.start_date != "2024-3-1"


def test_settings_refuse_infinite_stake():
    with pytest.raises(ValidationError):
        ChallengeSettings(name="C", start_date="2024-03-01", end_date="2024-03-10", stake_amount=float("inf"))
