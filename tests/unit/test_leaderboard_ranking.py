"""
Unit tests for leaderboard ranking helpers.
"""

from datetime import datetime, timedelta

import pytest

from gamevault.modules.leaderboard.service import is_rankable, rank_rows

T0 = datetime(2025, 1, 1, 12, 0, 0)


def _row(player_id, value, minutes=0, username=None):
    return (player_id, username or player_id, T0 + timedelta(minutes=minutes), value)


class TestIsRankable:
    @pytest.mark.parametrize("value", [0, 7, -3, 2.5])
    def test_numbers(self, value):
        assert is_rankable(value) is True

    @pytest.mark.parametrize("value", [True, "10", None, float("nan"), float("inf"), [1]])
    def test_non_numbers(self, value):
        assert is_rankable(value) is False


class TestRankRows:
    """Ordering, tie-break and limit."""

    def test_orders_descending_and_numbers_from_one(self):
        rows = [_row("a", 10), _row("b", 30), _row("c", 20)]

        result = rank_rows(rows, limit=2)

        assert [entry["player_id"] for entry in result] == ["b", "c"]
        assert [entry["rank"] for entry in result] == [1, 2]
        assert result[0]["value"] == 30

    def test_ties_break_by_registration_then_id(self):
        rows = [
            _row("late", 50, minutes=5),
            _row("z-early", 50, minutes=0),
            _row("a-early", 50, minutes=0),
        ]

        result = rank_rows(rows, limit=10)

        assert [entry["player_id"] for entry in result] == ["a-early", "z-early", "late"]

    def test_skips_non_numeric_values(self):
        rows = [_row("a", "high"), _row("b", 5), _row("c", None), _row("d", True)]

        result = rank_rows(rows, limit=10)

        assert [entry["player_id"] for entry in result] == ["b"]

    def test_empty(self):
        assert rank_rows([], limit=10) == []
