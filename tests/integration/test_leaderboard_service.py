"""
Integration Tests for LeaderboardService
========================================

Test Coverage
-------------
- Ranking by credits and by a numeric save-data stat
- Game isolation and exclusion of banned players
- Limit defaults and bounds
- Equal balances ordered by registration time, then id
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import update

from gamevault.core.database.service import DatabaseService
from gamevault.database.models import Player
from gamevault.modules.shared.exceptions import ValidationError


@pytest.mark.integration
@pytest.mark.database
class TestCreditsLeaderboard:
    """Test ranking by balance."""

    async def test_top_by_credits(self, services, funded_player):
        # Arrange
        await funded_player("low", 10)
        await funded_player("high", 30)
        await funded_player("mid", 20)

        # Act
        board = await services.leaderboard.top_by_credits("g1", 2)

        # Assert
        assert [(e["rank"], e["username"], e["credits"]) for e in board] == [
            (1, "high", 30),
            (2, "mid", 20),
        ]

    async def test_excludes_banned_and_other_games(self, services, funded_player):
        cheater = await funded_player("cheater", 999)
        await funded_player("honest", 5)
        await funded_player("outsider", 500, game_id="g2")
        await services.admin.set_banned(cheater["player_id"], True)

        board = await services.leaderboard.top_by_credits("g1")

        assert [e["username"] for e in board] == ["honest"]

    async def test_empty_game(self, services):
        assert await services.leaderboard.top_by_credits("nobody") == []

    @pytest.mark.parametrize("limit", [0, -1, 101, "ten"])
    async def test_limit_bounds(self, services, limit):
        with pytest.raises(ValidationError):
            await services.leaderboard.top_by_credits("g1", limit)

    async def test_default_limit_from_config(self, services, config_manager, funded_player):
        config_manager.set("leaderboard.default_limit", 2)
        for index in range(4):
            await funded_player(f"p{index}", index + 1)

        board = await services.leaderboard.top_by_credits("g1")

        assert len(board) == 2

    async def test_equal_balances_break_ties_by_age_then_id(self, services, funded_player):
        # Arrange
        ids = {}
        for name in ("alice", "bob", "carol", "dave"):
            ids[name] = (await funded_player(name, 50))["player_id"]
        await funded_player("rich", 80)

        base = datetime(2026, 1, 1, tzinfo=timezone.utc)
        registered = {
            "carol": base,
            "alice": base + timedelta(minutes=1),
            "bob": base + timedelta(minutes=2),
            "dave": base + timedelta(minutes=2),
        }
        async with DatabaseService.get_transaction() as session:
            for name, created_at in registered.items():
                await session.execute(
                    update(Player).where(Player.id == ids[name]).values(created_at=created_at)
                )

        # Act
        board = await services.leaderboard.top_by_credits("g1")

        # Assert
        same_instant = sorted(["bob", "dave"], key=lambda name: ids[name])
        assert [e["username"] for e in board] == ["rich", "carol", "alice", *same_instant]
        assert [e["rank"] for e in board] == [1, 2, 3, 4, 5]


@pytest.mark.integration
@pytest.mark.database
class TestStatLeaderboard:
    """Test ranking by a save-data stat."""

    async def test_ranks_numeric_values_only(self, services, register):
        # Arrange
        scores = {"alice": 50, "bob": 75.5, "carol": "lots", "dave": True}
        for name, score in scores.items():
            pid = (await register("g1", name))["player_id"]
            await services.savedata.save(pid, {"score": score})
        await register("g1", "erin")

        # Act
        board = await services.leaderboard.top_by_stat("g1")

        # Assert
        assert [(e["rank"], e["username"], e["value"]) for e in board] == [
            (1, "bob", 75.5),
            (2, "alice", 50),
        ]

    async def test_custom_stat_key(self, services, register):
        a = (await register("g1", "alice"))["player_id"]
        b = (await register("g1", "bob"))["player_id"]
        await services.savedata.save(a, {"score": 1, "kills": 9})
        await services.savedata.save(b, {"score": 9, "kills": 1})

        board = await services.leaderboard.top_by_stat("g1", "kills", 1)

        assert [e["username"] for e in board] == ["alice"]

    async def test_banned_players_excluded(self, services, register):
        a = (await register("g1", "alice"))["player_id"]
        b = (await register("g1", "bob"))["player_id"]
        await services.savedata.save(a, {"score": 100})
        await services.savedata.save(b, {"score": 1})
        await services.admin.set_banned(a, True)

        board = await services.leaderboard.top_by_stat("g1")

        assert [e["username"] for e in board] == ["bob"]
