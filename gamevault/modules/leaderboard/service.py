"""
Leaderboard Service
===================

Read-only projections that rank the non-banned players of one game either by
a numeric save-data stat or by credit balance.

Ranking rules:
- Higher value ranks first
- Ties break by account creation time, then player id
- Ranks are 1-based ordinals (no shared ranks)
- Save-data values that are not finite numbers (strings, objects, booleans)
  are ignored
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select

from gamevault.core.database.service import DatabaseService
from gamevault.core.validation.input_validator import InputValidator
from gamevault.modules.shared.base_service import BaseService

if TYPE_CHECKING:
    from datetime import datetime
    from logging import Logger

    from gamevault.core.config.manager import ConfigManager
    from gamevault.core.event.bus import EventBus

# (player_id, username, created_at, value)
StatRow = Tuple[str, str, "datetime", Any]


def is_rankable(value: Any) -> bool:
    """True for finite int/float values; bool is excluded."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def rank_rows(rows: Iterable[StatRow], limit: int) -> List[Dict[str, Any]]:
    """Sort rankable rows descending with the tie-break and number them."""
    candidates = [row for row in rows if is_rankable(row[3])]
    candidates.sort(key=lambda row: (-row[3], row[2], row[0]))

    return [
        {"rank": index, "player_id": player_id, "username": username, "value": value}
        for index, (player_id, username, _created_at, value) in enumerate(
            candidates[:limit], start=1
        )
    ]


class LeaderboardService(BaseService):
    """
    Service for per-game rankings.

    Public Methods
    --------------
    - top_by_stat() -> Rank by a numeric save-data key
    - top_by_credits() -> Rank by balance
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)

        from gamevault.database.models import Player, PlayerSaveData

        self._player_model = Player
        self._save_model = PlayerSaveData

    def _resolve_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            limit = self.get_config("leaderboard.default_limit", default=10)
        limit = InputValidator.validate_integer(limit, field_name="limit")
        self.validate_range(
            limit, "limit", 1, self.get_config("leaderboard.max_limit", default=100)
        )
        return limit

    async def top_by_stat(
        self,
        game_id: str,
        stat_key: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Top players of ``game_id`` by the save-data value under ``stat_key``.

        Args:
            game_id: Tenant
            stat_key: Save-data key (default ``leaderboard.default_stat``, "score")
            limit: 1..``leaderboard.max_limit`` (default 10)

        Returns:
            [{"rank", "player_id", "username", "value"}, ...]

        Raises:
            ValidationError: Bad game id, key or limit
        """
        game_id = InputValidator.validate_identifier(game_id, "game_id")
        if stat_key is None:
            stat_key = self.get_config("leaderboard.default_stat", default="score")
        stat_key = InputValidator.validate_string(
            stat_key,
            field_name="stat_key",
            min_length=1,
            max_length=self.get_config("savedata.key_max_length", default=64),
        )
        limit = self._resolve_limit(limit)

        player = self._player_model
        save = self._save_model
        stmt = (
            select(player.id, player.username, player.created_at, save.value)
            .join(save, save.player_id == player.id)
            .where(
                player.game_id == game_id,
                player.banned.is_(False),
                save.key == stat_key,
            )
        )

        async with DatabaseService.get_session() as session:
            rows = (await session.execute(stmt)).all()

        board = rank_rows((tuple(row) for row in rows), limit)

        self.log.debug(
            "Stat leaderboard computed",
            extra={"game_id": game_id, "stat_key": stat_key, "entries": len(board)},
        )

        return board

    async def top_by_credits(
        self, game_id: str, limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Top players of ``game_id`` by balance.

        Returns:
            [{"rank", "player_id", "username", "credits"}, ...]

        Example:
            >>> await leaderboard.top_by_credits("g1", 2)   # balances 10, 30, 20
            [{"rank": 1, ..., "credits": 30}, {"rank": 2, ..., "credits": 20}]
        """
        game_id = InputValidator.validate_identifier(game_id, "game_id")
        limit = self._resolve_limit(limit)

        player = self._player_model
        stmt = (
            select(player.id, player.username, player.credits)
            .where(player.game_id == game_id, player.banned.is_(False))
            .order_by(player.credits.desc(), player.created_at, player.id)
            .limit(limit)
        )

        async with DatabaseService.get_session() as session:
            rows = (await session.execute(stmt)).all()

        return [
            {"rank": index, "player_id": player_id, "username": username, "credits": credits}
            for index, (player_id, username, credits) in enumerate(rows, start=1)
        ]
