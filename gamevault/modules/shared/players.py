"""
Shared Player repository.

Every player-scoped write starts by locking the caller's Player row. This
repository centralizes that lookup and the existence/ban checks that
follow it so all modules reject missing and banned players the same way.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from gamevault.core.logging.logger import get_logger

from .base_repository import BaseRepository
from .exceptions import ForbiddenError, NotFoundError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from gamevault.database.models import Player


class PlayerRepository(BaseRepository["Player"]):
    """Repository for the Player model with guard helpers."""

    def __init__(self) -> None:
        from gamevault.database.models import Player

        super().__init__(Player, get_logger(f"{__name__}.PlayerRepository"))

    async def get_existing(
        self,
        session: AsyncSession,
        player_id: str,
        *,
        for_update: bool = True,
    ) -> Player:
        """
        Load a player regardless of ban state.

        Raises:
            NotFoundError: If the player does not exist
        """
        if for_update:
            player = await self.get_for_update(session, player_id)
        else:
            player = await self.get(session, player_id)

        if player is None:
            raise NotFoundError("Player", player_id)
        return player

    async def get_active(
        self,
        session: AsyncSession,
        player_id: str,
        *,
        action: str,
        for_update: bool = True,
    ) -> Player:
        """
        Load a player that may act: exists and is not banned.

        The check runs on the (locked) row inside the caller's transaction,
        so a ban committed after authentication still blocks the write.

        Raises:
            NotFoundError: If the player does not exist
            ForbiddenError: If the player is banned
        """
        player = await self.get_existing(session, player_id, for_update=for_update)
        if player.banned:
            raise ForbiddenError(action, "player is banned")
        return player

    async def find_by_username(
        self,
        session: AsyncSession,
        game_id: str,
        username: str,
        *,
        for_update: bool = False,
    ) -> Optional[Player]:
        return await self.find_one_where(
            session,
            self.model_class.game_id == game_id,
            self.model_class.username == username,
            for_update=for_update,
        )

    async def find_by_token(self, session: AsyncSession, token: str) -> Optional[Player]:
        return await self.find_one_where(session, self.model_class.token == token)

    async def list_for_game(self, session: AsyncSession, game_id: str) -> List[Player]:
        return await self.find_many_where(
            session,
            self.model_class.game_id == game_id,
            order_by=[self.model_class.created_at, self.model_class.id],
        )
