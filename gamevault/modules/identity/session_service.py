"""
Session Service
===============

Purpose
-------
Issues and resolves opaque bearer tokens. A player has at most one live
token, stored on the Player row; issuing a new token overwrites (and so
revokes) the previous one.

Tokens are random (``secrets.token_urlsafe``), store-resident and carry no
claims, so revocation is immediate.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from gamevault.core.database.service import DatabaseService
from gamevault.core.security.passwords import generate_session_token
from gamevault.modules.shared.base_service import BaseService
from gamevault.modules.shared.exceptions import ForbiddenError, UnauthorizedError
from gamevault.modules.shared.players import PlayerRepository

if TYPE_CHECKING:
    from logging import Logger

    from gamevault.core.config.manager import ConfigManager
    from gamevault.core.event.bus import EventBus
    from gamevault.database.models import Player


class SessionService(BaseService):
    """
    Session token lifecycle.

    Public Methods
    --------------
    - authenticate() -> Resolve a bearer token to an active Player
    - issue_token() -> Attach a fresh token to a Player inside a transaction
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._player_repo = PlayerRepository()

    @staticmethod
    def issue_token(player: Player) -> str:
        """
        Replace the player's token with a fresh one and return it.

        Must be called on a row loaded inside the caller's transaction.
        """
        token = generate_session_token()
        player.token = token
        return token

    async def authenticate(self, token: Any) -> Player:
        """
        Resolve a bearer token to its player.

        This is a **read-only** operation. Write operations re-check the
        player's ban state on the locked row.

        Args:
            token: Bearer token presented by the client

        Returns:
            The (detached) Player holding the token

        Raises:
            UnauthorizedError: If the token is missing or unknown
            ForbiddenError: If the player is banned
        """
        if not isinstance(token, str) or not token:
            raise UnauthorizedError("missing session token")

        async with DatabaseService.get_session() as session:
            player = await self._player_repo.find_by_token(session, token)

        if player is None:
            self.log.debug("Authentication failed: unknown token")
            raise UnauthorizedError("invalid session token")

        if player.banned:
            self.log.info(
                "Authentication rejected: player banned",
                extra={"player_id": player.id, "game_id": player.game_id},
            )
            raise ForbiddenError("authenticate", "player is banned")

        return player
