"""
Social Service
==============

Friend graph inside one game. Each relationship direction is its own row
(``player_id -> friend_id``) with status ``pending`` or ``accepted``.

Rules
-----
- Requests resolve the target by username within the requester's game
- Requesting yourself is rejected; repeating a request is a no-op
- Accepting promotes the incoming edge and writes the outgoing edge as
  accepted, so one acceptance establishes both directions
- A friend is listed only when both directions are accepted
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import and_, select
from sqlalchemy.orm import aliased

from gamevault.core.database.service import DatabaseService
from gamevault.core.logging.logger import get_logger
from gamevault.core.validation.input_validator import InputValidator
from gamevault.database.models.enums import FriendStatus
from gamevault.modules.shared.base_repository import BaseRepository
from gamevault.modules.shared.base_service import BaseService
from gamevault.modules.shared.exceptions import NotFoundError, ValidationError
from gamevault.modules.shared.players import PlayerRepository

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from gamevault.core.config.manager import ConfigManager
    from gamevault.core.event.bus import EventBus
    from gamevault.database.models import FriendRelationship


class FriendRepository(BaseRepository["FriendRelationship"]):
    """Repository for FriendRelationship model."""

    async def find_edge(
        self,
        session: AsyncSession,
        player_id: str,
        friend_id: str,
        *,
        for_update: bool = False,
    ) -> Optional[FriendRelationship]:
        return await self.find_one_where(
            session,
            self.model_class.player_id == player_id,
            self.model_class.friend_id == friend_id,
            for_update=for_update,
        )


class SocialService(BaseService):
    """
    Service for friend requests and friend lists.

    Public Methods
    --------------
    - request_friend() -> Send a request by username
    - accept_friend() -> Accept an incoming request
    - list_friends() -> Mutually accepted friends
    - list_pending_requests() -> Incoming requests awaiting acceptance
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)

        from gamevault.database.models import FriendRelationship

        self._player_repo = PlayerRepository()
        self._friend_repo = FriendRepository(
            model_class=FriendRelationship,
            logger=get_logger(f"{__name__}.FriendRepository"),
        )

    # ========================================================================
    # PUBLIC API - Write Operations
    # ========================================================================

    async def request_friend(self, player_id: str, friend_username: str) -> Dict[str, Any]:
        """
        Send a friend request to ``friend_username`` in the caller's game.

        Returns:
            {"player_id", "friend_id", "status", "created"}; ``created`` is
            False when an edge already existed

        Raises:
            NotFoundError: No such username in the game
            ValidationError: Targeting yourself
        """
        player_id = InputValidator.validate_identifier(player_id, "player_id")
        friend_username = InputValidator.validate_string(
            friend_username,
            field_name="friend_username",
            min_length=1,
            max_length=self.get_config("identity.username.max_length", default=32),
        )

        self.log_operation("request_friend", player_id=player_id, friend_username=friend_username)

        async with DatabaseService.get_transaction() as session:
            player = await self._player_repo.get_active(
                session, player_id, action="request_friend"
            )
            friend = await self._player_repo.find_by_username(
                session, player.game_id, friend_username
            )
            if friend is None:
                raise NotFoundError("Player", friend_username)
            if friend.id == player.id:
                raise ValidationError("friend_username", "Cannot add yourself")

            friend_id = friend.id
            edge = await self._friend_repo.find_edge(session, player_id, friend_id)
            created = edge is None
            if created:
                status = FriendStatus.PENDING.value
                self._friend_repo.add(
                    session,
                    self._friend_repo.model_class(
                        player_id=player_id, friend_id=friend_id, status=status
                    ),
                )
            else:
                status = edge.status

        if created:
            await self.emit_event(
                "social.friend_requested", {"player_id": player_id, "friend_id": friend_id}
            )

        return {
            "player_id": player_id,
            "friend_id": friend_id,
            "status": status,
            "created": created,
        }

    async def accept_friend(self, player_id: str, friend_id: str) -> Dict[str, Any]:
        """
        Accept the request ``friend_id -> player_id``.

        Raises:
            NotFoundError: No request from ``friend_id``
        """
        player_id = InputValidator.validate_identifier(player_id, "player_id")
        friend_id = InputValidator.validate_identifier(friend_id, "friend_id")

        self.log_operation("accept_friend", player_id=player_id, friend_id=friend_id)

        accepted = FriendStatus.ACCEPTED.value

        async with DatabaseService.get_transaction() as session:
            await self._player_repo.get_active(session, player_id, action="accept_friend")

            incoming = await self._friend_repo.find_edge(
                session, friend_id, player_id, for_update=True
            )
            if incoming is None:
                raise NotFoundError("FriendRequest", friend_id)
            incoming.status = accepted

            outgoing = await self._friend_repo.find_edge(
                session, player_id, friend_id, for_update=True
            )
            if outgoing is None:
                self._friend_repo.add(
                    session,
                    self._friend_repo.model_class(
                        player_id=player_id, friend_id=friend_id, status=accepted
                    ),
                )
            else:
                outgoing.status = accepted

        await self.emit_event(
            "social.friend_accepted", {"player_id": player_id, "friend_id": friend_id}
        )

        return {"player_id": player_id, "friend_id": friend_id, "status": accepted}

    # ========================================================================
    # PUBLIC API - Read Operations
    # ========================================================================

    async def list_friends(self, player_id: str) -> List[Dict[str, Any]]:
        """Friends whose edges are accepted in both directions."""
        player_id = InputValidator.validate_identifier(player_id, "player_id")

        edge = self._friend_repo.model_class
        reverse = aliased(edge)
        player = self._player_repo.model_class
        accepted = FriendStatus.ACCEPTED.value

        stmt = (
            select(player.id, player.username, player.credits)
            .join(edge, edge.friend_id == player.id)
            .join(
                reverse,
                and_(reverse.player_id == edge.friend_id, reverse.friend_id == edge.player_id),
            )
            .where(
                edge.player_id == player_id,
                edge.status == accepted,
                reverse.status == accepted,
            )
            .order_by(player.username, player.id)
        )

        async with DatabaseService.get_session() as session:
            await self._player_repo.get_existing(session, player_id, for_update=False)
            rows = (await session.execute(stmt)).all()

        return [
            {"player_id": friend_id, "username": username, "credits": credits}
            for friend_id, username, credits in rows
        ]

    async def list_pending_requests(self, player_id: str) -> List[Dict[str, Any]]:
        """Incoming requests still pending, oldest first."""
        player_id = InputValidator.validate_identifier(player_id, "player_id")

        edge = self._friend_repo.model_class
        player = self._player_repo.model_class

        stmt = (
            select(player.id, player.username, edge.created_at)
            .join(edge, edge.player_id == player.id)
            .where(edge.friend_id == player_id, edge.status == FriendStatus.PENDING.value)
            .order_by(edge.created_at, player.id)
        )

        async with DatabaseService.get_session() as session:
            await self._player_repo.get_existing(session, player_id, for_update=False)
            rows = (await session.execute(stmt)).all()

        return [
            {
                "player_id": requester_id,
                "username": username,
                "requested_at": created_at.isoformat() if created_at else None,
            }
            for requester_id, username, created_at in rows
        ]
