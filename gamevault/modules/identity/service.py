"""
Identity Service
================

Purpose
-------
Player registration, login, admin password reset, profile reads and the
owner (admin) capability check. Every game (``game_id``) is an independent
namespace: the same username may register once per game.

Domain
------
- Register: validate, hash the password, create the Player with 0 credits
  and a fresh session token, all in one transaction
- Login: verify the password, reject banned players, rotate the token
- Admin password reset: rehash and rotate the token atomically
- Owner key: constant-time comparison with the configured owner secret

Notes
-----
bcrypt runs in a worker thread (``asyncio.to_thread``) and always outside
the database transaction, so row locks are never held across hashing.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Dict

from sqlalchemy.exc import IntegrityError

from gamevault.core.database.service import DatabaseService
from gamevault.core.infra.audit_logger import AuditLogger
from gamevault.core.security.passwords import (
    hash_password,
    verify_owner_secret,
    verify_password,
)
from gamevault.core.validation.input_validator import InputValidator
from gamevault.modules.shared.base_service import BaseService
from gamevault.modules.shared.exceptions import (
    ConflictError,
    ForbiddenError,
    UnauthorizedError,
)
from gamevault.modules.shared.players import PlayerRepository

from .session_service import SessionService

if TYPE_CHECKING:
    from logging import Logger

    from gamevault.core.config.manager import ConfigManager
    from gamevault.core.event.bus import EventBus
    from gamevault.database.models import Player


class IdentityService(BaseService):
    """
    Service for account lifecycle and credentials.

    Public Methods
    --------------
    - register() -> Create a player and open a session
    - login() -> Verify credentials and rotate the session token
    - authenticate() -> Resolve a bearer token (delegates to SessionService)
    - admin_reset_password() -> Rehash credential and rotate token
    - get_profile() -> Public profile of a player
    - verify_owner_key() -> Admin capability check
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._player_repo = PlayerRepository()
        self._sessions = SessionService(config_manager, event_bus, logger)

    # ========================================================================
    # Validation helpers
    # ========================================================================

    def _validate_game_id(self, game_id: Any) -> str:
        return InputValidator.validate_string(
            game_id,
            field_name="game_id",
            min_length=1,
            max_length=self.get_config("identity.game_id.max_length", default=64),
        )

    def _validate_username(self, username: Any) -> str:
        return InputValidator.validate_string(
            username,
            field_name="username",
            min_length=self.get_config("identity.username.min_length", default=1),
            max_length=self.get_config("identity.username.max_length", default=32),
        )

    def _validate_password(self, password: Any) -> str:
        return InputValidator.validate_string(
            password,
            field_name="password",
            min_length=self.get_config("identity.password.min_length", default=1),
            max_length=self.get_config("identity.password.max_length", default=128),
            strip=False,
        )

    # ========================================================================
    # PUBLIC API - Write Operations
    # ========================================================================

    async def register(self, game_id: str, username: str, password: str) -> Dict[str, Any]:
        """
        Register a new player in ``game_id``.

        Args:
            game_id: Tenant identifier
            username: Unique within the game
            password: Plain password (hashed with bcrypt)

        Returns:
            {"player_id", "token", "username", "game_id", "credits"}

        Raises:
            ValidationError: If any argument is empty or too long
            ConflictError: If the username is taken in this game (including
                when a concurrent registration wins the unique index)

        Example:
            >>> result = await identity.register("g1", "alice", "pw")
            >>> result["credits"]
            0
        """
        game_id = self._validate_game_id(game_id)
        username = self._validate_username(username)
        password = self._validate_password(password)

        self.log_operation("register", game_id=game_id, username=username)

        password_hash = await asyncio.to_thread(hash_password, password)

        try:
            async with DatabaseService.get_transaction() as session:
                existing = await self._player_repo.find_by_username(session, game_id, username)
                if existing is not None:
                    raise ConflictError(
                        "Player", f"username '{username}' is already taken in game '{game_id}'"
                    )

                player = self._player_repo.model_class(
                    game_id=game_id,
                    username=username,
                    password_hash=password_hash,
                    credits=0,
                    banned=False,
                )
                token = SessionService.issue_token(player)
                self._player_repo.add(session, player)
                await self._player_repo.flush(session)
                player_id = player.id

        except IntegrityError as exc:
            raise ConflictError(
                "Player", f"username '{username}' is already taken in game '{game_id}'"
            ) from exc

        await self.emit_event(
            "player.registered",
            {"player_id": player_id, "game_id": game_id, "username": username},
        )

        self.log.info(
            "Player registered",
            extra={"player_id": player_id, "game_id": game_id, "username": username},
        )

        return {
            "player_id": player_id,
            "token": token,
            "username": username,
            "game_id": game_id,
            "credits": 0,
        }

    async def login(self, game_id: str, username: str, password: str) -> Dict[str, Any]:
        """
        Verify credentials and issue a new session token.

        The previous token (if any) stops working immediately.

        Returns:
            {"player_id", "token", "username", "credits"}

        Raises:
            UnauthorizedError: Unknown username or wrong password
            ForbiddenError: If the player is banned
        """
        game_id = self._validate_game_id(game_id)
        username = self._validate_username(username)
        password = self._validate_password(password)

        self.log_operation("login", game_id=game_id, username=username)

        async with DatabaseService.get_session() as session:
            candidate = await self._player_repo.find_by_username(session, game_id, username)

        if candidate is None:
            raise UnauthorizedError()

        if not await asyncio.to_thread(verify_password, password, candidate.password_hash):
            self.log.info(
                "Login rejected: bad password",
                extra={"player_id": candidate.id, "game_id": game_id},
            )
            raise UnauthorizedError()

        async with DatabaseService.get_transaction() as session:
            player = await self._player_repo.get_for_update(session, candidate.id)
            if player is None:
                raise UnauthorizedError()
            if player.banned:
                raise ForbiddenError("login", "player is banned")

            token = SessionService.issue_token(player)
            result = {
                "player_id": player.id,
                "token": token,
                "username": player.username,
                "credits": player.credits,
            }

        await self.emit_event(
            "player.logged_in",
            {"player_id": result["player_id"], "game_id": game_id},
        )

        self.log.info(
            "Player logged in",
            extra={"player_id": result["player_id"], "game_id": game_id},
        )

        return result

    async def admin_reset_password(self, player_id: str, new_password: str) -> Dict[str, Any]:
        """
        Set a new password and rotate the session token.

        Returns:
            {"player_id", "token"}

        Raises:
            ValidationError: If the password is empty or too long
            NotFoundError: If the player does not exist
        """
        player_id = InputValidator.validate_identifier(player_id, "player_id")
        new_password = self._validate_password(new_password)

        self.log_operation("admin_reset_password", player_id=player_id)

        password_hash = await asyncio.to_thread(hash_password, new_password)

        async with DatabaseService.get_transaction() as session:
            player = await self._player_repo.get_existing(session, player_id)
            player.password_hash = password_hash
            token = SessionService.issue_token(player)
            game_id = player.game_id

        await AuditLogger.log(
            player_id=player_id,
            transaction_type="password_reset",
            details={"by": "owner"},
            context="identity.admin_reset_password",
            meta={"game_id": game_id},
            bus=self._events,
        )

        self.log.info(
            "Password reset by owner",
            extra={"player_id": player_id, "game_id": game_id},
        )

        return {"player_id": player_id, "token": token}

    # ========================================================================
    # PUBLIC API - Read Operations
    # ========================================================================

    async def authenticate(self, token: Any) -> Player:
        """Resolve a bearer token to an active player. See SessionService."""
        return await self._sessions.authenticate(token)

    async def get_profile(self, player_id: str) -> Dict[str, Any]:
        """
        Public profile of a player.

        Returns:
            {"player_id", "game_id", "username", "credits", "created_at"}

        Raises:
            NotFoundError: If the player does not exist
        """
        player_id = InputValidator.validate_identifier(player_id, "player_id")

        async with DatabaseService.get_session() as session:
            player = await self._player_repo.get_existing(session, player_id, for_update=False)

        return {
            "player_id": player.id,
            "game_id": player.game_id,
            "username": player.username,
            "credits": player.credits,
            "created_at": player.created_at.isoformat(),
        }

    def verify_owner_key(self, key: Any) -> None:
        """
        Check the owner (admin) capability.

        Raises:
            ForbiddenError: If the key does not match or no owner secret is set
        """
        if not isinstance(key, str) or not verify_owner_secret(key):
            self.log.warning("Owner key rejected")
            raise ForbiddenError("owner_access", "invalid owner key")
