"""
Ledger Service - Player credit balances
========================================

Purpose
-------
Owns every change to a player's ``credits`` balance: player spends and
grants, and the owner's set/give adjustments. Balances never go negative.

Domain
------
- spend: debit a positive amount, rejected when the balance is short
- add: player-initiated grant (can be disabled through config)
- admin_set: overwrite a balance
- admin_give: signed adjustment by the owner

Concurrency
-----------
The check and the debit run on the player row locked by
``PlayerRepository`` inside one ``get_transaction()``. Concurrent spends
for one player serialize on that lock (``BEGIN IMMEDIATE`` on SQLite), so
N parallel spends against a balance covering one spend yield exactly one
success. The ``credits >= 0`` CHECK constraint backs this up in the store.

Config Keys
-----------
- economy.allow_player_credit_grant (bool, default true)
- economy.max_balance (int, default 1_000_000_000): balances are clamped here
- economy.max_transaction_amount (int, default 1_000_000_000)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from gamevault.core.database.service import DatabaseService
from gamevault.core.infra.audit_logger import AuditLogger
from gamevault.core.validation.input_validator import InputValidator
from gamevault.modules.shared.base_service import BaseService
from gamevault.modules.shared.exceptions import ForbiddenError, InsufficientFundsError
from gamevault.modules.shared.players import PlayerRepository

if TYPE_CHECKING:
    from logging import Logger

    from gamevault.core.config.manager import ConfigManager
    from gamevault.core.event.bus import EventBus

DEFAULT_MAX_BALANCE = 1_000_000_000
DEFAULT_MAX_TRANSACTION = 1_000_000_000


def apply_credit_delta(current: int, delta: int, max_balance: int) -> int:
    """
    Balance after applying ``delta``, clamped to ``max_balance``.

    Raises:
        InsufficientFundsError: If the result would be negative
    """
    new_value = current + delta
    if new_value < 0:
        raise InsufficientFundsError(required=-delta, current=current)
    return min(new_value, max(max_balance, current))


class LedgerService(BaseService):
    """
    Service for the credits ledger.

    Public Methods
    --------------
    - get_balance() -> Current balance
    - spend() -> Debit credits (player)
    - add() -> Grant credits (player, config-gated)
    - admin_set() -> Overwrite balance (owner)
    - admin_give() -> Signed adjustment (owner)
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._player_repo = PlayerRepository()

    @property
    def max_balance(self) -> int:
        return int(self.get_config("economy.max_balance", default=DEFAULT_MAX_BALANCE))

    @property
    def max_transaction_amount(self) -> int:
        return int(
            self.get_config("economy.max_transaction_amount", default=DEFAULT_MAX_TRANSACTION)
        )

    async def _record_change(
        self,
        *,
        event_type: str,
        player_id: str,
        old_value: int,
        new_value: int,
        reason: str,
        requested: int,
        game_id: Optional[str] = None,
    ) -> None:
        await AuditLogger.log_credit_change(
            player_id=player_id,
            old_value=old_value,
            new_value=new_value,
            reason=reason,
            context=f"economy.{reason}",
            meta={"game_id": game_id} if game_id else None,
            bus=self._events,
        )
        await self.emit_event(
            event_type,
            {
                "player_id": player_id,
                "game_id": game_id,
                "old_value": old_value,
                "new_value": new_value,
                "delta": new_value - old_value,
                "requested_amount": requested,
            },
        )

    # ========================================================================
    # PUBLIC API - Read Operations
    # ========================================================================

    async def get_balance(self, player_id: str) -> Dict[str, Any]:
        """
        Current balance.

        Returns:
            {"player_id", "credits"}

        Raises:
            NotFoundError: If the player does not exist
        """
        player_id = InputValidator.validate_identifier(player_id, "player_id")

        async with DatabaseService.get_session() as session:
            player = await self._player_repo.get_existing(session, player_id, for_update=False)

        return {"player_id": player.id, "credits": player.credits}

    # ========================================================================
    # PUBLIC API - Player Write Operations
    # ========================================================================

    async def spend(self, player_id: str, amount: int) -> Dict[str, Any]:
        """
        Debit ``amount`` credits.

        Args:
            player_id: Authenticated player
            amount: Positive integer

        Returns:
            {"player_id", "credits", "delta"} with ``delta == -amount``

        Raises:
            ValidationError: If amount is not a positive integer
            InsufficientFundsError: If the balance is below ``amount``
            NotFoundError / ForbiddenError: Missing or banned player

        Example:
            >>> await ledger.spend(player_id, 25)
            {"player_id": "...", "credits": 75, "delta": -25}
        """
        player_id = InputValidator.validate_identifier(player_id, "player_id")
        amount = InputValidator.validate_credit_amount(
            amount, max_value=self.max_transaction_amount
        )

        self.log_operation("spend", player_id=player_id, amount=amount)

        async with DatabaseService.get_transaction() as session:
            player = await self._player_repo.get_active(session, player_id, action="spend")

            old_value = player.credits
            if old_value < amount:
                self.log.info(
                    "Spend rejected: insufficient credits",
                    extra={"player_id": player_id, "required": amount, "current": old_value},
                )
                raise InsufficientFundsError(required=amount, current=old_value)

            player.credits = old_value - amount
            new_value = player.credits
            game_id = player.game_id

        await self._record_change(
            event_type="ledger.spent",
            player_id=player_id,
            old_value=old_value,
            new_value=new_value,
            reason="spend",
            requested=amount,
            game_id=game_id,
        )

        self.log.info(
            f"Credits spent: -{amount}",
            extra={"player_id": player_id, "old_value": old_value, "new_value": new_value},
        )

        return {"player_id": player_id, "credits": new_value, "delta": -amount}

    async def add(self, player_id: str, amount: int) -> Dict[str, Any]:
        """
        Grant ``amount`` credits to the calling player.

        Balances are clamped to ``economy.max_balance``; the returned
        ``delta`` is the amount actually applied.

        Raises:
            ForbiddenError: If player grants are disabled by config
            ValidationError: If amount is not a positive integer
        """
        player_id = InputValidator.validate_identifier(player_id, "player_id")

        if not self.get_config("economy.allow_player_credit_grant", default=True):
            raise ForbiddenError("add_credits", "player credit grants are disabled")

        amount = InputValidator.validate_credit_amount(
            amount, max_value=self.max_transaction_amount
        )

        self.log_operation("add", player_id=player_id, amount=amount)

        async with DatabaseService.get_transaction() as session:
            player = await self._player_repo.get_active(session, player_id, action="add_credits")

            old_value = player.credits
            player.credits = apply_credit_delta(old_value, amount, self.max_balance)
            new_value = player.credits
            game_id = player.game_id

        await self._record_change(
            event_type="ledger.added",
            player_id=player_id,
            old_value=old_value,
            new_value=new_value,
            reason="add",
            requested=amount,
            game_id=game_id,
        )

        self.log.info(
            f"Credits added: +{new_value - old_value}",
            extra={
                "player_id": player_id,
                "old_value": old_value,
                "new_value": new_value,
                "requested_amount": amount,
            },
        )

        return {"player_id": player_id, "credits": new_value, "delta": new_value - old_value}

    # ========================================================================
    # PUBLIC API - Owner Write Operations
    # ========================================================================

    async def admin_set(self, player_id: str, amount: int) -> Dict[str, Any]:
        """
        Overwrite a player's balance.

        Banned players can still be adjusted by the owner.

        Raises:
            ValidationError: If amount is negative or above max balance
            NotFoundError: If the player does not exist
        """
        player_id = InputValidator.validate_identifier(player_id, "player_id")
        amount = InputValidator.validate_non_negative_integer(
            amount, field_name="amount", max_value=self.max_balance
        )

        self.log_operation("admin_set", player_id=player_id, amount=amount)

        async with DatabaseService.get_transaction() as session:
            player = await self._player_repo.get_existing(session, player_id)
            old_value = player.credits
            player.credits = amount
            game_id = player.game_id

        await self._record_change(
            event_type="ledger.set",
            player_id=player_id,
            old_value=old_value,
            new_value=amount,
            reason="admin_set",
            requested=amount,
            game_id=game_id,
        )

        return {"player_id": player_id, "credits": amount, "delta": amount - old_value}

    async def admin_give(self, player_id: str, amount: int) -> Dict[str, Any]:
        """
        Add (or, when negative, deduct) credits as the owner.

        Raises:
            ValidationError: If amount is zero or not an integer
            NotFoundError: If the player does not exist
            InsufficientFundsError: If a deduction would go below zero
        """
        player_id = InputValidator.validate_identifier(player_id, "player_id")
        limit = self.max_transaction_amount
        amount = InputValidator.validate_integer(
            amount, field_name="amount", min_value=-limit, max_value=limit, allow_zero=False
        )

        self.log_operation("admin_give", player_id=player_id, amount=amount)

        async with DatabaseService.get_transaction() as session:
            player = await self._player_repo.get_existing(session, player_id)
            old_value = player.credits
            player.credits = apply_credit_delta(old_value, amount, self.max_balance)
            new_value = player.credits
            game_id = player.game_id

        await self._record_change(
            event_type="ledger.given",
            player_id=player_id,
            old_value=old_value,
            new_value=new_value,
            reason="admin_give",
            requested=amount,
            game_id=game_id,
        )

        return {"player_id": player_id, "credits": new_value, "delta": new_value - old_value}
