"""
Inventory Service
=================

Purpose
-------
Stackable item ownership: one row per (player, item name) holding a
positive quantity and an optional opaque metadata blob.

Rules
-----
- Adding an item increments the stack, creating it when absent
- Metadata is written only when the stack is created; later adds never
  overwrite it
- Removing at least the stored quantity deletes the row; stacks never
  hold zero
- Writes lock the owning Player row first, so concurrent adds for the
  same player serialize and never race on stack creation
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from gamevault.core.database.service import DatabaseService
from gamevault.core.infra.audit_logger import AuditLogger
from gamevault.core.logging.logger import get_logger
from gamevault.core.validation.input_validator import InputValidator
from gamevault.modules.shared.base_repository import BaseRepository
from gamevault.modules.shared.base_service import BaseService
from gamevault.modules.shared.exceptions import NotFoundError
from gamevault.modules.shared.players import PlayerRepository

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from gamevault.core.config.manager import ConfigManager
    from gamevault.core.event.bus import EventBus
    from gamevault.database.models import InventoryEntry


# ============================================================================
# Repository
# ============================================================================


class InventoryRepository(BaseRepository["InventoryEntry"]):
    """Repository for InventoryEntry model."""

    async def find_entry(
        self,
        session: AsyncSession,
        player_id: str,
        item_name: str,
        *,
        for_update: bool = False,
    ) -> Optional[InventoryEntry]:
        return await self.find_one_where(
            session,
            self.model_class.player_id == player_id,
            self.model_class.item_name == item_name,
            for_update=for_update,
        )


def serialize_entry(entry: InventoryEntry) -> Dict[str, Any]:
    return {
        "item_name": entry.item_name,
        "quantity": entry.quantity,
        "metadata": entry.item_metadata,
    }


# ============================================================================
# InventoryService
# ============================================================================


class InventoryService(BaseService):
    """
    Service for item stacks.

    Public Methods
    --------------
    - list_items() -> All stacks of a player
    - add_item() -> Increment/create a stack (player)
    - remove_item() -> Decrement/delete a stack (player)
    - admin_give_item() -> Increment/create a stack (owner)
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)

        from gamevault.database.models import InventoryEntry

        self._player_repo = PlayerRepository()
        self._inventory_repo = InventoryRepository(
            model_class=InventoryEntry,
            logger=get_logger(f"{__name__}.InventoryRepository"),
        )

    def _validate_item_name(self, item_name: Any) -> str:
        return InputValidator.validate_string(
            item_name,
            field_name="item_name",
            min_length=1,
            max_length=self.get_config("inventory.item_name_max_length", default=64),
        )

    def _validate_quantity(self, quantity: Any) -> int:
        return InputValidator.validate_positive_integer(
            quantity,
            field_name="quantity",
            max_value=self.get_config("inventory.max_quantity", default=1_000_000),
        )

    async def _increment(
        self,
        session: AsyncSession,
        player_id: str,
        item_name: str,
        quantity: int,
        metadata: Optional[Dict[str, Any]],
    ) -> int:
        """Upsert a stack inside an open transaction; returns the new quantity."""
        entry = await self._inventory_repo.find_entry(
            session, player_id, item_name, for_update=True
        )
        if entry is None:
            entry = self._inventory_repo.model_class(
                player_id=player_id,
                item_name=item_name,
                quantity=quantity,
                item_metadata=metadata,
            )
            self._inventory_repo.add(session, entry)
        else:
            entry.quantity += quantity
        return entry.quantity

    # ========================================================================
    # PUBLIC API - Read Operations
    # ========================================================================

    async def list_items(self, player_id: str) -> Dict[str, Any]:
        """
        All item stacks of a player, sorted by item name.

        Raises:
            NotFoundError: If the player does not exist
        """
        player_id = InputValidator.validate_identifier(player_id, "player_id")

        async with DatabaseService.get_session() as session:
            await self._player_repo.get_existing(session, player_id, for_update=False)
            entries = await self._inventory_repo.find_many_where(
                session,
                self._inventory_repo.model_class.player_id == player_id,
                order_by=[self._inventory_repo.model_class.item_name],
            )

        return {"player_id": player_id, "items": [serialize_entry(e) for e in entries]}

    # ========================================================================
    # PUBLIC API - Write Operations
    # ========================================================================

    async def add_item(
        self,
        player_id: str,
        item_name: str,
        quantity: int = 1,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Add ``quantity`` of ``item_name`` to the player's inventory.

        Args:
            player_id: Authenticated player
            item_name: Item key
            quantity: Positive integer
            metadata: Optional JSON object, stored only when the stack is new

        Returns:
            {"player_id", "item_name", "quantity"} with the new stack size

        Raises:
            ValidationError: Bad name, quantity or metadata
            NotFoundError / ForbiddenError: Missing or banned player
        """
        player_id = InputValidator.validate_identifier(player_id, "player_id")
        item_name = self._validate_item_name(item_name)
        quantity = self._validate_quantity(quantity)
        if metadata is not None:
            metadata = InputValidator.validate_mapping(metadata, field_name="metadata")

        self.log_operation("add_item", player_id=player_id, item_name=item_name, quantity=quantity)

        async with DatabaseService.get_transaction() as session:
            await self._player_repo.get_active(session, player_id, action="add_item")
            new_quantity = await self._increment(
                session, player_id, item_name, quantity, metadata
            )

        await AuditLogger.log(
            player_id=player_id,
            transaction_type="item_add",
            details={"item_name": item_name, "quantity": quantity, "new_quantity": new_quantity},
            context="inventory.add_item",
            bus=self._events,
        )
        await self.emit_event(
            "inventory.item_added",
            {"player_id": player_id, "item_name": item_name, "quantity": new_quantity},
        )

        return {"player_id": player_id, "item_name": item_name, "quantity": new_quantity}

    async def remove_item(
        self, player_id: str, item_name: str, quantity: int = 1
    ) -> Dict[str, Any]:
        """
        Remove ``quantity`` of ``item_name``.

        Removing at least the stored amount deletes the stack.

        Returns:
            {"player_id", "item_name", "quantity"} with the remaining amount (0 if deleted)

        Raises:
            NotFoundError: If the player holds no such item
        """
        player_id = InputValidator.validate_identifier(player_id, "player_id")
        item_name = self._validate_item_name(item_name)
        quantity = self._validate_quantity(quantity)

        self.log_operation(
            "remove_item", player_id=player_id, item_name=item_name, quantity=quantity
        )

        async with DatabaseService.get_transaction() as session:
            await self._player_repo.get_active(session, player_id, action="remove_item")
            entry = await self._inventory_repo.find_entry(
                session, player_id, item_name, for_update=True
            )
            if entry is None:
                raise NotFoundError("Item", item_name)

            if quantity >= entry.quantity:
                removed = entry.quantity
                remaining = 0
                await self._inventory_repo.delete(session, entry)
            else:
                removed = quantity
                entry.quantity -= quantity
                remaining = entry.quantity

        await AuditLogger.log(
            player_id=player_id,
            transaction_type="item_remove",
            details={"item_name": item_name, "removed": removed, "remaining": remaining},
            context="inventory.remove_item",
            bus=self._events,
        )
        await self.emit_event(
            "inventory.item_removed",
            {"player_id": player_id, "item_name": item_name, "quantity": remaining},
        )

        return {"player_id": player_id, "item_name": item_name, "quantity": remaining}

    async def admin_give_item(
        self, player_id: str, item_name: str, quantity: int = 1
    ) -> Dict[str, Any]:
        """
        Owner grant of an item stack (no metadata, ban state ignored).

        Raises:
            NotFoundError: If the player does not exist
        """
        player_id = InputValidator.validate_identifier(player_id, "player_id")
        item_name = self._validate_item_name(item_name)
        quantity = self._validate_quantity(quantity)

        self.log_operation(
            "admin_give_item", player_id=player_id, item_name=item_name, quantity=quantity
        )

        async with DatabaseService.get_transaction() as session:
            await self._player_repo.get_existing(session, player_id)
            new_quantity = await self._increment(session, player_id, item_name, quantity, None)

        await AuditLogger.log(
            player_id=player_id,
            transaction_type="item_grant",
            details={"item_name": item_name, "quantity": quantity, "new_quantity": new_quantity},
            context="inventory.admin_give_item",
            bus=self._events,
        )
        await self.emit_event(
            "inventory.item_granted",
            {"player_id": player_id, "item_name": item_name, "quantity": new_quantity},
        )

        return {"player_id": player_id, "item_name": item_name, "quantity": new_quantity}
