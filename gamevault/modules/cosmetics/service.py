"""
Cosmetics Service
=================

Purpose
-------
Tenant-scoped cosmetic catalog, purchases with credits, owner grants and
the equip flag.

Domain
------
- A cosmetic is visible only to players of the same ``game_id``; ids from
  another tenant behave exactly like unknown ids
- A player owns a cosmetic at most once (ownership primary key)
- Buying debits the price and inserts the ownership row in one transaction
- Granting is idempotent: granting an owned cosmetic is a no-op
- Equipping is a flag flip on an owned row; no per-category exclusivity

Concurrency
-----------
The buyer's Player row is locked before the ownership and balance checks.
A duplicate purchase that still reaches the insert fails on the ownership
primary key; the whole transaction (debit included) rolls back and the
caller sees ``ConflictError``. A catalog entry deleted between the catalog
read and the insert fails on the foreign key and surfaces as ``NotFoundError``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from gamevault.core.database.service import DatabaseService
from gamevault.core.infra.audit_logger import AuditLogger
from gamevault.core.logging.logger import get_logger
from gamevault.core.validation.input_validator import InputValidator
from gamevault.modules.shared.base_repository import BaseRepository, classify_integrity_error
from gamevault.modules.shared.base_service import BaseService
from gamevault.modules.shared.exceptions import (
    ConflictError,
    ForbiddenError,
    InsufficientFundsError,
    NotFoundError,
    ValidationError,
)
from gamevault.modules.shared.players import PlayerRepository

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from gamevault.core.config.manager import ConfigManager
    from gamevault.core.event.bus import EventBus
    from gamevault.database.models import CosmeticDefinition, CosmeticOwnership

UPDATABLE_FIELDS = frozenset({"name", "category", "description", "price", "rarity"})

# Ownership primary key name under the metadata naming convention
OWNERSHIP_CONSTRAINT = "pk_player_cosmetics"


# ============================================================================
# Repositories
# ============================================================================


class CosmeticCatalogRepository(BaseRepository["CosmeticDefinition"]):
    """Repository for CosmeticDefinition model."""

    async def get_in_game(
        self, session: AsyncSession, cosmetic_id: str, game_id: str
    ) -> Optional[CosmeticDefinition]:
        """Catalog entry by id, hidden when it belongs to another game."""
        cosmetic = await self.get(session, cosmetic_id)
        if cosmetic is None or cosmetic.game_id != game_id:
            return None
        return cosmetic

    async def list_for_game(
        self, session: AsyncSession, game_id: str
    ) -> List[CosmeticDefinition]:
        return await self.find_many_where(
            session,
            self.model_class.game_id == game_id,
            order_by=[self.model_class.name, self.model_class.id],
        )


class CosmeticOwnershipRepository(BaseRepository["CosmeticOwnership"]):
    """Repository for CosmeticOwnership model."""

    async def find_owned(
        self,
        session: AsyncSession,
        player_id: str,
        cosmetic_id: str,
        *,
        for_update: bool = False,
    ) -> Optional[CosmeticOwnership]:
        return await self.find_one_where(
            session,
            self.model_class.player_id == player_id,
            self.model_class.cosmetic_id == cosmetic_id,
            for_update=for_update,
        )


def serialize_cosmetic(cosmetic: CosmeticDefinition) -> Dict[str, Any]:
    return {
        "cosmetic_id": cosmetic.id,
        "game_id": cosmetic.game_id,
        "name": cosmetic.name,
        "category": cosmetic.category,
        "description": cosmetic.description,
        "price": cosmetic.price,
        "rarity": cosmetic.rarity,
    }


# ============================================================================
# CosmeticsService
# ============================================================================


class CosmeticsService(BaseService):
    """
    Service for the cosmetic catalog and ownership.

    Public Methods
    --------------
    - list_catalog() / list_owned() -> Reads
    - buy_cosmetic() -> Debit price and take ownership (player)
    - equip_cosmetic() -> Toggle the equipped flag (player)
    - grant_cosmetic() -> Idempotent ownership grant (owner)
    - create_cosmetic() / update_cosmetic() / delete_cosmetic() -> Catalog (owner)
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)

        from gamevault.database.models import CosmeticDefinition, CosmeticOwnership

        self._player_repo = PlayerRepository()
        self._catalog_repo = CosmeticCatalogRepository(
            model_class=CosmeticDefinition,
            logger=get_logger(f"{__name__}.CosmeticCatalogRepository"),
        )
        self._ownership_repo = CosmeticOwnershipRepository(
            model_class=CosmeticOwnership,
            logger=get_logger(f"{__name__}.CosmeticOwnershipRepository"),
        )

    # ========================================================================
    # Validation helpers
    # ========================================================================

    def _validate_name(self, name: Any) -> str:
        return InputValidator.validate_string(
            name,
            field_name="name",
            min_length=1,
            max_length=self.get_config("cosmetics.name_max_length", default=64),
        )

    def _validate_fields(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Validate catalog fields; ``None`` description is allowed."""
        validated: Dict[str, Any] = {}

        for field_name, value in fields.items():
            if field_name == "name":
                validated["name"] = self._validate_name(value)
            elif field_name == "category":
                validated["category"] = InputValidator.validate_string(
                    value, field_name="category", min_length=1, max_length=32
                )
            elif field_name == "description":
                validated["description"] = (
                    None
                    if value is None
                    else InputValidator.validate_string(
                        value, field_name="description", max_length=1024
                    )
                )
            elif field_name == "price":
                validated["price"] = InputValidator.validate_non_negative_integer(
                    value,
                    field_name="price",
                    max_value=self.get_config(
                        "economy.max_transaction_amount", default=1_000_000_000
                    ),
                )
            elif field_name == "rarity":
                validated["rarity"] = InputValidator.validate_string(
                    value, field_name="rarity", min_length=1, max_length=32
                )
            else:
                raise ValidationError(field_name, f"Unknown cosmetic field '{field_name}'")

        return validated

    # ========================================================================
    # PUBLIC API - Read Operations
    # ========================================================================

    async def list_catalog(self, game_id: str) -> List[Dict[str, Any]]:
        """Catalog entries of one game, sorted by name."""
        game_id = InputValidator.validate_identifier(game_id, "game_id")

        async with DatabaseService.get_session() as session:
            cosmetics = await self._catalog_repo.list_for_game(session, game_id)

        return [serialize_cosmetic(c) for c in cosmetics]

    async def list_owned(self, player_id: str) -> List[Dict[str, Any]]:
        """
        Cosmetics owned by a player with their equipped flag.

        Raises:
            NotFoundError: If the player does not exist
        """
        player_id = InputValidator.validate_identifier(player_id, "player_id")

        ownership = self._ownership_repo.model_class
        catalog = self._catalog_repo.model_class

        async with DatabaseService.get_session() as session:
            await self._player_repo.get_existing(session, player_id, for_update=False)
            stmt = (
                select(catalog, ownership.equipped, ownership.obtained_at)
                .join(ownership, ownership.cosmetic_id == catalog.id)
                .where(ownership.player_id == player_id)
                .order_by(catalog.name, catalog.id)
            )
            rows = (await session.execute(stmt)).all()

        return [
            {
                **serialize_cosmetic(cosmetic),
                "equipped": equipped,
                "obtained_at": obtained_at.isoformat() if obtained_at else None,
            }
            for cosmetic, equipped, obtained_at in rows
        ]

    # ========================================================================
    # PUBLIC API - Player Write Operations
    # ========================================================================

    async def buy_cosmetic(self, player_id: str, cosmetic_id: str) -> Dict[str, Any]:
        """
        Buy a cosmetic from the player's game catalog.

        Returns:
            {"player_id", "cosmetic_id", "credits", "price"}

        Raises:
            NotFoundError: Unknown cosmetic (or one from another game)
            ConflictError: Already owned
            InsufficientFundsError: Price exceeds balance
            ForbiddenError: Banned player
        """
        player_id = InputValidator.validate_identifier(player_id, "player_id")
        cosmetic_id = InputValidator.validate_identifier(cosmetic_id, "cosmetic_id")

        self.log_operation("buy_cosmetic", player_id=player_id, cosmetic_id=cosmetic_id)

        try:
            async with DatabaseService.get_transaction() as session:
                player = await self._player_repo.get_active(
                    session, player_id, action="buy_cosmetic"
                )

                cosmetic = await self._catalog_repo.get_in_game(
                    session, cosmetic_id, player.game_id
                )
                if cosmetic is None:
                    raise NotFoundError("Cosmetic", cosmetic_id)

                if await self._ownership_repo.find_owned(session, player_id, cosmetic_id):
                    raise ConflictError("Cosmetic", "cosmetic already owned")

                price = cosmetic.price
                old_value = player.credits
                if old_value < price:
                    raise InsufficientFundsError(required=price, current=old_value)

                player.credits = old_value - price
                new_value = player.credits
                game_id = player.game_id

                self._ownership_repo.add(
                    session,
                    self._ownership_repo.model_class(
                        player_id=player_id, cosmetic_id=cosmetic_id, equipped=False
                    ),
                )
                await self._ownership_repo.flush(session)
        except IntegrityError as exc:
            kind, constraint = classify_integrity_error(exc)
            if kind == "foreign_key":
                # Catalog entry deleted between the read and the insert
                raise NotFoundError("Cosmetic", cosmetic_id) from exc
            if kind == "unique" and constraint in (None, OWNERSHIP_CONSTRAINT):
                raise ConflictError("Cosmetic", "cosmetic already owned") from exc
            raise

        await AuditLogger.log_credit_change(
            player_id=player_id,
            old_value=old_value,
            new_value=new_value,
            reason="cosmetic_purchase",
            context="cosmetics.buy_cosmetic",
            meta={"cosmetic_id": cosmetic_id, "game_id": game_id},
            bus=self._events,
        )
        await self.emit_event(
            "cosmetic.purchased",
            {
                "player_id": player_id,
                "game_id": game_id,
                "cosmetic_id": cosmetic_id,
                "price": price,
                "credits": new_value,
            },
        )

        self.log.info(
            f"Cosmetic purchased: {cosmetic_id}",
            extra={"player_id": player_id, "price": price, "new_value": new_value},
        )

        return {
            "player_id": player_id,
            "cosmetic_id": cosmetic_id,
            "credits": new_value,
            "price": price,
        }

    async def equip_cosmetic(
        self, player_id: str, cosmetic_id: str, equipped: bool
    ) -> Dict[str, Any]:
        """
        Set the equipped flag of an owned cosmetic.

        Raises:
            ForbiddenError: If the player does not own the cosmetic
        """
        player_id = InputValidator.validate_identifier(player_id, "player_id")
        cosmetic_id = InputValidator.validate_identifier(cosmetic_id, "cosmetic_id")
        equipped = InputValidator.validate_bool(equipped, "equipped")

        self.log_operation(
            "equip_cosmetic", player_id=player_id, cosmetic_id=cosmetic_id, equipped=equipped
        )

        async with DatabaseService.get_transaction() as session:
            await self._player_repo.get_active(session, player_id, action="equip_cosmetic")
            owned = await self._ownership_repo.find_owned(
                session, player_id, cosmetic_id, for_update=True
            )
            if owned is None:
                raise ForbiddenError("equip_cosmetic", "cosmetic not owned")
            owned.equipped = equipped

        await self.emit_event(
            "cosmetic.equipped",
            {"player_id": player_id, "cosmetic_id": cosmetic_id, "equipped": equipped},
        )

        return {"player_id": player_id, "cosmetic_id": cosmetic_id, "equipped": equipped}

    # ========================================================================
    # PUBLIC API - Owner Operations
    # ========================================================================

    async def grant_cosmetic(self, player_id: str, cosmetic_id: str) -> Dict[str, Any]:
        """
        Give a cosmetic to a player for free.

        Granting an already-owned cosmetic changes nothing and reports
        ``granted=False``.

        Raises:
            NotFoundError: Unknown player, or cosmetic not in the player's game
        """
        player_id = InputValidator.validate_identifier(player_id, "player_id")
        cosmetic_id = InputValidator.validate_identifier(cosmetic_id, "cosmetic_id")

        self.log_operation("grant_cosmetic", player_id=player_id, cosmetic_id=cosmetic_id)

        async with DatabaseService.get_transaction() as session:
            player = await self._player_repo.get_existing(session, player_id)
            cosmetic = await self._catalog_repo.get_in_game(session, cosmetic_id, player.game_id)
            if cosmetic is None:
                raise NotFoundError("Cosmetic", cosmetic_id)

            owned = await self._ownership_repo.find_owned(session, player_id, cosmetic_id)
            granted = owned is None
            if granted:
                self._ownership_repo.add(
                    session,
                    self._ownership_repo.model_class(
                        player_id=player_id, cosmetic_id=cosmetic_id, equipped=False
                    ),
                )

        if granted:
            await AuditLogger.log(
                player_id=player_id,
                transaction_type="cosmetic_grant",
                details={"cosmetic_id": cosmetic_id},
                context="cosmetics.grant_cosmetic",
                bus=self._events,
            )
            await self.emit_event(
                "cosmetic.granted", {"player_id": player_id, "cosmetic_id": cosmetic_id}
            )

        return {"player_id": player_id, "cosmetic_id": cosmetic_id, "granted": granted}

    async def create_cosmetic(
        self,
        game_id: str,
        name: str,
        category: str,
        description: Optional[str] = None,
        price: int = 0,
        rarity: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Add a catalog entry to ``game_id``.

        ``rarity`` defaults to ``cosmetics.default_rarity``.
        """
        game_id = InputValidator.validate_identifier(game_id, "game_id")
        if rarity is None:
            rarity = self.get_config("cosmetics.default_rarity", default="common")

        fields = self._validate_fields(
            {
                "name": name,
                "category": category,
                "description": description,
                "price": price,
                "rarity": rarity,
            }
        )

        self.log_operation("create_cosmetic", game_id=game_id, name=fields["name"])

        async with DatabaseService.get_transaction() as session:
            cosmetic = self._catalog_repo.model_class(game_id=game_id, **fields)
            self._catalog_repo.add(session, cosmetic)
            await self._catalog_repo.flush(session)
            result = serialize_cosmetic(cosmetic)

        await self.emit_event(
            "cosmetic.created", {"cosmetic_id": result["cosmetic_id"], "game_id": game_id}
        )

        return result

    async def update_cosmetic(self, cosmetic_id: str, **fields: Any) -> Dict[str, Any]:
        """
        Change catalog fields (name, category, description, price, rarity).

        Raises:
            ValidationError: Unknown field, bad value, or nothing to update
            NotFoundError: Unknown cosmetic
        """
        cosmetic_id = InputValidator.validate_identifier(cosmetic_id, "cosmetic_id")
        if not fields:
            raise ValidationError("fields", "No fields to update")
        validated = self._validate_fields(fields)

        self.log_operation("update_cosmetic", cosmetic_id=cosmetic_id, fields=sorted(validated))

        async with DatabaseService.get_transaction() as session:
            cosmetic = await self._catalog_repo.get_for_update(session, cosmetic_id)
            if cosmetic is None:
                raise NotFoundError("Cosmetic", cosmetic_id)
            for field_name, value in validated.items():
                setattr(cosmetic, field_name, value)
            result = serialize_cosmetic(cosmetic)

        await self.emit_event(
            "cosmetic.updated", {"cosmetic_id": cosmetic_id, "fields": sorted(validated)}
        )

        return result

    async def delete_cosmetic(self, cosmetic_id: str) -> Dict[str, Any]:
        """
        Remove a catalog entry and every ownership row pointing at it.

        Raises:
            NotFoundError: Unknown cosmetic
        """
        cosmetic_id = InputValidator.validate_identifier(cosmetic_id, "cosmetic_id")

        self.log_operation("delete_cosmetic", cosmetic_id=cosmetic_id)

        async with DatabaseService.get_transaction() as session:
            cosmetic = await self._catalog_repo.get_for_update(session, cosmetic_id)
            if cosmetic is None:
                raise NotFoundError("Cosmetic", cosmetic_id)

            removed_ownerships = await self._ownership_repo.delete_where(
                session, self._ownership_repo.model_class.cosmetic_id == cosmetic_id
            )
            await self._catalog_repo.delete(session, cosmetic)

        await self.emit_event(
            "cosmetic.deleted",
            {"cosmetic_id": cosmetic_id, "removed_ownerships": removed_ownerships},
        )

        return {"cosmetic_id": cosmetic_id, "removed_ownerships": removed_ownerships}
