"""
Integration Tests for CosmeticsService
======================================

Test Coverage
-------------
- Catalog CRUD scoped per game
- Purchases: debit, ownership, duplicates, cross-game isolation
- Constraint failures at insert time mapped by constraint kind
- Equip and owner grants
"""

import asyncio
import sqlite3

import pytest
from sqlalchemy.exc import IntegrityError

from gamevault.modules.shared.exceptions import (
    ConflictError,
    ForbiddenError,
    InsufficientFundsError,
    NotFoundError,
    ValidationError,
)


@pytest.fixture
def make_cosmetic(services):
    """Factory: create a catalog entry in ``game_id`` and return its id."""

    async def _make(name: str = "Red Hat", price: int = 50, game_id: str = "g1") -> str:
        result = await services.cosmetics.create_cosmetic(game_id, name, "hat", price=price)
        return result["cosmetic_id"]

    return _make


# ============================================================================
# CATALOG
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestCatalog:
    """Test catalog management."""

    async def test_create_uses_default_rarity(self, services):
        result = await services.cosmetics.create_cosmetic("g1", "Red Hat", "hat", price=10)

        assert result["rarity"] == "common"
        assert result["description"] is None
        assert result["game_id"] == "g1"

    async def test_catalog_is_per_game_and_sorted(self, services, make_cosmetic):
        await make_cosmetic("Zebra Cape", game_id="g1")
        await make_cosmetic("Alpha Boots", game_id="g1")
        await make_cosmetic("Other Game Hat", game_id="g2")

        catalog = await services.cosmetics.list_catalog("g1")

        assert [c["name"] for c in catalog] == ["Alpha Boots", "Zebra Cape"]

    async def test_update_fields(self, services, make_cosmetic):
        cosmetic_id = await make_cosmetic()

        result = await services.cosmetics.update_cosmetic(cosmetic_id, price=75, rarity="epic")

        assert result["price"] == 75
        assert result["rarity"] == "epic"
        assert result["name"] == "Red Hat"

    async def test_update_rejects_unknown_or_empty(self, services, make_cosmetic):
        cosmetic_id = await make_cosmetic()

        with pytest.raises(ValidationError):
            await services.cosmetics.update_cosmetic(cosmetic_id, colour="red")
        with pytest.raises(ValidationError):
            await services.cosmetics.update_cosmetic(cosmetic_id)
        with pytest.raises(NotFoundError):
            await services.cosmetics.update_cosmetic("missing", price=1)

    async def test_negative_price_rejected(self, services):
        with pytest.raises(ValidationError):
            await services.cosmetics.create_cosmetic("g1", "Hat", "hat", price=-1)

    async def test_delete_removes_ownerships(self, services, funded_player, make_cosmetic):
        # Arrange
        player = await funded_player("alice", 100)
        cosmetic_id = await make_cosmetic(price=10)
        await services.cosmetics.buy_cosmetic(player["player_id"], cosmetic_id)

        # Act
        result = await services.cosmetics.delete_cosmetic(cosmetic_id)

        # Assert
        assert result["removed_ownerships"] == 1
        assert await services.cosmetics.list_owned(player["player_id"]) == []
        assert await services.cosmetics.list_catalog("g1") == []


# ============================================================================
# PURCHASES
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestPurchases:
    """Test buying cosmetics."""

    async def test_buy_debits_and_grants_ownership(
        self, services, funded_player, make_cosmetic, published
    ):
        # Arrange
        player = await funded_player("alice", 100)
        cosmetic_id = await make_cosmetic(price=40)

        # Act
        result = await services.cosmetics.buy_cosmetic(player["player_id"], cosmetic_id)

        # Assert
        assert result["credits"] == 60
        assert result["price"] == 40

        owned = await services.cosmetics.list_owned(player["player_id"])
        assert [c["cosmetic_id"] for c in owned] == [cosmetic_id]
        assert owned[0]["equipped"] is False
        assert any(name == "cosmetic.purchased" for name, _ in published)

    async def test_buying_twice_conflicts_and_debits_once(
        self, services, funded_player, make_cosmetic
    ):
        player = await funded_player("alice", 100)
        cosmetic_id = await make_cosmetic(price=30)
        await services.cosmetics.buy_cosmetic(player["player_id"], cosmetic_id)

        with pytest.raises(ConflictError):
            await services.cosmetics.buy_cosmetic(player["player_id"], cosmetic_id)

        assert (await services.ledger.get_balance(player["player_id"]))["credits"] == 70

    async def test_concurrent_duplicate_buys(self, services, funded_player, make_cosmetic):
        # Arrange
        player = await funded_player("alice", 100)
        cosmetic_id = await make_cosmetic(price=30)

        # Act
        results = await asyncio.gather(
            *[services.cosmetics.buy_cosmetic(player["player_id"], cosmetic_id) for _ in range(3)],
            return_exceptions=True,
        )

        # Assert
        assert sum(1 for r in results if isinstance(r, dict)) == 1
        assert sum(1 for r in results if isinstance(r, ConflictError)) == 2
        assert (await services.ledger.get_balance(player["player_id"]))["credits"] == 70

    async def test_insufficient_funds_leaves_no_ownership(
        self, services, funded_player, make_cosmetic
    ):
        player = await funded_player("alice", 10)
        cosmetic_id = await make_cosmetic(price=50)

        with pytest.raises(InsufficientFundsError):
            await services.cosmetics.buy_cosmetic(player["player_id"], cosmetic_id)

        assert await services.cosmetics.list_owned(player["player_id"]) == []

    async def test_cosmetic_from_other_game_is_not_found(
        self, services, funded_player, make_cosmetic
    ):
        player = await funded_player("alice", 100, game_id="g1")
        foreign_id = await make_cosmetic(game_id="g2", price=1)

        with pytest.raises(NotFoundError):
            await services.cosmetics.buy_cosmetic(player["player_id"], foreign_id)

    async def test_banned_player_cannot_buy(self, services, funded_player, make_cosmetic):
        player = await funded_player("alice", 100)
        cosmetic_id = await make_cosmetic(price=1)
        await services.admin.set_banned(player["player_id"], True)

        with pytest.raises(ForbiddenError):
            await services.cosmetics.buy_cosmetic(player["player_id"], cosmetic_id)

    async def test_catalog_entry_deleted_mid_purchase_is_not_found(
        self, services, funded_player, make_cosmetic, mocker
    ):
        # Arrange
        player = await funded_player("alice", 100)
        cosmetic_id = await make_cosmetic(price=30)
        mocker.patch.object(
            services.cosmetics._ownership_repo,
            "flush",
            side_effect=IntegrityError(
                "INSERT INTO player_cosmetics",
                None,
                sqlite3.IntegrityError("FOREIGN KEY constraint failed"),
            ),
        )

        # Act
        with pytest.raises(NotFoundError):
            await services.cosmetics.buy_cosmetic(player["player_id"], cosmetic_id)

        # Assert
        assert (await services.ledger.get_balance(player["player_id"]))["credits"] == 100

    async def test_unrelated_unique_violation_is_not_reported_as_owned(
        self, services, funded_player, make_cosmetic, mocker
    ):
        player = await funded_player("alice", 100)
        cosmetic_id = await make_cosmetic(price=30)
        driver_error = sqlite3.IntegrityError("duplicate key value violates unique constraint")
        driver_error.sqlstate = "23505"
        driver_error.constraint_name = "uq_some_other_table"
        mocker.patch.object(
            services.cosmetics._ownership_repo,
            "flush",
            side_effect=IntegrityError("INSERT INTO player_cosmetics", None, driver_error),
        )

        with pytest.raises(IntegrityError):
            await services.cosmetics.buy_cosmetic(player["player_id"], cosmetic_id)

        assert (await services.ledger.get_balance(player["player_id"]))["credits"] == 100


# ============================================================================
# EQUIP & GRANT
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestEquipAndGrant:
    """Test equipping and owner grants."""

    async def test_equip_requires_ownership(self, services, register, make_cosmetic):
        pid = (await register("g1", "alice"))["player_id"]
        cosmetic_id = await make_cosmetic()

        with pytest.raises(ForbiddenError):
            await services.cosmetics.equip_cosmetic(pid, cosmetic_id, True)

    async def test_equip_toggles_flag(self, services, register, make_cosmetic):
        # Arrange
        pid = (await register("g1", "alice"))["player_id"]
        cosmetic_id = await make_cosmetic()
        await services.cosmetics.grant_cosmetic(pid, cosmetic_id)

        # Act
        await services.cosmetics.equip_cosmetic(pid, cosmetic_id, True)

        # Assert
        owned = await services.cosmetics.list_owned(pid)
        assert owned[0]["equipped"] is True

    async def test_grant_is_idempotent_and_free(self, services, funded_player, make_cosmetic):
        player = await funded_player("alice", 10)
        cosmetic_id = await make_cosmetic(price=500)

        first = await services.cosmetics.grant_cosmetic(player["player_id"], cosmetic_id)
        second = await services.cosmetics.grant_cosmetic(player["player_id"], cosmetic_id)

        assert first["granted"] is True
        assert second["granted"] is False
        assert len(await services.cosmetics.list_owned(player["player_id"])) == 1
        assert (await services.ledger.get_balance(player["player_id"]))["credits"] == 10

    async def test_grant_cross_game_is_not_found(self, services, register, make_cosmetic):
        pid = (await register("g1", "alice"))["player_id"]
        foreign_id = await make_cosmetic(game_id="g2")

        with pytest.raises(NotFoundError):
            await services.cosmetics.grant_cosmetic(pid, foreign_id)
