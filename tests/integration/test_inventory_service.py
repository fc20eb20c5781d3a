"""
Integration Tests for InventoryService
======================================

Test Coverage
-------------
- Stack creation and increments
- Partial and full removal
- Owner grants and ban enforcement
"""

import pytest

from gamevault.modules.shared.exceptions import ForbiddenError, NotFoundError, ValidationError


@pytest.mark.integration
@pytest.mark.database
class TestInventory:
    """Test item stacks."""

    async def test_add_creates_then_increments(self, services, register, published):
        # Arrange
        player = await register("g1", "alice")
        pid = player["player_id"]

        # Act
        first = await services.inventory.add_item(pid, "sword", 1, metadata={"dmg": 5})
        second = await services.inventory.add_item(pid, "sword", 2, metadata={"dmg": 99})

        # Assert
        assert first["quantity"] == 1
        assert second["quantity"] == 3

        listing = await services.inventory.list_items(pid)
        assert listing["items"] == [{"item_name": "sword", "quantity": 3, "metadata": {"dmg": 5}}]
        assert sum(1 for name, _ in published if name == "inventory.item_added") == 2

    async def test_list_is_sorted_by_name(self, services, register):
        pid = (await register("g1", "alice"))["player_id"]
        await services.inventory.add_item(pid, "shield")
        await services.inventory.add_item(pid, "apple", 4)

        items = (await services.inventory.list_items(pid))["items"]

        assert [i["item_name"] for i in items] == ["apple", "shield"]

    async def test_partial_remove(self, services, register):
        pid = (await register("g1", "alice"))["player_id"]
        await services.inventory.add_item(pid, "potion", 5)

        result = await services.inventory.remove_item(pid, "potion", 2)

        assert result["quantity"] == 3

    async def test_removing_everything_deletes_stack(self, services, register):
        # Arrange
        pid = (await register("g1", "alice"))["player_id"]
        await services.inventory.add_item(pid, "potion", 2)

        # Act
        result = await services.inventory.remove_item(pid, "potion", 10)

        # Assert
        assert result["quantity"] == 0
        assert (await services.inventory.list_items(pid))["items"] == []

    async def test_remove_missing_item(self, services, register):
        pid = (await register("g1", "alice"))["player_id"]

        with pytest.raises(NotFoundError):
            await services.inventory.remove_item(pid, "ghost", 1)

    @pytest.mark.parametrize("quantity", [0, -1, "x"])
    async def test_invalid_quantity(self, services, register, quantity):
        pid = (await register("g1", "alice"))["player_id"]

        with pytest.raises(ValidationError):
            await services.inventory.add_item(pid, "sword", quantity)

    async def test_banned_player_cannot_add(self, services, register):
        pid = (await register("g1", "alice"))["player_id"]
        await services.admin.set_banned(pid, True)

        with pytest.raises(ForbiddenError):
            await services.inventory.add_item(pid, "sword")

    async def test_admin_give_item_ignores_ban(self, services, register):
        pid = (await register("g1", "alice"))["player_id"]
        await services.admin.set_banned(pid, True)

        result = await services.inventory.admin_give_item(pid, "crown", 1)

        assert result["quantity"] == 1
        view = await services.admin.view_inventory(pid)
        assert view["items"][0]["item_name"] == "crown"

    async def test_admin_give_item_unknown_player(self, services):
        with pytest.raises(NotFoundError):
            await services.inventory.admin_give_item("missing", "crown", 1)
