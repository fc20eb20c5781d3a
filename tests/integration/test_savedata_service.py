"""
Integration Tests for SaveDataService
=====================================

Test Coverage
-------------
- Upserting keys and loading them back
- Key deletion
- Validation of keys, values and ownership
"""

import pytest

from gamevault.modules.shared.exceptions import ForbiddenError, NotFoundError, ValidationError


@pytest.mark.integration
@pytest.mark.database
class TestSaveData:
    """Test key/value save data."""

    async def test_save_merges_keys(self, services, register):
        # Arrange
        pid = (await register("g1", "alice"))["player_id"]

        # Act
        await services.savedata.save(pid, {"level": 1, "inventory": {"slots": [1, 2]}})
        result = await services.savedata.save(pid, {"level": 2, "score": 10.5})

        # Assert
        assert result["saved_keys"] == ["level", "score"]
        loaded = await services.savedata.load(pid)
        assert loaded["data"] == {"inventory": {"slots": [1, 2]}, "level": 2, "score": 10.5}

    async def test_delete_key(self, services, register):
        pid = (await register("g1", "alice"))["player_id"]
        await services.savedata.save(pid, {"level": 1})

        removed = await services.savedata.delete_key(pid, "level")
        missing = await services.savedata.delete_key(pid, "level")

        assert removed["deleted"] is True
        assert missing["deleted"] is False
        assert (await services.savedata.load(pid))["data"] == {}

    async def test_non_serializable_value(self, services, register):
        pid = (await register("g1", "alice"))["player_id"]

        with pytest.raises(ValidationError):
            await services.savedata.save(pid, {"when": object()})

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf"), {"nested": [float("nan")]}])
    async def test_non_finite_numbers_rejected(self, services, register, value):
        # Arrange
        pid = (await register("g1", "alice"))["player_id"]

        # Act
        with pytest.raises(ValidationError):
            await services.savedata.save(pid, {"score": value})

        # Assert
        assert (await services.savedata.load(pid))["data"] == {}

    async def test_too_many_keys(self, services, config_manager, register):
        pid = (await register("g1", "alice"))["player_id"]
        config_manager.set("savedata.max_keys_per_save", 2)

        with pytest.raises(ValidationError):
            await services.savedata.save(pid, {"a": 1, "b": 2, "c": 3})

    async def test_non_mapping_rejected(self, services, register):
        pid = (await register("g1", "alice"))["player_id"]

        with pytest.raises(ValidationError):
            await services.savedata.save(pid, ["level", 1])

    async def test_unknown_player(self, services):
        with pytest.raises(NotFoundError):
            await services.savedata.load("missing")

    async def test_banned_player_cannot_save(self, services, register):
        pid = (await register("g1", "alice"))["player_id"]
        await services.admin.set_banned(pid, True)

        with pytest.raises(ForbiddenError):
            await services.savedata.save(pid, {"level": 3})
