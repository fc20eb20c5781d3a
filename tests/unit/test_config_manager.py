"""
Unit tests for ConfigManager.
"""

import pytest

from gamevault.core.exceptions import ConfigurationError


class TestConfigManager:
    """YAML defaults, overrides and reset."""

    def test_reads_yaml_defaults(self, config_manager):
        assert config_manager.get("economy.max_balance") == 1_000_000_000
        assert config_manager.get("leaderboard.default_limit") == 10
        assert config_manager.get("economy.allow_player_credit_grant") is True

    def test_missing_key_returns_default(self, config_manager):
        assert config_manager.get("economy.no_such_key", 42) == 42
        assert config_manager.get("nope.nested.key") is None

    def test_set_overrides_value(self, config_manager):
        config_manager.set("economy.allow_player_credit_grant", False)

        assert config_manager.get("economy.allow_player_credit_grant", True) is False

    def test_set_creates_nested_keys(self, config_manager):
        config_manager.set("experimental.feature.enabled", True)

        assert config_manager.get("experimental.feature.enabled") is True

    def test_reset_drops_overrides(self, config_manager):
        config_manager.set("leaderboard.default_limit", 3)
        config_manager.reset()

        assert config_manager.get("leaderboard.default_limit") == 10

    def test_validator_rejects_bad_override(self, config_manager, mocker):
        mocker.patch.dict(config_manager._validators, {"leaderboard.max_limit": int})

        with pytest.raises(ConfigurationError):
            config_manager.set("leaderboard.max_limit", "many")

    async def test_initialize_is_idempotent(self, config_manager):
        await config_manager.initialize()
        config_manager.set("admin.search_limit", 5)
        await config_manager.initialize()

        snapshot = config_manager.health_snapshot()
        assert snapshot["initialized"] is True
        assert "economy.yaml" in snapshot["source_files"]
        assert config_manager.get("admin.search_limit") == 5
