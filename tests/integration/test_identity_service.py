"""
Integration Tests for IdentityService
=====================================

Test Coverage
-------------
- Registration, per-game username uniqueness
- Login, token rotation and bearer authentication
- Ban enforcement at login and authentication
- Owner password reset and owner key checks
"""

import asyncio

import pytest

from gamevault.modules.shared.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)


# ============================================================================
# REGISTRATION
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestRegistration:
    """Test player registration."""

    async def test_register_returns_token_and_zero_balance(self, services, published):
        # Act
        result = await services.identity.register("g1", "alice", "pw")

        # Assert
        assert result["username"] == "alice"
        assert result["game_id"] == "g1"
        assert result["credits"] == 0
        assert result["token"]
        assert ("player.registered", {
            "player_id": result["player_id"],
            "game_id": "g1",
            "username": "alice",
        }) in published

    async def test_duplicate_username_in_same_game_conflicts(self, services, register):
        # Arrange
        await register("g1", "alice")

        # Act / Assert
        with pytest.raises(ConflictError):
            await services.identity.register("g1", "alice", "other")

    async def test_same_username_in_another_game_is_allowed(self, services, register):
        # Arrange
        first = await register("g1", "alice")

        # Act
        second = await services.identity.register("g2", "alice", "pw")

        # Assert
        assert second["player_id"] != first["player_id"]

    async def test_concurrent_duplicate_registration_yields_one_player(self, services):
        # Act
        results = await asyncio.gather(
            *[services.identity.register("g1", "racer", "pw") for _ in range(4)],
            return_exceptions=True,
        )

        # Assert
        successes = [r for r in results if isinstance(r, dict)]
        assert len(successes) == 1
        assert all(isinstance(r, ConflictError) for r in results if not isinstance(r, dict))

    @pytest.mark.parametrize(
        "game_id,username,password",
        [("", "alice", "pw"), ("g1", "", "pw"), ("g1", "alice", ""), ("g1", "x" * 33, "pw")],
    )
    async def test_invalid_input_rejected(self, services, game_id, username, password):
        with pytest.raises(ValidationError):
            await services.identity.register(game_id, username, password)


# ============================================================================
# LOGIN & AUTHENTICATION
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestLogin:
    """Test login, token rotation and authentication."""

    async def test_login_rotates_token(self, services, register):
        # Arrange
        registered = await register("g1", "alice", "pw")

        # Act
        logged_in = await services.identity.login("g1", "alice", "pw")

        # Assert
        assert logged_in["player_id"] == registered["player_id"]
        assert logged_in["token"] != registered["token"]

        player = await services.identity.authenticate(logged_in["token"])
        assert player.id == registered["player_id"]

        with pytest.raises(UnauthorizedError):
            await services.identity.authenticate(registered["token"])

    async def test_wrong_password_is_unauthorized(self, services, register):
        await register("g1", "alice", "pw")

        with pytest.raises(UnauthorizedError):
            await services.identity.login("g1", "alice", "nope")

    async def test_unknown_user_is_unauthorized(self, services):
        with pytest.raises(UnauthorizedError):
            await services.identity.login("g1", "ghost", "pw")

    async def test_login_is_scoped_to_game(self, services, register):
        await register("g1", "alice", "pw")

        with pytest.raises(UnauthorizedError):
            await services.identity.login("g2", "alice", "pw")

    async def test_banned_player_cannot_login_or_authenticate(self, services, register):
        # Arrange
        player = await register("g1", "alice", "pw")
        await services.admin.set_banned(player["player_id"], True)

        # Act / Assert
        with pytest.raises(ForbiddenError):
            await services.identity.login("g1", "alice", "pw")
        with pytest.raises(ForbiddenError):
            await services.identity.authenticate(player["token"])

    @pytest.mark.parametrize("token", [None, "", "not-a-token"])
    async def test_bad_tokens_are_unauthorized(self, services, token):
        with pytest.raises(UnauthorizedError):
            await services.identity.authenticate(token)


# ============================================================================
# OWNER OPERATIONS & PROFILE
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestOwnerOperations:
    """Test password reset, owner key and profile reads."""

    async def test_admin_reset_password(self, services, register, published):
        # Arrange
        player = await register("g1", "alice", "old-pw")

        # Act
        result = await services.identity.admin_reset_password(player["player_id"], "new-pw")

        # Assert
        with pytest.raises(UnauthorizedError):
            await services.identity.login("g1", "alice", "old-pw")
        with pytest.raises(UnauthorizedError):
            await services.identity.authenticate(player["token"])

        assert (await services.identity.authenticate(result["token"])).id == player["player_id"]
        assert any(
            name == "audit.transaction.logged" and data["transaction_type"] == "password_reset"
            for name, data in published
        )

    async def test_admin_reset_password_unknown_player(self, services):
        with pytest.raises(NotFoundError):
            await services.identity.admin_reset_password("missing", "pw")

    async def test_get_profile(self, services, register):
        player = await register("g1", "alice")

        profile = await services.identity.get_profile(player["player_id"])

        assert profile["username"] == "alice"
        assert profile["game_id"] == "g1"
        assert profile["credits"] == 0
        assert "password_hash" not in profile

    async def test_verify_owner_key(self, services):
        services.identity.verify_owner_key("owner-secret")

        with pytest.raises(ForbiddenError):
            services.identity.verify_owner_key("guess")
        with pytest.raises(ForbiddenError):
            services.identity.verify_owner_key(None)
