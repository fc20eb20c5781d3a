"""
Integration Tests for SocialService
===================================

Test Coverage
-------------
- Friend requests within a game
- Accepting requests and mutual friendship
- Pending request listing
"""

import pytest

from gamevault.modules.shared.exceptions import NotFoundError, ValidationError


@pytest.mark.integration
@pytest.mark.database
class TestFriends:
    """Test the friend request flow."""

    async def test_request_and_accept(self, services, register, published):
        # Arrange
        alice = (await register("g1", "alice"))["player_id"]
        bob = (await register("g1", "bob"))["player_id"]

        # Act
        request = await services.social.request_friend(alice, "bob")
        pending = await services.social.list_pending_requests(bob)
        accepted = await services.social.accept_friend(bob, alice)

        # Assert
        assert request == {"player_id": alice, "friend_id": bob, "status": "pending", "created": True}
        assert [p["username"] for p in pending] == ["alice"]
        assert accepted["status"] == "accepted"

        assert [f["username"] for f in await services.social.list_friends(alice)] == ["bob"]
        assert [f["username"] for f in await services.social.list_friends(bob)] == ["alice"]
        assert await services.social.list_pending_requests(bob) == []
        assert any(name == "social.friend_accepted" for name, _ in published)

    async def test_pending_request_is_not_friendship(self, services, register):
        alice = (await register("g1", "alice"))["player_id"]
        await register("g1", "bob")

        await services.social.request_friend(alice, "bob")

        assert await services.social.list_friends(alice) == []

    async def test_repeat_request_is_noop(self, services, register):
        alice = (await register("g1", "alice"))["player_id"]
        await register("g1", "bob")
        await services.social.request_friend(alice, "bob")

        again = await services.social.request_friend(alice, "bob")

        assert again["created"] is False
        assert again["status"] == "pending"

    async def test_cannot_befriend_self(self, services, register):
        alice = (await register("g1", "alice"))["player_id"]

        with pytest.raises(ValidationError):
            await services.social.request_friend(alice, "alice")

    async def test_target_must_be_in_same_game(self, services, register):
        alice = (await register("g1", "alice"))["player_id"]
        await register("g2", "bob")

        with pytest.raises(NotFoundError):
            await services.social.request_friend(alice, "bob")

    async def test_accept_without_request(self, services, register):
        alice = (await register("g1", "alice"))["player_id"]
        bob = (await register("g1", "bob"))["player_id"]

        with pytest.raises(NotFoundError):
            await services.social.accept_friend(bob, alice)
