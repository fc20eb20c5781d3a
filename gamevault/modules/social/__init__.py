"""
Social Module
=============

Services:
- SocialService: friend requests, acceptance and friend lists
"""

from .service import FriendRepository, SocialService

__all__ = [
    "FriendRepository",
    "SocialService",
]
