"""
FriendRelationship: directed friend edge between two players.
Pure schema only.
"""

from __future__ import annotations

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from gamevault.core.database.base import Base, CreatedAtMixin

from .enums import FriendStatus


class FriendRelationship(Base, CreatedAtMixin):
    """
    Directed edge ``player_id -> friend_id``.

    Schema-only:
    - player_id / friend_id (FK to players.id)
    - status ("pending" or "accepted", see FriendStatus)
    - created_at (from CreatedAtMixin)

    An accepted friendship is two rows, one per direction.
    """

    __tablename__ = "friend_relationships"

    player_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("players.id"),
        primary_key=True,
    )

    friend_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("players.id"),
        primary_key=True,
        index=True,
    )

    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=FriendStatus.PENDING.value,
    )
