"""
PlayerNote: free-text owner notes attached to a player.
Pure schema only.
"""

from __future__ import annotations

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from gamevault.core.database.base import Base, CreatedAtMixin, UuidPrimaryKeyMixin


class PlayerNote(Base, UuidPrimaryKeyMixin, CreatedAtMixin):
    """
    Schema-only:
    - id (UUID4, from UuidPrimaryKeyMixin)
    - player_id (FK to players.id)
    - note (free text)
    - created_by (author label, "owner" for the owner key)
    - created_at (from CreatedAtMixin)
    """

    __tablename__ = "player_notes"

    player_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("players.id"),
        nullable=False,
        index=True,
    )

    note: Mapped[str] = mapped_column(Text, nullable=False)

    created_by: Mapped[str] = mapped_column(String(32), nullable=False, default="owner")
