"""
PlayerSaveData: free-form per-player key/value save slots.
Pure schema only.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from gamevault.core.database.base import Base


class PlayerSaveData(Base):
    """
    One opaque JSON value per (player, key).

    Numeric values under a stat key (e.g. ``"score"``) feed the leaderboard.
    """

    __tablename__ = "player_data"

    player_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("players.id"),
        primary_key=True,
    )

    key: Mapped[str] = mapped_column(String(64), primary_key=True)

    value: Mapped[Any] = mapped_column(JSON, nullable=True)
