"""
InventoryEntry: stackable items owned by a player.
Pure schema only.
"""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import JSON, CheckConstraint, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from gamevault.core.database.base import Base


class InventoryEntry(Base):
    """
    One item stack per (player, item name).

    Schema-only:
    - player_id (FK to players.id)
    - item_name (free-form item key)
    - quantity (always positive; a stack at zero is deleted)
    - item_metadata (opaque JSON, written once when the stack is created)
    """

    __tablename__ = "inventory"
    __table_args__ = (CheckConstraint("quantity > 0", name="quantity_positive"),)

    player_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("players.id"),
        primary_key=True,
    )

    item_name: Mapped[str] = mapped_column(String(64), primary_key=True)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    item_metadata: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON(none_as_null=True),
        nullable=True,
        default=None,
    )
