"""
Cosmetics Models
================

- CosmeticDefinition: tenant-scoped catalog entry with a credit price
- CosmeticOwnership: which player owns which cosmetic, and whether it is equipped

Schema-only; purchase, grant and equip rules live in
``gamevault.modules.cosmetics.service``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, Boolean, CheckConstraint, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from gamevault.core.database.base import Base, CreatedAtMixin, UuidPrimaryKeyMixin, utcnow


class CosmeticDefinition(Base, UuidPrimaryKeyMixin, CreatedAtMixin):
    """Catalog entry. Only visible to players of the same ``game_id``."""

    __tablename__ = "cosmetics_catalog"
    __table_args__ = (CheckConstraint("price >= 0", name="price_non_negative"),)

    game_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(64), nullable=False)

    category: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        doc="Slot/category label (skin, hat, trail, ...)",
    )

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)

    price: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    rarity: Mapped[str] = mapped_column(String(32), nullable=False, default="common")


class CosmeticOwnership(Base):
    """
    Ownership row. A player owns a given cosmetic at most once.

    ``equipped`` is an independent flag per row; several cosmetics of the
    same category may be equipped together.
    """

    __tablename__ = "player_cosmetics"

    player_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("players.id"),
        primary_key=True,
    )

    cosmetic_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("cosmetics_catalog.id"),
        primary_key=True,
        index=True,
    )

    equipped: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    obtained_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
