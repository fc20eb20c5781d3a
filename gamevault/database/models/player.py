"""
Player Model
============

Identity, session token and credit balance of one player in one game.

Schema-only representation of:
- Tenant-scoped identity (``game_id`` + ``username``, unique together)
- Credential digest (bcrypt)
- Current session token (nullable; issuing a new one replaces the old)
- Credit balance (never negative, enforced by CHECK)
- Ban flag

All behavior and rules live in the service layer.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import BigInteger, Boolean, CheckConstraint, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from gamevault.core.database.base import Base, CreatedAtMixin, UuidPrimaryKeyMixin


class Player(Base, UuidPrimaryKeyMixin, CreatedAtMixin):
    """
    A player account within a single game (tenant).

    The same username may exist once per ``game_id``.
    """

    __tablename__ = "players"
    __table_args__ = (
        UniqueConstraint("game_id", "username", name="uq_players_game_id_username"),
        CheckConstraint("credits >= 0", name="credits_non_negative"),
        Index("ix_players_game_id_credits", "game_id", "credits"),
    )

    game_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
        doc="Tenant (game) identifier",
    )

    username: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        doc="Display/login name, unique within the game",
    )

    password_hash: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        doc="bcrypt digest",
    )

    token: Mapped[Optional[str]] = mapped_column(
        String(128),
        nullable=True,
        unique=True,
        default=None,
        doc="Current bearer session token; NULL means no live session",
    )

    credits: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        doc="Virtual currency balance",
    )

    banned: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        doc="Banned players cannot authenticate or mutate state",
    )

    def __repr__(self) -> str:
        return (
            f"<Player(id={self.id!r}, game_id={self.game_id!r}, "
            f"username={self.username!r}, credits={self.credits})>"
        )
