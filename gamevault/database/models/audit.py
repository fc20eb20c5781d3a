"""
AuditRecord: persisted audit trail entry.
Pure schema only.
"""

from __future__ import annotations

from typing import Any, Dict

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from gamevault.core.database.base import Base, CreatedAtMixin, UuidPrimaryKeyMixin


class AuditRecord(Base, UuidPrimaryKeyMixin, CreatedAtMixin):
    """
    One row per ``audit.transaction.logged`` event.

    ``player_id`` carries no foreign key: the trail outlives deleted players.
    ``created_at`` is the event timestamp, not the flush time.
    """

    __tablename__ = "audit_log"

    player_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    transaction_type: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    context: Mapped[str] = mapped_column(String(64), nullable=False, default="unknown")

    details: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    meta: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
