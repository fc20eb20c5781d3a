"""
Database Model Enums
====================

Type-safe constants for categorical columns. Values are stored as plain
strings so the schema stays portable between PostgreSQL and SQLite.
"""

from __future__ import annotations

import enum


class FriendStatus(str, enum.Enum):
    """
    State of one directed friend edge.

    A friendship is established when both directed edges are ACCEPTED.
    """

    PENDING = "pending"
    ACCEPTED = "accepted"
