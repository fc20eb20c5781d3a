"""
Database Models Package
========================

SQLAlchemy ORM models for GameVault.

All models:
- Are schema-only, with no business logic
- Use Mapped[] syntax with mapped_column()
- Declare explicit foreign keys without ON DELETE CASCADE; services remove
  dependent rows before deleting a player or a catalog entry

Tables:
-------
- players: identity, session token, credit balance (Player)
- inventory: item stacks (InventoryEntry)
- cosmetics_catalog / player_cosmetics: catalog and ownership
- friend_relationships: directed friend edges
- player_data: key/value save data
- player_notes: owner notes per player (PlayerNote)
- audit_log: persisted audit trail (AuditRecord)
"""

from gamevault.core.database.base import Base

from . import enums
from .audit import AuditRecord
from .cosmetics import CosmeticDefinition, CosmeticOwnership
from .enums import FriendStatus
from .inventory import InventoryEntry
from .notes import PlayerNote
from .player import Player
from .save_data import PlayerSaveData
from .social import FriendRelationship

__all__ = [
    "Base",
    "Player",
    "InventoryEntry",
    "CosmeticDefinition",
    "CosmeticOwnership",
    "FriendRelationship",
    "FriendStatus",
    "PlayerSaveData",
    "PlayerNote",
    "AuditRecord",
    "enums",
]
