"""
Database subsystem for GameVault.

Provides the async SQLAlchemy engine, session and transaction management,
and the ORM base classes and mixins used by the models.
"""

from gamevault.core.database.base import Base, CreatedAtMixin, UuidPrimaryKeyMixin, utcnow
from gamevault.core.database.service import DatabaseService

__all__ = [
    # ORM Base & Mixins
    "Base",
    "CreatedAtMixin",
    "UuidPrimaryKeyMixin",
    "utcnow",
    # Main service
    "DatabaseService",
]
