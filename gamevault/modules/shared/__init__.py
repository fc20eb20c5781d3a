"""
GameVault Shared Module

Domain-level foundations for all service modules:
- BaseService: logging, config access, event emission
- BaseRepository: typed data access with row locking
- PlayerRepository: player lookup with existence/ban guards
- Domain exceptions and classification helpers

Usage
-----
    from gamevault.modules.shared import (
        BaseService,
        BaseRepository,
        InsufficientFundsError,
    )
"""

from __future__ import annotations

from .base_repository import BaseRepository
from .base_service import BaseService
from .exceptions import (
    ConflictError,
    ForbiddenError,
    GameVaultDomainException,
    InsufficientFundsError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
    get_error_severity,
    is_transient_error,
    should_alert,
)
from .players import PlayerRepository

__all__ = [
    "BaseRepository",
    "BaseService",
    "PlayerRepository",
    "ConflictError",
    "ForbiddenError",
    "GameVaultDomainException",
    "InsufficientFundsError",
    "NotFoundError",
    "UnauthorizedError",
    "ValidationError",
    "get_error_severity",
    "is_transient_error",
    "should_alert",
]
