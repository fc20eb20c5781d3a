"""
Cosmetics Module
================

Domain: tenant-scoped cosmetic catalog and ownership

Services:
- CosmeticsService: catalog management, purchase, grant and equip
"""

from .service import (
    CosmeticCatalogRepository,
    CosmeticOwnershipRepository,
    CosmeticsService,
)

__all__ = [
    "CosmeticCatalogRepository",
    "CosmeticOwnershipRepository",
    "CosmeticsService",
]
