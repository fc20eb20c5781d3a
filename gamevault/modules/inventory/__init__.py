"""
Inventory Module
================

Domain: stackable item ownership

Services:
- InventoryService: add/remove/list item stacks, owner grants
"""

from .service import InventoryRepository, InventoryService

__all__ = [
    "InventoryRepository",
    "InventoryService",
]
