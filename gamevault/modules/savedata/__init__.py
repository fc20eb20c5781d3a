"""
Save Data Module
================

Services:
- SaveDataService: per-player key/value save slots
"""

from .service import SaveDataRepository, SaveDataService

__all__ = [
    "SaveDataRepository",
    "SaveDataService",
]
