"""
Admin Module
============

Domain: owner (operator) capabilities

Services:
- AdminService: bans, deletions, bulk batches and dashboard reads
"""

from .service import AdminService

__all__ = ["AdminService"]
