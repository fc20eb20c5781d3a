"""
Audit Module
============

Domain: the persisted audit trail

Components:
- AuditConsumer: subscribes to ``audit.transaction.logged`` and writes AuditRecord rows
"""

from .consumer import AuditConsumer

__all__ = [
    "AuditConsumer",
]
