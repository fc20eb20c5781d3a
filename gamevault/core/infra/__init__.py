"""
Infrastructure services for GameVault.

Module Contents
---------------
- AuditLogger: Event-driven audit trail for economy and ownership mutations
- AuditMetrics: Counters for audit production
"""

from gamevault.core.infra.audit_logger import AuditLogger, AuditMetrics

__all__ = [
    "AuditLogger",
    "AuditMetrics",
]
