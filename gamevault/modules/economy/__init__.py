"""
Economy Module
==============

Domain: the credits ledger

Services:
- LedgerService: spend, grant and owner adjustments of player balances
"""

from .service import LedgerService, apply_credit_delta

__all__ = [
    "LedgerService",
    "apply_credit_delta",
]
