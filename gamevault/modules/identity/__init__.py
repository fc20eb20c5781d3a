"""
Identity Module
===============

Services
--------
- IdentityService: registration, login, password reset, profiles, owner key
- SessionService: bearer token issue and resolution
"""

from .service import IdentityService
from .session_service import SessionService

__all__ = [
    "IdentityService",
    "SessionService",
]
