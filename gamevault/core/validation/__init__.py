"""
GameVault validation package.

Canonical import surface for ``InputValidator``.
"""

from gamevault.core.validation.input_validator import InputValidator

__all__ = [
    "InputValidator",
]
