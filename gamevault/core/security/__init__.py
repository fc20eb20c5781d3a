"""Credential hashing and token helpers."""

from gamevault.core.security.passwords import (
    generate_session_token,
    hash_password,
    verify_owner_secret,
    verify_password,
)

__all__ = [
    "generate_session_token",
    "hash_password",
    "verify_owner_secret",
    "verify_password",
]
