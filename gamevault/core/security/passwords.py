"""
Credential helpers: password hashing, session tokens, owner secret check.

bcrypt accepts at most 72 bytes; passwords are truncated in bytes
(``password.encode("utf-8")[:72]``) before hashing and verification so
long passwords never raise. Hashing is CPU-bound; async callers should
run it through ``asyncio.to_thread``.
"""

from __future__ import annotations

import secrets
from typing import Optional

import bcrypt

from gamevault.core.config.config import Config
from gamevault.core.logging.logger import get_logger

logger = get_logger(__name__)

BCRYPT_MAX_BYTES = 72
SESSION_TOKEN_BYTES = 32


def _truncate_password(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    pwd_bytes = _truncate_password(password)
    salt = bcrypt.gensalt(rounds=rounds or Config.BCRYPT_ROUNDS)
    return bcrypt.hashpw(pwd_bytes, salt).decode("ascii")


def verify_password(password: str, digest: str) -> bool:
    """Check ``password`` against a bcrypt digest. Malformed digests never match."""
    if not digest:
        return False

    try:
        return bcrypt.checkpw(_truncate_password(password), digest.encode("ascii"))
    except ValueError:
        logger.warning("Stored password digest is not a valid bcrypt hash")
        return False


def generate_session_token() -> str:
    """Opaque URL-safe bearer token (256 bits of entropy)."""
    return secrets.token_urlsafe(SESSION_TOKEN_BYTES)


def verify_owner_secret(candidate: Optional[str], secret: Optional[str] = None) -> bool:
    """
    Constant-time comparison against the owner secret.

    An empty or unset secret rejects every candidate.
    """
    expected = Config.OWNER_PASSWORD if secret is None else secret
    if not expected or not candidate:
        return False
    return secrets.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))
