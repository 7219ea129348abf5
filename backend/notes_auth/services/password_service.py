"""
Password hashing and password-reset tokens.

Hashes are bcrypt with a fixed cost of 10 rounds. bcrypt only looks at the
first 72 bytes of a password, so both hashing and verification truncate to
that length explicitly. Hashing runs in the thread pool so it never blocks
the event loop.
"""

import hashlib
import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from starlette.concurrency import run_in_threadpool

from notes_auth.models.user import User, utcnow

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 10
BCRYPT_MAX_BYTES = 72
RESET_TOKEN_BYTES = 20
RESET_TOKEN_TTL = timedelta(minutes=15)


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def _hash_sync(password: str) -> str:
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def _verify_sync(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_encode(password), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        logger.warning("Password verification against a malformed hash")
        return False


async def hash_password(password: str) -> str:
    if not password:
        raise ValueError("Password cannot be empty")
    return await run_in_threadpool(_hash_sync, password)


async def verify_password(password: Optional[str], hashed: Optional[str]) -> bool:
    """Return True when ``password`` matches ``hashed``. Never raises on mismatch."""
    if not password or not hashed:
        return False
    return await run_in_threadpool(_verify_sync, password, hashed)


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def issue_reset_token(user: User, now: Optional[datetime] = None) -> str:
    """Put a fresh reset token on ``user`` and return the plaintext.

    Only the sha256 digest is kept on the record; the caller persists it.
    """
    token = secrets.token_hex(RESET_TOKEN_BYTES)
    user.reset_password_token = hash_reset_token(token)
    user.reset_password_expire = (now or utcnow()) + RESET_TOKEN_TTL
    return token


def clear_reset_token(user: User) -> None:
    user.reset_password_token = None
    user.reset_password_expire = None
