"""User registration and password hashing."""

from __future__ import annotations

import logging

import bcrypt

from p2p_exchange.core.errors import InvalidArgument
from p2p_exchange.db.dal import Database
from p2p_exchange.models.constants import USER_STATUS_PENDING

logger = logging.getLogger("p2p_exchange.accounts")

BCRYPT_MAX_BYTES = 72


def hash_password(password: str) -> str:
    """Hash plain text password using bcrypt."""
    encoded = password.encode("utf-8")
    # bcrypt only looks at the first 72 bytes
    if len(encoded) > BCRYPT_MAX_BYTES:
        raise InvalidArgument(f"password must be at most {BCRYPT_MAX_BYTES} bytes")
    return bcrypt.hashpw(encoded, bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain text password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"), hashed_password.encode("utf-8")
        )
    except ValueError:
        return False


def register_user(
    db: Database, first_name: str, last_name: str, email: str, password: str
) -> int:
    """Create a pending user and return its id.

    Raises DuplicateEntity when the email is already registered; uniqueness
    is enforced by the users table, not checked beforehand.
    """
    normalized_email = email.strip().lower()
    user_id = db.insert_user(
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        email=normalized_email,
        password_hash=hash_password(password),
        status=USER_STATUS_PENDING,
    )
    logger.info("user registered", extra={"context": {"user_id": user_id}})
    return user_id
