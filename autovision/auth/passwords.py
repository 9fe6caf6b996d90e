"""Password hashing with bcrypt."""

from __future__ import annotations

from typing import Optional

import bcrypt

DEFAULT_ROUNDS = 10


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Hash a password with bcrypt at the given work factor."""
    salt = bcrypt.gensalt(rounds=rounds or DEFAULT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify a password against its hash.

    Returns False on mismatch. A digest that is not a bcrypt hash raises
    ValueError (from bcrypt) instead of reading as a wrong password.
    """
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
