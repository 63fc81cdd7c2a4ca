"""Password hashing with bcrypt."""

from __future__ import annotations

import bcrypt

ROUNDS = 12
# bcrypt only reads the first 72 bytes of the secret.
MAX_PASSWORD_BYTES = 72


def hash_password(password: str, *, rounds: int = ROUNDS) -> str:
    """
    Hash a password for storage.

    The cost factor is stored in the hash itself, so ``rounds`` can be raised
    later without invalidating existing rows.

    Raises:
        ValueError: If the password is longer than ``MAX_PASSWORD_BYTES``.
    """
    secret = password.encode("utf-8")
    if len(secret) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password exceeds {MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(secret, bcrypt.gensalt(rounds=rounds)).decode("ascii")


def verify_password(password: str, encoded: str) -> bool:
    """Check a password against a stored hash; malformed hashes never match."""
    secret = password.encode("utf-8")
    if len(secret) > MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(secret, encoded.encode("ascii"))
    except (ValueError, TypeError, UnicodeEncodeError):
        return False
