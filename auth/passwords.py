"""
auth/passwords.py -- Password hashing, verification, and credential checks.

Security design decisions:
  bcrypt directly (no passlib wrapper). Every hash_password() call draws a
  fresh random salt, so hashing the same plaintext twice yields two different
  digests that both verify. The work factor comes from BCRYPT_ROUNDS.

  verify_password() delegates to bcrypt.checkpw, which compares in constant
  time. Malformed digests return False instead of raising.

  authenticate_user() always performs exactly one bcrypt verification, against
  _DUMMY_HASH when the email is unknown. Response time therefore does not
  reveal whether an account exists.

  change_password() is the only way a password is ever replaced. There is no
  save hook that decides on its own whether to rehash.

Layer rule: no imports from api/ or tasks/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import bcrypt

from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("taskmanager.auth")

_settings = get_settings()

_BCRYPT_MAX_BYTES = 72


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    bcrypt accepts at most 72 bytes. Longer input raises ValueError here on
    every bcrypt version rather than being truncated; the API layer rejects
    it earlier with a field error (api/models.py).
    """
    encoded = plain.encode("utf-8")
    if len(encoded) > _BCRYPT_MAX_BYTES:
        raise ValueError(f"password is longer than {_BCRYPT_MAX_BYTES} bytes")
    salt = bcrypt.gensalt(rounds=_settings.bcrypt_rounds)
    return bcrypt.hashpw(encoded, salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    Input over 72 bytes never matches, so no bcrypt version can accept it by
    comparing a truncated prefix.
    """
    encoded = plain.encode("utf-8")
    if len(encoded) > _BCRYPT_MAX_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


# Computed once at module load so the first unknown-email login is not
# measurably slower than later ones.
_DUMMY_HASH: str = hash_password("taskmanager_timing_dummy")


def authenticate_user(store: UserStore, email: str, password: str) -> User | None:
    """Check an email/password pair with timing equalization.

    - Unknown email: bcrypt runs against _DUMMY_HASH (same cost as a real check).
    - Wrong password: bcrypt runs against the real hash.

    Returns the User on success, None on any failure.
    """
    user = store.get_by_email(email)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


def change_password(store: UserStore, user_id: str, new_password: str) -> bool:
    """Hash new_password and store the digest. Returns False if the user is gone."""
    updated = store.set_password_hash(user_id, hash_password(new_password))
    if updated:
        logger.info("Password changed for user %s", user_id)
    return updated
