"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in tasks/models.py -- dataclasses own domain shape; stores and routes do the
work.

The session allow-list is deliberately not a field on User. It lives in its
own table and is only ever touched through the atomic UserStore session
methods, so no code path can load the list, mutate it in memory, and write
it back.

Layer rule: no imports from api/ or tasks/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered account.

    email is always stored trimmed and lowercased; compare against it only
    after normalizing the other side the same way.

    hashed_password is a bcrypt digest. It must never be serialized into an
    API response -- api/models.UserResponse has no field for it.

    id is None before the record is written to the database.
    """

    name: str
    email: str
    hashed_password: str
    age: int = 0
    id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class AuthContext:
    """The identity resolved for one request.

    Produced by auth.dependencies.get_auth_context() and passed explicitly to
    route handlers. token is the exact credential the request presented, so
    logout can revoke precisely that session and nothing else.
    """

    user: User
    token: str
