"""
auth/store.py -- SQLAlchemy Core persistence layer for users and sessions.

Pattern: Repository + Data Mapper (same as tasks/store.py).
UserStore is the repository; _row_to_user is the mapper.
Route and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Email uniqueness is case-insensitive because every write and lookup goes
  through _normalize_email() and the column carries a UNIQUE constraint.

  hashed_password is only writable through set_password_hash(). update_profile()
  rejects it so a generic profile update can never store a raw value in the
  password column.

Session allow-list:
  Each live token is one row in user_sessions. add_session() is a single
  INSERT and remove_session()/clear_sessions() are single DELETEs, so two
  concurrent logins for the same user both end up recorded -- there is no
  read-the-list-then-write-it-back window for one of them to be lost in.

Layer rule: no imports from api/ or tasks/. Import from core/ is allowed.
"""

from __future__ import annotations

import uuid

from sqlalchemy import select, text
from sqlalchemy.engine import Engine

from auth.models import User
from core.database import now_iso, user_sessions, users

_PROFILE_FIELDS = frozenset({"name", "email", "age"})


def _normalize_email(email: str) -> str:
    return email.strip().lower()


class UserStore:
    """Repository for User entities and their session allow-list.

    Usage:
        store = UserStore(create_db_engine(url))
        user_id = store.create_user(User(name="Ann", email="ann@x.com", hashed_password=hash_password("...")))
        store.add_session(user_id, token)
        user = store.get_by_email("ANN@x.com")
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by /health."""
        with self.engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> str:
        """Insert a new user and return its generated id.

        Raises sqlalchemy.exc.IntegrityError if the email is already registered.
        The route layer turns that into a 400 validation error.
        """
        user_id = uuid.uuid4().hex
        now = now_iso()
        with self.engine.begin() as conn:
            conn.execute(
                users.insert().values(
                    id=user_id,
                    name=user.name.strip(),
                    email=_normalize_email(user.email),
                    hashed_password=user.hashed_password,
                    age=user.age,
                    created_at=now,
                    updated_at=now,
                )
            )
        return user_id

    def get_by_id(self, user_id: str) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(users.select().where(users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by email, case-insensitively. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(users.select().where(users.c.email == _normalize_email(email))).fetchone()
        return _row_to_user(row) if row is not None else None

    def update_profile(self, user_id: str, /, **fields) -> bool:
        """Update name, email and/or age on an existing user.

        Any other field (hashed_password included) raises ValueError. Passwords
        change only through auth.passwords.change_password().

        Raises sqlalchemy.exc.IntegrityError if the new email is taken.
        Returns True if a row was updated, False if user_id was not found.
        """
        unknown = set(fields) - _PROFILE_FIELDS
        if unknown:
            raise ValueError(f"Unknown profile fields: {sorted(unknown)!r}")
        if "email" in fields:
            fields["email"] = _normalize_email(fields["email"])
        if "name" in fields:
            fields["name"] = fields["name"].strip()
        with self.engine.begin() as conn:
            result = conn.execute(users.update().where(users.c.id == user_id).values(updated_at=now_iso(), **fields))
        return result.rowcount > 0

    def set_password_hash(self, user_id: str, hashed_password: str) -> bool:
        """Replace the stored password digest. Returns False if user_id was not found."""
        with self.engine.begin() as conn:
            result = conn.execute(
                users.update()
                .where(users.c.id == user_id)
                .values(hashed_password=hashed_password, updated_at=now_iso())
            )
        return result.rowcount > 0

    def delete_user(self, user_id: str) -> bool:
        """Permanently delete a user. Returns True if deleted, False if not found.

        Sessions and tasks owned by the user are removed by ON DELETE CASCADE
        in the same statement.
        """
        with self.engine.begin() as conn:
            result = conn.execute(users.delete().where(users.c.id == user_id))
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Session allow-list
    # ------------------------------------------------------------------

    def add_session(self, user_id: str, token: str) -> None:
        """Append token to the user's allow-list (single INSERT)."""
        with self.engine.begin() as conn:
            conn.execute(user_sessions.insert().values(user_id=user_id, token=token, created_at=now_iso()))

    def remove_session(self, user_id: str, token: str) -> bool:
        """Remove exactly one token. Idempotent: returns False if it was not present."""
        with self.engine.begin() as conn:
            result = conn.execute(
                user_sessions.delete().where(
                    (user_sessions.c.user_id == user_id) & (user_sessions.c.token == token)
                )
            )
        return result.rowcount > 0

    def clear_sessions(self, user_id: str) -> int:
        """Remove every token for the user. Returns how many were removed."""
        with self.engine.begin() as conn:
            result = conn.execute(user_sessions.delete().where(user_sessions.c.user_id == user_id))
        return result.rowcount

    def has_session(self, user_id: str, token: str) -> bool:
        """Return True if token is on the user's allow-list."""
        with self.engine.connect() as conn:
            row = conn.execute(
                select(user_sessions.c.id).where(
                    (user_sessions.c.user_id == user_id) & (user_sessions.c.token == token)
                )
            ).fetchone()
        return row is not None

    def list_sessions(self, user_id: str) -> list[str]:
        """Return the user's live tokens in issue order."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(user_sessions.c.token)
                .where(user_sessions.c.user_id == user_id)
                .order_by(user_sessions.c.id)
            ).fetchall()
        return [r.token for r in rows]


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        hashed_password=row.hashed_password,
        age=row.age,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
