"""
core/database.py -- Shared SQLAlchemy Core schema and engine factory.

Users, their sessions, and their tasks live in one database so that account
deletion can cascade through foreign keys in a single statement. The stores
in auth/store.py and tasks/store.py import the Table objects from here and
own all queries against them.

Schema:
  users          -- one row per account. email is stored lowercased; the
                    UNIQUE constraint therefore enforces case-insensitive
                    uniqueness.
  user_sessions  -- the per-user token allow-list. One row per live session;
                    append and revoke are single INSERT / DELETE statements,
                    so concurrent logins never overwrite each other.
  tasks          -- owner_id references users.id with ON DELETE CASCADE.

SQLite specifics: foreign key enforcement is off by default and WAL mode is
per-connection, so both PRAGMAs are set on every new DBAPI connection.

Layer rule: core/ is the kernel. No imports from api/, auth/, or tasks/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", String(32), primary_key=True),  # uuid4 hex
    Column("name", String(255), nullable=False),
    Column("email", String(320), nullable=False, unique=True),  # lowercased
    Column("hashed_password", Text, nullable=False),
    Column("age", Integer, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

user_sessions = Table(
    "user_sessions",
    metadata,
    # Autoincrement id preserves issue order for list_sessions().
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("token", Text, nullable=False, unique=True),
    Column("created_at", String(32), nullable=False),
)

tasks = Table(
    "tasks",
    metadata,
    Column("id", String(32), primary_key=True),  # uuid4 hex
    Column("description", Text, nullable=False),
    Column("completed", Boolean, nullable=False, server_default="0"),
    Column("owner_id", String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# SQLite connection pragmas
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign key enforcement.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool. Without foreign_keys=ON the ON DELETE CASCADE
    clauses above are silently ignored.
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_db_engine(db_url: str) -> Engine:
    """Create an Engine for db_url and make sure every table exists.

    Usage:
        engine = create_db_engine("sqlite:///taskmanager.db")
        users = UserStore(engine)
        tasks = TaskStore(engine)
        ...
        engine.dispose()
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_sqlite_pragmas)
    metadata.create_all(engine)
    return engine
