"""
tests/conftest.py -- Shared test fixtures for the task manager tests.

This module provides:
  - engine / user_store / task_store: a fresh SQLite file database per test
  - client: TestClient over the real app with a patched lifespan
  - register: helper fixture that signs a user up through the API

Design: each test gets its own database file under tmp_path. A file (rather
than an in-memory database) is used because TestClient runs sync route
handlers in a thread pool, and the concurrency tests write from several
threads at once.

The DEBUG env var must be set before any auth/core import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
BCRYPT_ROUNDS is dropped to the library minimum to keep hashing fast.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager

# CRITICAL: Set env before any auth/core import -- settings are read once at
# module load.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from api.main import app
from auth.store import UserStore
from core.database import create_db_engine
from tasks.store import TaskStore

# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def engine(tmp_path) -> Generator[Engine, None, None]:
    eng = create_db_engine(f"sqlite:///{tmp_path / 'taskmanager_test.db'}")
    yield eng
    eng.dispose()


@pytest.fixture
def user_store(engine: Engine) -> UserStore:
    return UserStore(engine)


@pytest.fixture
def task_store(engine: Engine) -> TaskStore:
    return TaskStore(engine)


# ---------------------------------------------------------------------------
# App fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(user_store: UserStore, task_store: TaskStore):
    """Return an async context manager that replaces the real lifespan.

    Wires the per-test stores into app.state so routes see the isolated test
    database rather than the configured DATABASE_URL.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.task_store = task_store
        yield

    return test_lifespan


@pytest.fixture
def client(user_store: UserStore, task_store: TaskStore) -> Generator[TestClient, None, None]:
    app.router.lifespan_context = _patch_lifespan(user_store, task_store)
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c


@pytest.fixture
def register(client: TestClient) -> Callable[..., tuple[dict, str]]:
    """Return a function that signs up a user and yields (user_json, token)."""

    def _register(name: str = "Ann", email: str = "ann@x.com", password: str = "secret123") -> tuple[dict, str]:
        resp = client.post("/api/v1/users", json={"name": name, "email": email, "password": password})
        assert resp.status_code == 201, resp.text
        data = resp.json()
        return data["user"], data["token"]

    return _register