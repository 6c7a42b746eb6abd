"""
tests/test_api_tasks.py -- Integration tests for the /api/v1/tasks routes.

Coverage:
  - Every task route requires a live session (401 otherwise)
  - Tasks are created for the caller; owner cannot be supplied or changed
  - Another user's task answers exactly like a missing one (404, same body)
  - Listing: owner-scoped, completed filter, sort_by, limit/skip
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def ann(register) -> tuple[dict, str]:
    return register(name="Ann", email="ann@x.com")


@pytest.fixture
def bob(register) -> tuple[dict, str]:
    return register(name="Bob", email="bob@x.com", password="hunter2x")


def _create(client: TestClient, token: str, description: str, completed: bool = False) -> dict:
    resp = client.post("/api/v1/tasks", json={"description": description, "completed": completed}, headers=_auth(token))
    assert resp.status_code == 201, resp.text
    return resp.json()


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "method, path",
    [
        ("POST", "/api/v1/tasks"),
        ("GET", "/api/v1/tasks"),
        ("GET", "/api/v1/tasks/abc"),
        ("PATCH", "/api/v1/tasks/abc"),
        ("DELETE", "/api/v1/tasks/abc"),
    ],
)
def test_task_routes_require_auth(client: TestClient, method: str, path: str) -> None:
    resp = client.request(method, path, json={"description": "x"} if method in ("POST", "PATCH") else None)
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "unauthorized"


def test_unauthenticated_create_writes_nothing(client: TestClient, ann, task_store) -> None:
    user, _token = ann
    client.post("/api/v1/tasks", json={"description": "sneaky"})
    assert task_store.count_tasks(user["id"]) == 0


# ---------------------------------------------------------------------------
# Create / read
# ---------------------------------------------------------------------------


class TestCreateAndRead:
    def test_create_sets_owner_from_session(self, client: TestClient, ann) -> None:
        user, token = ann
        task = _create(client, token, "  Buy milk ")
        assert task["description"] == "Buy milk"
        assert task["completed"] is False
        assert task["owner"] == user["id"]
        assert task["id"]

    def test_owner_in_body_rejected(self, client: TestClient, ann, bob) -> None:
        _user, token = ann
        bob_user, _bob_token = bob
        resp = client.post(
            "/api/v1/tasks",
            json={"description": "Buy milk", "owner": bob_user["id"]},
            headers=_auth(token),
        )
        assert resp.status_code == 400

    def test_missing_description(self, client: TestClient, ann) -> None:
        _user, token = ann
        resp = client.post("/api/v1/tasks", json={"description": "   "}, headers=_auth(token))
        assert resp.status_code == 400
        assert resp.json()["error"]["detail"][0]["field"] == "description"

    def test_get_own_task(self, client: TestClient, ann) -> None:
        _user, token = ann
        task = _create(client, token, "Buy milk")
        resp = client.get(f"/api/v1/tasks/{task['id']}", headers=_auth(token))
        assert resp.status_code == 200
        assert resp.json() == task


# ---------------------------------------------------------------------------
# Ownership
# ---------------------------------------------------------------------------


class TestOwnership:
    def test_other_users_list_is_empty(self, client: TestClient, ann, bob) -> None:
        _create(client, ann[1], "Ann's task")
        resp = client.get("/api/v1/tasks", headers=_auth(bob[1]))
        assert resp.status_code == 200
        assert resp.json() == []

    @pytest.mark.parametrize(
        "method, body",
        [("GET", None), ("PATCH", {"completed": True}), ("DELETE", None)],
    )
    def test_foreign_task_looks_missing(self, client: TestClient, ann, bob, method: str, body) -> None:
        task = _create(client, ann[1], "Ann's task")

        foreign = client.request(method, f"/api/v1/tasks/{task['id']}", json=body, headers=_auth(bob[1]))
        missing = client.request(method, f"/api/v1/tasks/{'0' * 32}", json=body, headers=_auth(bob[1]))

        assert foreign.status_code == missing.status_code == 404
        assert foreign.json() == missing.json()

    def test_foreign_update_and_delete_change_nothing(self, client: TestClient, ann, bob) -> None:
        task = _create(client, ann[1], "Ann's task")
        client.patch(f"/api/v1/tasks/{task['id']}", json={"completed": True}, headers=_auth(bob[1]))
        client.delete(f"/api/v1/tasks/{task['id']}", headers=_auth(bob[1]))

        resp = client.get(f"/api/v1/tasks/{task['id']}", headers=_auth(ann[1]))
        assert resp.status_code == 200
        assert resp.json()["completed"] is False


# ---------------------------------------------------------------------------
# Update / delete
# ---------------------------------------------------------------------------


class TestUpdateAndDelete:
    def test_patch_fields(self, client: TestClient, ann) -> None:
        _user, token = ann
        task = _create(client, token, "Buy milk")
        resp = client.patch(
            f"/api/v1/tasks/{task['id']}",
            json={"description": "Buy oat milk", "completed": True},
            headers=_auth(token),
        )
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["description"] == "Buy oat milk"
        assert data["completed"] is True
        assert data["owner"] == task["owner"]

    @pytest.mark.parametrize("body", [{"owner": "f" * 32}, {"owner_id": "f" * 32}, {"id": "abc"}])
    def test_patch_rejects_unknown_fields(self, client: TestClient, ann, body: dict) -> None:
        _user, token = ann
        task = _create(client, token, "Buy milk")
        resp = client.patch(f"/api/v1/tasks/{task['id']}", json=body, headers=_auth(token))
        assert resp.status_code == 400

    def test_empty_patch(self, client: TestClient, ann) -> None:
        _user, token = ann
        task = _create(client, token, "Buy milk")
        resp = client.patch(f"/api/v1/tasks/{task['id']}", json={}, headers=_auth(token))
        assert resp.status_code == 400

    def test_delete_returns_task(self, client: TestClient, ann) -> None:
        _user, token = ann
        task = _create(client, token, "Buy milk")
        resp = client.delete(f"/api/v1/tasks/{task['id']}", headers=_auth(token))
        assert resp.status_code == 200
        assert resp.json()["id"] == task["id"]
        assert client.get(f"/api/v1/tasks/{task['id']}", headers=_auth(token)).status_code == 404


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


class TestListTasks:
    @pytest.fixture
    def token(self, client: TestClient, ann) -> str:
        _user, token = ann
        for desc, done in [("c-task", False), ("a-task", True), ("b-task", False)]:
            _create(client, token, desc, completed=done)
        return token

    def _descriptions(self, client: TestClient, token: str, **params) -> list[str]:
        resp = client.get("/api/v1/tasks", params=params, headers=_auth(token))
        assert resp.status_code == 200, resp.text
        return [t["description"] for t in resp.json()]

    def test_filter_completed(self, client: TestClient, token: str) -> None:
        assert self._descriptions(client, token, completed="true") == ["a-task"]
        assert sorted(self._descriptions(client, token, completed="false")) == ["b-task", "c-task"]

    def test_sort_by(self, client: TestClient, token: str) -> None:
        assert self._descriptions(client, token, sort_by="description:asc") == ["a-task", "b-task", "c-task"]
        assert self._descriptions(client, token, sort_by="description:desc") == ["c-task", "b-task", "a-task"]
        assert self._descriptions(client, token, sort_by="description") == ["a-task", "b-task", "c-task"]

    def test_pagination(self, client: TestClient, token: str) -> None:
        page = self._descriptions(client, token, sort_by="description:asc", limit=2, skip=1)
        assert page == ["b-task", "c-task"]

    def test_total_count_header_ignores_paging(self, client: TestClient, token: str) -> None:
        resp = client.get("/api/v1/tasks", params={"limit": 1}, headers=_auth(token))
        assert len(resp.json()) == 1
        assert resp.headers["X-Total-Count"] == "3"

        done = client.get("/api/v1/tasks", params={"completed": "true"}, headers=_auth(token))
        assert done.headers["X-Total-Count"] == "1"

    @pytest.mark.parametrize("sort_by", ["owner_id:asc", "description:up", "password"])
    def test_invalid_sort(self, client: TestClient, token: str, sort_by: str) -> None:
        resp = client.get("/api/v1/tasks", params={"sort_by": sort_by}, headers=_auth(token))
        assert resp.status_code == 400
        assert resp.json()["error"]["detail"][0]["field"] == "sort_by"

    @pytest.mark.parametrize("params", [{"limit": 0}, {"limit": 101}, {"skip": -1}])
    def test_invalid_paging(self, client: TestClient, token: str, params: dict) -> None:
        resp = client.get("/api/v1/tasks", params=params, headers=_auth(token))
        assert resp.status_code == 400


def test_logout_blocks_task_access(client: TestClient, ann) -> None:
    _user, token = ann
    task = _create(client, token, "Buy milk")
    client.post("/api/v1/users/logout", headers=_auth(token))

    assert client.get("/api/v1/tasks", headers=_auth(token)).status_code == 401
    assert client.get(f"/api/v1/tasks/{task['id']}", headers=_auth(token)).status_code == 401
    assert client.delete(f"/api/v1/tasks/{task['id']}", headers=_auth(token)).status_code == 401
