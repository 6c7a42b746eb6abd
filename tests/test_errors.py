"""
tests/test_errors.py -- Rendering of the AppError taxonomy by api/main.py handlers.

A throwaway FastAPI app reuses the real exception handlers so each error
class can be raised directly from a route.

Covers:
  - AuthorizationError renders byte-for-byte like NotFoundError
  - InternalError and unhandled exceptions answer a generic 500 without detail
  - AuthenticationError never exposes its reason
  - ValidationError.for_field() carries field-level detail
"""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.main import app_error_handler, generic_exception_handler
from core.errors import (
    AppError,
    AuthenticationError,
    AuthorizationError,
    InternalError,
    NotFoundError,
    TokenExpiredError,
    ValidationError,
)


@pytest.fixture
def error_client() -> TestClient:
    mini = FastAPI()
    mini.add_exception_handler(AppError, app_error_handler)
    mini.add_exception_handler(Exception, generic_exception_handler)

    @mini.get("/not-found")
    def not_found():
        raise NotFoundError("Task not found.")

    @mini.get("/not-owned")
    def not_owned():
        raise AuthorizationError("Task not found.")

    @mini.get("/internal")
    def internal():
        raise InternalError("disk I/O error at /var/lib/taskmanager.db")

    @mini.get("/crash")
    def crash():
        raise RuntimeError("secret stack detail")

    @mini.get("/expired")
    def expired():
        raise TokenExpiredError("token expired")

    @mini.get("/bad-field")
    def bad_field():
        raise ValidationError.for_field("email", "Email is already registered.")

    return TestClient(mini, raise_server_exceptions=False)


def test_authorization_error_looks_like_not_found(error_client: TestClient) -> None:
    missing = error_client.get("/not-found")
    not_owned = error_client.get("/not-owned")
    assert missing.status_code == not_owned.status_code == 404
    assert missing.content == not_owned.content


@pytest.mark.parametrize("path", ["/internal", "/crash"])
def test_server_errors_are_generic(error_client: TestClient, path: str) -> None:
    resp = error_client.get(path)
    assert resp.status_code == 500
    assert resp.json() == {"error": {"code": "internal_error", "message": "An unexpected error occurred."}}


def test_authentication_reason_not_exposed(error_client: TestClient) -> None:
    resp = error_client.get("/expired")
    assert resp.status_code == 401
    assert resp.json() == {"error": {"code": "unauthorized", "message": "Please authenticate."}}
    assert "expired" not in resp.text


def test_validation_error_field_detail(error_client: TestClient) -> None:
    resp = error_client.get("/bad-field")
    assert resp.status_code == 400
    assert resp.json()["error"]["detail"] == [{"field": "email", "message": "Email is already registered."}]


def test_authentication_error_keeps_reason_for_logs() -> None:
    exc = AuthenticationError("session revoked")
    assert exc.reason == "session revoked"
    assert exc.message == "Please authenticate."
