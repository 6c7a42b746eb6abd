"""
core/errors.py -- Application error taxonomy.

Every expected failure in the auth and task layers is raised as an AppError
subclass. api/main.py registers one exception handler for AppError that
renders the shared {"error": {...}} envelope, so route handlers never build
error responses by hand.

  ValidationError      400  malformed, missing or duplicate input (field detail)
  AuthenticationError  401  missing/invalid/revoked/expired token, bad login
  NotFoundError        404  resource absent
  AuthorizationError   404  resource exists but belongs to someone else
  InternalError        500  storage or hashing failure (logged, never echoed)

Authentication failures always carry the same code and message. The concrete
reason travels on the exception as `reason` for server-side logging only.

Layer rule: core/ is the kernel. No imports from api/, auth/, or tasks/.
"""

from __future__ import annotations

from typing import Any, Optional


class AppError(Exception):
    """Base class for errors that map onto an HTTP error response."""

    status_code: int = 500
    code: str = "internal_error"
    message: str = "An unexpected error occurred."

    def __init__(self, message: Optional[str] = None, detail: Any = None) -> None:
        super().__init__(message or self.message)
        if message is not None:
            self.message = message
        self.detail = detail


class ValidationError(AppError):
    """Input failed validation. `detail` is a list of {"field", "message"} dicts."""

    status_code = 400
    code = "validation_error"
    message = "Request validation failed."

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(detail=[{"field": field, "message": message}])


class AuthenticationError(AppError):
    status_code = 401
    code = "unauthorized"
    message = "Please authenticate."

    def __init__(self, reason: str = "", message: Optional[str] = None) -> None:
        super().__init__(message)
        self.reason = reason


class InvalidTokenError(AuthenticationError):
    """Token signature, structure, or subject claim did not verify."""


class TokenExpiredError(InvalidTokenError):
    """Token signature is valid but the exp claim is in the past."""


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"
    message = "Resource not found."


class AuthorizationError(NotFoundError):
    """Resource exists but is not owned by the requester.

    Subclasses NotFoundError so it renders identically -- the requester must
    not be able to tell "someone else's" from "does not exist".
    """


class InternalError(AppError):
    pass
