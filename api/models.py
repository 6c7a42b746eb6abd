"""
API request and response models for the task manager REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
tasks/models.py, which own the internal domain representation. Route handlers
map between the two.

Separation of concerns: domain models = storage truth; api/ models = API contract.
UserResponse has no password or session fields, so a User can never leak
them through serialization.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from auth.models import User
from tasks.models import Task

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

PASSWORD_MIN_LENGTH = 7
PASSWORD_MAX_LENGTH = 64
# bcrypt's input limit. Counted in UTF-8 bytes, not characters.
PASSWORD_MAX_BYTES = 72


def _check_password(value: str) -> str:
    if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"Password cannot be longer than {PASSWORD_MAX_BYTES} bytes")
    if "password" in value.lower():
        raise ValueError('Password cannot contain "password"')
    return value


def _normalize_email(value: str) -> str:
    return value.strip().lower()


# ---------------------------------------------------------------------------
# User request models
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    """Request body for POST /api/v1/users."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH)
    age: int = Field(default=0, ge=0)

    @field_validator("email", mode="after")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return _normalize_email(value)

    @field_validator("password", mode="after")
    @classmethod
    def reject_weak_password(cls, value: str) -> str:
        return _check_password(value)


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/users/login.

    No format rules beyond presence -- a malformed email simply fails to
    authenticate, with the same 401 as any other bad credential.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(min_length=1, max_length=320)
    password: str = Field(min_length=1, max_length=PASSWORD_MAX_LENGTH)


class UserUpdate(BaseModel):
    """Request body for PATCH /api/v1/users/me.

    extra="forbid" turns any field outside name/email/password/age into a 400,
    so clients cannot smuggle in id, tokens or hashed_password.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH)
    age: Optional[int] = Field(default=None, ge=0)

    @field_validator("email", mode="after")
    @classmethod
    def normalize_email(cls, value: Optional[str]) -> Optional[str]:
        return _normalize_email(value) if value is not None else None

    @field_validator("password", mode="after")
    @classmethod
    def reject_weak_password(cls, value: Optional[str]) -> Optional[str]:
        return _check_password(value) if value is not None else None


# ---------------------------------------------------------------------------
# User response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public view of a user. Never includes the password hash or tokens."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str
    age: int
    created_at: str
    updated_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            age=user.age,
            created_at=user.created_at or "",
            updated_at=user.updated_at or "",
        )


class AuthResponse(BaseModel):
    """Response for signup and login: the profile plus the new session token."""

    model_config = ConfigDict(frozen=True)

    user: UserResponse
    token: str


# ---------------------------------------------------------------------------
# Task request/response models
# ---------------------------------------------------------------------------


class TaskCreate(BaseModel):
    """Request body for POST /api/v1/tasks. The owner always comes from the session."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    description: str = Field(min_length=1, max_length=2000)
    completed: bool = False


class TaskUpdate(BaseModel):
    """Request body for PATCH /api/v1/tasks/{task_id}."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    description: Optional[str] = Field(default=None, min_length=1, max_length=2000)
    completed: Optional[bool] = None


class TaskResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    description: str
    completed: bool
    owner: str
    created_at: str
    updated_at: str

    @classmethod
    def from_task(cls, task: Task) -> "TaskResponse":
        return cls(
            id=task.id,
            description=task.description,
            completed=task.completed,
            owner=task.owner_id,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )


# ---------------------------------------------------------------------------
# Shared envelopes
# ---------------------------------------------------------------------------


class FieldError(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    message: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[list[FieldError]] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
