"""
api/routes/v1/users.py -- Account and session REST endpoints.

Routes:
  POST   /api/v1/users              -- signup; returns profile + token (201)
  POST   /api/v1/users/login        -- password login; returns profile + token
  POST   /api/v1/users/logout       -- revoke the presented token (requires auth)
  POST   /api/v1/users/logout-all   -- revoke every token of the user (requires auth)
  GET    /api/v1/users/me           -- current profile (requires auth)
  PATCH  /api/v1/users/me           -- update name/email/password/age (requires auth)
  DELETE /api/v1/users/me           -- delete account, cascading to tasks (requires auth)

Security:
  authenticate_user() provides timing equalization -- use it, never inline
  get_by_email() + verify_password().
  Login failure is one generic 401 whether the email is unknown or the
  password is wrong.
  Cache-Control: no-store on every response that carries a token, and on
  every 401 (set by the AppError handler in api/main.py).

Handlers are plain `def` so FastAPI runs them in its thread pool; bcrypt and
blocking SQL never run on the event loop.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from api.models import AuthResponse, LoginRequest, SignupRequest, UserResponse, UserUpdate
from auth.dependencies import get_auth_context
from auth.models import AuthContext, User
from auth.passwords import authenticate_user, change_password, hash_password
from auth.sessions import end_all_sessions, end_session, start_session
from auth.store import UserStore
from core.errors import AuthenticationError, InternalError, NotFoundError, ValidationError

logger = logging.getLogger("taskmanager.api")

# Auth policy:
# - POST   /users, /users/login:   public
# - everything else:               requires a live session (get_auth_context)
router = APIRouter()


def _duplicate_email() -> ValidationError:
    return ValidationError.for_field("email", "Email is already registered.")


def _token_response(status_code: int, user: User, token: str) -> JSONResponse:
    resp = JSONResponse(
        status_code=status_code,
        content=AuthResponse(user=UserResponse.from_user(user), token=token).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/users", response_model=AuthResponse, status_code=201)
def signup(request: Request, body: SignupRequest) -> JSONResponse:
    """Create an account and open its first session."""
    user_store: UserStore = request.app.state.user_store

    new_user = User(
        name=body.name,
        email=body.email,
        hashed_password=hash_password(body.password),
        age=body.age,
    )
    try:
        user_id = user_store.create_user(new_user)
    except IntegrityError as exc:
        raise _duplicate_email() from exc

    created = user_store.get_by_id(user_id)
    if created is None:
        raise InternalError(f"User {user_id} not readable after insert")
    token = start_session(user_store, created)
    logger.info("Signup: user %s", user_id)
    return _token_response(201, created, token)


@router.post("/users/login", response_model=AuthResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password and open a new session.

    Existing sessions on other devices stay valid; each login adds one.
    """
    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.email, body.password)
    if user is None:
        logger.debug("Login rejected")
        raise AuthenticationError("bad credentials")

    token = start_session(user_store, user)
    logger.info("Login: user %s", user.id)
    return _token_response(200, user, token)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.post("/users/logout")
def logout(request: Request, ctx: AuthContext = Depends(get_auth_context)) -> Response:
    """End the session belonging to the presented token only."""
    end_session(request.app.state.user_store, ctx)
    return Response(status_code=200)


@router.post("/users/logout-all")
def logout_all(request: Request, ctx: AuthContext = Depends(get_auth_context)) -> Response:
    """End every session of the current user, on every device."""
    end_all_sessions(request.app.state.user_store, ctx)
    return Response(status_code=200)


@router.get("/users/me", response_model=UserResponse)
def read_profile(ctx: AuthContext = Depends(get_auth_context)) -> UserResponse:
    return UserResponse.from_user(ctx.user)


@router.patch("/users/me", response_model=UserResponse)
def update_profile(
    request: Request,
    body: UserUpdate,
    ctx: AuthContext = Depends(get_auth_context),
) -> UserResponse:
    """Update the current user's profile.

    A new password goes through change_password(), which always rehashes.
    Unknown fields are rejected by the request model (extra="forbid").
    """
    user_store: UserStore = request.app.state.user_store

    updates = body.model_dump(exclude_none=True)
    if not updates:
        raise ValidationError(message="No fields to update.")

    new_password = updates.pop("password", None)
    if updates:
        try:
            user_store.update_profile(ctx.user.id, **updates)
        except IntegrityError as exc:
            raise _duplicate_email() from exc
    if new_password is not None:
        change_password(user_store, ctx.user.id, new_password)

    updated = user_store.get_by_id(ctx.user.id)
    if updated is None:
        raise NotFoundError("User not found.")
    return UserResponse.from_user(updated)


@router.delete("/users/me", response_model=UserResponse)
def delete_account(request: Request, ctx: AuthContext = Depends(get_auth_context)) -> UserResponse:
    """Delete the current account. Its sessions and tasks go with it."""
    user_store: UserStore = request.app.state.user_store
    if not user_store.delete_user(ctx.user.id):
        raise NotFoundError("User not found.")
    logger.info("Account deleted: user %s", ctx.user.id)
    return UserResponse.from_user(ctx.user)
