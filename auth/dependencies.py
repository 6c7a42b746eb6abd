"""
auth/dependencies.py -- FastAPI Depends() helper that authenticates a request.

get_auth_context() walks one request through:

  Unauthenticated -> TokenExtracted -> SignatureVerified -> SessionConfirmed -> Identified

and short-circuits with AuthenticationError at the first failing step:
  1. Authorization header missing or not "Bearer <token>"
  2. Signature invalid or token expired
  3. Token subject is not an existing user
  4. Token is not on that user's allow-list (logged out / logged out everywhere)

Every failure surfaces as the same 401 body. The specific reason is logged at
DEBUG level and never returned to the client.

The result is an AuthContext passed explicitly into handlers; nothing is
attached to the Request object.

Layer rule: no imports from tasks/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth.models import AuthContext
from auth.store import UserStore
from auth.tokens import verify_token
from core.errors import AuthenticationError

logger = logging.getLogger("taskmanager.auth")

_BEARER_PREFIX = "Bearer "


def _extract_bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith(_BEARER_PREFIX):
        return None
    token = auth_header[len(_BEARER_PREFIX) :].strip()
    return token or None


def get_auth_context(request: Request) -> AuthContext:
    """Require a live session. Raises AuthenticationError (HTTP 401) otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(ctx: AuthContext = Depends(get_auth_context)): ...
    """
    user_store: UserStore = request.app.state.user_store

    token = _extract_bearer_token(request)
    if token is None:
        logger.debug("Rejected %s: missing bearer credential", request.url.path)
        raise AuthenticationError("missing credential")

    try:
        user_id = verify_token(token)
    except AuthenticationError as exc:
        logger.debug("Rejected %s: %s", request.url.path, exc.reason)
        raise

    user = user_store.get_by_id(user_id)
    if user is None:
        logger.debug("Rejected %s: unknown subject", request.url.path)
        raise AuthenticationError("unknown user")

    if not user_store.has_session(user.id, token):
        logger.debug("Rejected %s: session revoked for user %s", request.url.path, user.id)
        raise AuthenticationError("session revoked")

    return AuthContext(user=user, token=token)
