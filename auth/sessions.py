"""
auth/sessions.py -- Session lifecycle on top of the token issuer and allow-list.

A session exists exactly while its token is on the user's allow-list:
  start_session()     -- issue a token and record it (signup, login)
  end_session()       -- revoke the one token the request presented (logout)
  end_all_sessions()  -- revoke every token for the user (logout-all)

The token is recorded only after it has been issued for that same user id,
so the allow-list never holds a token that would not verify for its owner.

Layer rule: no imports from api/ or tasks/.
"""

from __future__ import annotations

import logging

from auth.models import AuthContext, User
from auth.store import UserStore
from auth.tokens import issue_token

logger = logging.getLogger("taskmanager.auth")


def start_session(store: UserStore, user: User) -> str:
    token = issue_token(user.id)
    store.add_session(user.id, token)
    return token


def end_session(store: UserStore, ctx: AuthContext) -> None:
    store.remove_session(ctx.user.id, ctx.token)
    logger.info("Logout for user %s", ctx.user.id)


def end_all_sessions(store: UserStore, ctx: AuthContext) -> int:
    removed = store.clear_sessions(ctx.user.id)
    logger.info("Logout-all for user %s (%d sessions revoked)", ctx.user.id, removed)
    return removed
