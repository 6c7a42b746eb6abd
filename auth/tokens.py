"""
auth/tokens.py -- Signed bearer token issue and verification.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY (a symmetric
       secret known only to this service) and carry:
         sub -- the user id
         iat -- issue time
         jti -- random nonce; two logins in the same second still get
                distinct tokens, so each maps to exactly one session row
         exp -- only when TOKEN_EXPIRE_SECONDS > 0

  Verification checks signature and expiry only. Whether the token is still
  a live session is decided by the allow-list in auth/store.py; the
  Authenticator in auth/dependencies.py combines both checks.

  verify_token() raises TokenExpiredError or InvalidTokenError. Both are
  AuthenticationError subclasses, so any caller that lets them propagate
  produces the same uniform 401.

Layer rule: no imports from api/ or tasks/. Import from core/ is allowed.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

from core.config import get_settings
from core.errors import InvalidTokenError, TokenExpiredError

# ---------------------------------------------------------------------------
# Config -- read once at module load via the lru_cache singleton
# ---------------------------------------------------------------------------

_settings = get_settings()

_ALGORITHM = "HS256"


def issue_token(user_id: str, expire_seconds: int | None = None) -> str:
    """Encode a signed token for user_id.

    Args:
        user_id:        Id of the user the token authenticates.
        expire_seconds: Session lifetime. None uses Settings.token_expire_seconds;
                        0 omits the exp claim so the token never expires on
                        its own (revocation still works through the allow-list).
    """
    duration = _settings.token_expire_seconds if expire_seconds is None else expire_seconds
    now = datetime.now(timezone.utc)
    payload: dict = {
        "sub": user_id,
        "iat": int(now.timestamp()),
        "jti": secrets.token_hex(16),
    }
    if duration > 0:
        payload["exp"] = now + timedelta(seconds=duration)
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def verify_token(token: str) -> str:
    """Verify signature and expiry; return the user id carried in sub.

    Raises:
        TokenExpiredError: signature is valid but exp has passed.
        InvalidTokenError: anything else (tampered, malformed, wrong key, no sub).
    """
    try:
        payload = jwt.decode(token, _settings.secret_key, algorithms=[_ALGORITHM])
    except ExpiredSignatureError as exc:
        raise TokenExpiredError("token expired") from exc
    except JWTError as exc:
        raise InvalidTokenError(f"token rejected: {exc}") from exc
    user_id = payload.get("sub")
    if not user_id:
        raise InvalidTokenError("token has no subject")
    return user_id
