from __future__ import annotations

from typing import Optional

from pymongo.database import Database

from board.auth.accounts import ensure_super_admin
from board.auth.config import AuthConfig
from board.auth.models import Resolution, User
from board.auth.tokens import extract_token, verify_token
from board.errors import AuthenticationFailure
from board.storage import users as users_store

USER_GONE = "User account no longer exists"

_FAILURE_MESSAGES = {
    "missing_token": "Unauthorized",
    "invalid_token": "Invalid token",
    "user_gone": USER_GONE,
}


def resolve(db: Database, cfg: AuthConfig, authorization: Optional[str]) -> Resolution:
    """
    Resolve an `Authorization` header to a live user.

    The user store is consulted on every call: the token only proves who the
    caller was, the store says whether that account still exists and what its
    roles are now. Database errors propagate to the caller.
    """
    token = extract_token(authorization)
    if token is None:
        return Resolution(authenticated=False, reason="missing_token")

    claims = verify_token(cfg, token)
    if claims is None:
        return Resolution(authenticated=False, reason="invalid_token")

    user = users_store.find_by_email(db, claims.email)
    if user is None:
        # Deleted account with a still-valid token.
        return Resolution(authenticated=False, reason="user_gone", error=USER_GONE)

    return Resolution(authenticated=True, user=ensure_super_admin(db, cfg, user))


def require_user(db: Database, cfg: AuthConfig, authorization: Optional[str]) -> User:
    """Like `resolve`, but raises AuthenticationFailure (401) when unauthenticated."""
    res = resolve(db, cfg, authorization)
    if not res.authenticated or res.user is None:
        raise AuthenticationFailure(_FAILURE_MESSAGES.get(res.reason or "", "Unauthorized"))
    return res.user
