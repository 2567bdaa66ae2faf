from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt  # PyJWT

from board.auth.config import AuthConfig
from board.auth.models import TokenClaims, User
from board.errors import ConfigurationError

logger = logging.getLogger(__name__)

_JWT_ALG = "HS256"
_BEARER_PREFIX = "Bearer "


def issue_token(cfg: AuthConfig, user: User) -> str:
    """
    Sign a bearer token for `user`.

    Raises ConfigurationError when JWT_SECRET is unset or still the placeholder;
    that is a deployment problem, not something a retry fixes.
    """
    if not cfg.signing_ready:
        raise ConfigurationError("JWT_SECRET is not properly configured")

    now = datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "isSuperAdmin": bool(user.is_super_admin),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=cfg.token_ttl_seconds)).timestamp()),
    }
    return jwt.encode(payload, cfg.jwt_secret, algorithm=_JWT_ALG)


def verify_token(cfg: AuthConfig, token: Optional[str]) -> Optional[TokenClaims]:
    """
    Return the token's claims, or None for anything malformed, expired or badly signed.

    Callers treat None uniformly as "unauthenticated".
    """
    if not token or not cfg.signing_ready:
        return None
    try:
        payload = jwt.decode(token, cfg.jwt_secret, algorithms=[_JWT_ALG], options={"require": ["exp"]})
    except jwt.InvalidTokenError as e:
        logger.debug("Rejected bearer token: %s", type(e).__name__)
        return None

    email = str(payload.get("email") or "").strip().lower()
    if not email:
        return None
    return TokenClaims(
        id=str(payload.get("id") or ""),
        email=email,
        name=str(payload.get("name") or ""),
        is_super_admin=bool(payload.get("isSuperAdmin")),
    )


def extract_token(authorization: Optional[str]) -> Optional[str]:
    """Accept only `Bearer <token>`."""
    if not authorization or not authorization.startswith(_BEARER_PREFIX):
        return None
    token = authorization[len(_BEARER_PREFIX) :].strip()
    return token or None
