from __future__ import annotations

import os
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

INSECURE_JWT_SECRET = "your-secret-key-change-in-production"

_DEFAULT_TTL_SECONDS = 7 * 24 * 3600
_DURATION_RE = re.compile(r"^(\d+)\s*([smhd]?)$")
_UNIT_SECONDS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


@dataclass(frozen=True)
class AuthConfig:
    # Token signing
    jwt_secret: Optional[str]
    token_ttl_seconds: int

    # Google OAuth
    google_client_id: Optional[str]
    google_client_secret: Optional[str]
    google_redirect_uri: Optional[str]

    # Where the browser app lives (OAuth redirects land here)
    frontend_url: str

    # Role policy
    super_admin_email: Optional[str]
    super_admin_recovery_password: Optional[str]

    # Diagnostic mode: include error detail in 5xx responses
    debug: bool

    @property
    def google_enabled(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret and self.google_redirect_uri)

    @property
    def signing_ready(self) -> bool:
        return bool(self.jwt_secret) and self.jwt_secret != INSECURE_JWT_SECRET


def _env_bool(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "y", "on")


def parse_duration(value: str, default: int = _DEFAULT_TTL_SECONDS) -> int:
    """
    Parse a token lifetime like `7d`, `12h`, `30m`, `45s` or plain seconds.
    Unparseable values fall back to `default`.
    """
    m = _DURATION_RE.match((value or "").strip().lower())
    if not m:
        return default
    seconds = int(m.group(1)) * _UNIT_SECONDS[m.group(2)]
    return seconds if seconds > 0 else default


@lru_cache(maxsize=1)
def load_auth_config() -> AuthConfig:
    """
    Load authentication configuration from environment variables.

    Google sign-in is enabled when GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET and
    GOOGLE_REDIRECT_URI are all set.
    """
    frontend_url = (os.getenv("FRONTEND_URL", "") or "").strip().rstrip("/") or "http://localhost:3000"
    super_admin = (os.getenv("SUPER_ADMIN_EMAIL", "") or "").strip().lower() or None

    return AuthConfig(
        jwt_secret=(os.getenv("JWT_SECRET", "") or "").strip() or None,
        token_ttl_seconds=parse_duration(os.getenv("JWT_EXPIRES_IN", "") or "7d"),
        google_client_id=(os.getenv("GOOGLE_CLIENT_ID", "") or "").strip() or None,
        google_client_secret=(os.getenv("GOOGLE_CLIENT_SECRET", "") or "").strip() or None,
        google_redirect_uri=(os.getenv("GOOGLE_REDIRECT_URI", "") or "").strip() or None,
        frontend_url=frontend_url,
        super_admin_email=super_admin,
        super_admin_recovery_password=(os.getenv("SUPER_ADMIN_RECOVERY_PASSWORD", "") or "").strip() or None,
        debug=_env_bool("APP_DEBUG", False),
    )
