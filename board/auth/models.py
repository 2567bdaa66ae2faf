from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class User:
    """User record as stored in the `users` collection."""

    id: str
    name: str
    email: str
    password: Optional[str] = None  # bcrypt hash; None for Google-only accounts
    auth_provider: Optional[str] = None  # email|google, unset on legacy records
    google_id: Optional[str] = None
    google_picture: Optional[str] = None
    is_super_admin: bool = False
    is_admin: bool = False
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    @property
    def has_password(self) -> bool:
        return bool(self.password)

    @property
    def provider(self) -> str:
        return self.auth_provider or "email"

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "User":
        return cls(
            id=str(doc.get("_id")),
            name=str(doc.get("name") or ""),
            email=str(doc.get("email") or ""),
            password=doc.get("password") or None,
            auth_provider=doc.get("authProvider") or None,
            google_id=doc.get("googleId") or None,
            google_picture=doc.get("googlePicture") or None,
            is_super_admin=bool(doc.get("isSuperAdmin")),
            is_admin=bool(doc.get("isAdmin")),
            created_at=doc.get("created_at"),
            last_login=doc.get("lastLogin"),
        )


@dataclass(frozen=True)
class TokenClaims:
    """Identity snapshot carried in a bearer token. Role fields may be stale."""

    id: str
    email: str
    name: str
    is_super_admin: bool = False


@dataclass(frozen=True)
class GoogleIdentity:
    email: str
    name: str
    external_id: str
    picture_url: Optional[str] = None


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving a bearer token against the user store."""

    authenticated: bool
    user: Optional[User] = None
    reason: Optional[str] = None  # missing_token|invalid_token|user_gone
    error: Optional[str] = None  # client-facing, only for a deleted account
