from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from board.auth.models import User
from board.errors import AuthorizationFailure

SUPER_ADMIN_REQUIRED = "Super admin access required"
ADMIN_REQUIRED = "Admin access required"


@dataclass(frozen=True)
class RoleView:
    is_super_admin: bool
    is_admin: bool
    has_password: bool
    needs_password_setup: bool


def is_designated_super_admin(super_admin_email: Optional[str], email: Optional[str]) -> bool:
    if not super_admin_email:
        return False
    return (email or "").strip().lower() == super_admin_email.strip().lower()


def derive_roles(user: User) -> RoleView:
    # Google-only accounts (and legacy records without a provider) are asked to set a password.
    needs_setup = not user.has_password and user.auth_provider in (None, "google")
    return RoleView(
        is_super_admin=user.is_super_admin,
        is_admin=user.is_admin,
        has_password=user.has_password,
        needs_password_setup=needs_setup,
    )


def require_super_admin(user: User) -> User:
    if not user.is_super_admin:
        raise AuthorizationFailure(SUPER_ADMIN_REQUIRED)
    return user


def require_admin_access(user: User) -> User:
    if not (user.is_super_admin or user.is_admin):
        raise AuthorizationFailure(ADMIN_REQUIRED)
    return user


def ensure_role_mutable(target: User) -> None:
    if target.is_super_admin:
        raise AuthorizationFailure("Cannot modify super admin role")


def ensure_deletable(target: User) -> None:
    if target.is_super_admin:
        raise AuthorizationFailure("Cannot delete super admin user")


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def public_user(user: User) -> Dict[str, Any]:
    """Shape returned by register/login."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "isSuperAdmin": user.is_super_admin,
    }


def status_user(user: User) -> Dict[str, Any]:
    """Shape returned by the status check and profile endpoints (live role fields)."""
    roles = derive_roles(user)
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "isSuperAdmin": roles.is_super_admin,
        "isAdmin": roles.is_admin,
        "hasPassword": roles.has_password,
        "needsPasswordSetup": roles.needs_password_setup,
        "authProvider": user.provider,
    }


def admin_user_row(user: User) -> Dict[str, Any]:
    """Shape used by the admin user listings."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "isSuperAdmin": user.is_super_admin,
        "isAdmin": user.is_admin,
        "created_at": _iso(user.created_at),
    }
