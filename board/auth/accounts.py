"""
Account flows: registration, password login, Google sign-in sync, password setup.

All flows apply the super-admin rule: the account whose email matches
SUPER_ADMIN_EMAIL is (re)flagged `isSuperAdmin=true` whenever it is touched.
The flag is never cleared here.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional, Tuple

from pymongo.database import Database

from board.auth import google
from board.auth.config import AuthConfig
from board.auth.models import GoogleIdentity, User
from board.auth.passwords import MAX_PASSWORD_BYTES, MIN_PASSWORD_LENGTH, hash_password, verify_password
from board.auth.tokens import issue_token
from board.authz.policy import is_designated_super_admin
from board.errors import (
    AuthenticationFailure,
    ConfigurationError,
    ConflictError,
    GoogleLoginRequired,
    NotFoundError,
    UpstreamFailure,
    ValidationError,
)
from board.storage import users as users_store

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Names Google sign-in may overwrite.
_PLACEHOLDER_NAMES = ("", "User")


def _str(body: Dict[str, Any], key: str) -> str:
    v = body.get(key)
    return v if isinstance(v, str) else ""


def validate_new_account(body: Dict[str, Any]) -> Tuple[str, str, str]:
    name = _str(body, "name").strip()
    email = users_store.normalize_email(_str(body, "email"))
    password = _str(body, "password")
    if not name or not email or not password:
        raise ValidationError("Name, email, and password are required")
    if not _EMAIL_RE.match(email):
        raise ValidationError("Invalid email address")
    validate_password(password)
    return name, email, password


def validate_password(password: str) -> None:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")


def ensure_super_admin(db: Database, cfg: AuthConfig, user: User) -> User:
    """Lazy, idempotent upgrade of the designated super-admin account."""
    if user.is_super_admin or not is_designated_super_admin(cfg.super_admin_email, user.email):
        return user
    users_store.set_fields(db, user.id, {"isSuperAdmin": True})
    user.is_super_admin = True
    logger.info("Upgraded designated super admin account %s", user.id)
    return user


def create_account(
    db: Database,
    cfg: AuthConfig,
    body: Dict[str, Any],
    *,
    conflict_message: str = "Email already registered",
) -> User:
    """Create an email/password account (self-registration or admin-created)."""
    name, email, password = validate_new_account(body)
    if users_store.find_by_email(db, email) is not None:
        raise ConflictError(conflict_message)
    user = users_store.insert_user(
        db,
        name=name,
        email=email,
        password_hash=hash_password(password),
        auth_provider="email",
        is_super_admin=is_designated_super_admin(cfg.super_admin_email, email),
    )
    logger.info("Created account %s (provider=email)", user.id)
    return user


def register(db: Database, cfg: AuthConfig, body: Dict[str, Any]) -> Tuple[User, str]:
    # Fail before writing anything if tokens cannot be issued.
    if not cfg.signing_ready:
        raise ConfigurationError("JWT_SECRET is not properly configured")
    user = create_account(db, cfg, body)
    return user, issue_token(cfg, user)


def login(db: Database, cfg: AuthConfig, body: Dict[str, Any]) -> Tuple[User, str]:
    """
    Email/password login.

    Errors name the failing field: unknown email is 404, wrong password 401.
    """
    email = users_store.normalize_email(_str(body, "email"))
    password = _str(body, "password")
    if not email or not password:
        raise ValidationError("Email and password are required")

    user = users_store.find_by_email(db, email)
    if user is None:
        raise NotFoundError("Invalid email")
    if not user.has_password:
        raise GoogleLoginRequired()
    if not verify_password(password, user.password or ""):
        raise AuthenticationFailure("Password is wrong")

    ensure_super_admin(db, cfg, user)
    token = issue_token(cfg, user)
    users_store.set_fields(db, user.id, {"lastLogin": users_store.utcnow()})
    return user, token


def sync_google_user(db: Database, cfg: AuthConfig, identity: GoogleIdentity) -> User:
    """
    Find-or-create the local account for a Google identity.

    Never touches `password`: signing in with Google must not add, change or
    remove password credentials.
    """
    user = users_store.find_by_email(db, identity.email)
    if user is None:
        user = users_store.insert_user(
            db,
            name=identity.name,
            email=identity.email,
            password_hash=None,
            auth_provider="google",
            is_super_admin=is_designated_super_admin(cfg.super_admin_email, identity.email),
            google_id=identity.external_id,
            google_picture=identity.picture_url,
        )
        logger.info("Created account %s (provider=google)", user.id)
    else:
        fields: Dict[str, Any] = {
            "googleId": identity.external_id,
            "googlePicture": identity.picture_url,
            "lastLogin": users_store.utcnow(),
        }
        if user.name in _PLACEHOLDER_NAMES:
            fields["name"] = identity.name
        if not user.auth_provider:
            fields["authProvider"] = "google"
        users_store.set_fields(db, user.id, fields)
        refreshed = users_store.find_by_id(db, user.id)
        if refreshed is None:
            logger.error("Account %s disappeared during Google sign-in", user.id)
            raise UpstreamFailure(google.FAILED_MESSAGE, status_code=500)
        user = refreshed
        logger.info("Google sign-in for existing account %s (has_password=%s)", user.id, user.has_password)

    return ensure_super_admin(db, cfg, user)


def google_sign_in(db: Database, cfg: AuthConfig, code: str) -> Tuple[User, str]:
    tokens = google.exchange_code(cfg, code)
    identity = google.verify_identity(cfg, str(tokens.get("id_token") or ""))
    user = sync_google_user(db, cfg, identity)
    return user, issue_token(cfg, user)


def update_profile(db: Database, user: User, body: Dict[str, Any]) -> User:
    name = _str(body, "name").strip()
    if not name:
        raise ValidationError("Name is required")
    if not users_store.set_fields(db, user.id, {"name": name}):
        raise NotFoundError("User not found")
    user.name = name
    return user


def set_password(db: Database, user: User, body: Dict[str, Any]) -> User:
    """
    Explicit password-set action. Accounts that already have a password must
    confirm the current one.
    """
    new_password = _str(body, "password")
    validate_password(new_password)
    if user.has_password:
        current = _str(body, "currentPassword")
        if not current or not verify_password(current, user.password or ""):
            raise AuthenticationFailure("Password is wrong")

    hashed = hash_password(new_password)
    if not users_store.set_fields(db, user.id, {"password": hashed}):
        raise NotFoundError("User not found")
    user.password = hashed
    logger.info("Password set for account %s", user.id)
    return user


def _designated_super_admin(db: Database, cfg: AuthConfig) -> User:
    if not cfg.super_admin_email:
        raise ConfigurationError("SUPER_ADMIN_EMAIL is not configured")
    user = users_store.find_by_email(db, cfg.super_admin_email)
    if user is None:
        raise NotFoundError("Super admin user not found")
    return user


def restore_super_admin_password(db: Database, cfg: AuthConfig) -> Dict[str, Any]:
    """
    Emergency recovery: give the super-admin a password when it has none.
    The recovery password comes from configuration and is never echoed back.
    """
    user = _designated_super_admin(db, cfg)
    if user.has_password:
        return {
            "success": True,
            "message": "Super admin already has a password set. No action needed.",
            "hasPassword": True,
        }
    if not cfg.super_admin_recovery_password:
        raise ConfigurationError("SUPER_ADMIN_RECOVERY_PASSWORD is not configured")
    if len(cfg.super_admin_recovery_password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ConfigurationError(f"SUPER_ADMIN_RECOVERY_PASSWORD must be at most {MAX_PASSWORD_BYTES} bytes")

    users_store.set_fields(
        db,
        user.id,
        {"password": hash_password(cfg.super_admin_recovery_password), "isSuperAdmin": True},
    )
    logger.warning("Super admin password restored from recovery configuration (account %s)", user.id)
    return {
        "success": True,
        "message": "Super admin password restored from the configured recovery password. Please change it after login.",
        "email": user.email,
        "hasPassword": True,
    }


def clear_super_admin_password(db: Database, cfg: AuthConfig) -> Dict[str, Any]:
    """Make the super-admin account Google-only."""
    user = _designated_super_admin(db, cfg)
    users_store.set_fields(db, user.id, {"password": None, "authProvider": "google"})
    logger.warning("Super admin password cleared (account %s)", user.id)
    return {
        "success": True,
        "message": "Super admin password cleared successfully. Super admin can now login via Google OAuth only.",
        "email": user.email,
    }


def admin_create_user(db: Database, cfg: AuthConfig, body: Dict[str, Any]) -> User:
    return create_account(db, cfg, body, conflict_message="This email is already used")


def find_user_for_admin(db: Database, user_id: Optional[str]) -> User:
    user = users_store.find_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user
