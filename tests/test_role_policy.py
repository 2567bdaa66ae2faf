from __future__ import annotations

import pytest

from board.auth.models import User
from board.authz.policy import (
    ADMIN_REQUIRED,
    SUPER_ADMIN_REQUIRED,
    derive_roles,
    ensure_deletable,
    ensure_role_mutable,
    is_designated_super_admin,
    require_admin_access,
    require_super_admin,
    status_user,
)
from board.errors import AuthorizationFailure


def _u(**kw) -> User:
    base = dict(id="1", name="N", email="n@example.com")
    base.update(kw)
    return User(**base)


def test_designated_super_admin_matches_normalized_email() -> None:
    assert is_designated_super_admin("boss@example.com", "  Boss@Example.COM ")
    assert not is_designated_super_admin("boss@example.com", "other@example.com")
    assert not is_designated_super_admin(None, "boss@example.com")


@pytest.mark.parametrize(
    "password, provider, expected",
    [
        (None, "google", True),
        (None, None, True),
        (None, "email", False),
        ("$2b$hash", "google", False),
        ("$2b$hash", "email", False),
    ],
)
def test_needs_password_setup(password, provider, expected) -> None:
    roles = derive_roles(_u(password=password, auth_provider=provider))
    assert roles.needs_password_setup is expected
    assert roles.has_password is bool(password)


def test_status_user_defaults_provider_to_email() -> None:
    out = status_user(_u(password="$2b$hash"))
    assert out["authProvider"] == "email"
    assert out["hasPassword"] is True
    assert out["isAdmin"] is False


def test_admin_access_passes_for_admin_and_super_admin() -> None:
    assert require_admin_access(_u(is_admin=True)).is_admin
    assert require_admin_access(_u(is_super_admin=True)).is_super_admin
    with pytest.raises(AuthorizationFailure) as e:
        require_admin_access(_u())
    assert e.value.message == ADMIN_REQUIRED
    assert e.value.status_code == 403


def test_admin_is_not_super_admin() -> None:
    with pytest.raises(AuthorizationFailure) as e:
        require_super_admin(_u(is_admin=True))
    assert e.value.message == SUPER_ADMIN_REQUIRED


def test_super_admin_cannot_be_modified_or_deleted() -> None:
    boss = _u(is_super_admin=True)
    with pytest.raises(AuthorizationFailure):
        ensure_role_mutable(boss)
    with pytest.raises(AuthorizationFailure):
        ensure_deletable(boss)
    ensure_role_mutable(_u(is_admin=True))
    ensure_deletable(_u(is_admin=True))
