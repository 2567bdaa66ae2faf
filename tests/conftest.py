"""
Pytest config.

Local imports like `import board` rely on the repo root being on sys.path when the
package is not installed; pin that here so collection works from any entrypoint.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, Optional

import mongomock
import pytest


def _ensure_repo_root_on_syspath() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


_ensure_repo_root_on_syspath()

TEST_SECRET = "test-secret-key-for-testing-purposes-only"
SUPER_ADMIN_EMAIL = "boss@example.com"
FRONTEND_URL = "https://board.test"


@pytest.fixture(autouse=True)
def auth_env(monkeypatch: pytest.MonkeyPatch):
    """Deterministic configuration for every test; loaders are lru_cached so clear them."""
    from board.auth import google
    from board.auth.config import load_auth_config
    from board.storage.config import load_storage_config

    monkeypatch.setenv("JWT_SECRET", TEST_SECRET)
    monkeypatch.setenv("JWT_EXPIRES_IN", "7d")
    monkeypatch.setenv("SUPER_ADMIN_EMAIL", SUPER_ADMIN_EMAIL)
    monkeypatch.setenv("GOOGLE_CLIENT_ID", "test-client-id.apps.googleusercontent.com")
    monkeypatch.setenv("GOOGLE_CLIENT_SECRET", "test-client-secret")
    monkeypatch.setenv("GOOGLE_REDIRECT_URI", "https://board.test/auth/google")
    monkeypatch.setenv("FRONTEND_URL", FRONTEND_URL)
    for name in (
        "SUPER_ADMIN_RECOVERY_PASSWORD",
        "APP_DEBUG",
        "MONGODB_URI",
        "CLOUDINARY_CLOUD_NAME",
        "CLOUDINARY_API_KEY",
        "CLOUDINARY_API_SECRET",
        "BULL_LOGO_URL",
    ):
        monkeypatch.delenv(name, raising=False)
    load_auth_config.cache_clear()
    load_storage_config.cache_clear()
    google._jwks_cache.clear()
    yield
    load_auth_config.cache_clear()
    load_storage_config.cache_clear()


@pytest.fixture
def db(monkeypatch: pytest.MonkeyPatch):
    """In-memory document database wired in where the API resolves its handle."""
    database = mongomock.MongoClient()["board_test"]
    monkeypatch.setattr("board.api.deps.get_database", lambda: database)
    return database


@pytest.fixture
def client(db):
    from fastapi.testclient import TestClient

    from board.api.server import app

    return TestClient(app)


def make_user(
    db: Any,
    *,
    email: str,
    name: str = "Someone",
    password: Optional[str] = "secret1",
    auth_provider: Optional[str] = "email",
    is_admin: bool = False,
    is_super_admin: bool = False,
) -> str:
    """Insert a user document directly and return its id."""
    from board.auth.passwords import hash_password
    from board.storage.users import utcnow

    doc: Dict[str, Any] = {
        "name": name,
        "email": email,
        "password": hash_password(password) if password else None,
        "isAdmin": is_admin,
        "isSuperAdmin": is_super_admin,
        "created_at": utcnow(),
    }
    if auth_provider is not None:
        doc["authProvider"] = auth_provider
    return str(db["users"].insert_one(doc).inserted_id)


def bearer_for(email: str) -> Dict[str, str]:
    """Authorization header for a (possibly stale) token naming `email`."""
    from board.auth.config import load_auth_config
    from board.auth.models import User
    from board.auth.tokens import issue_token

    token = issue_token(load_auth_config(), User(id="x", name="n", email=email))
    return {"Authorization": f"Bearer {token}"}
