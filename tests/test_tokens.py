from __future__ import annotations

import time

import jwt
import pytest

from board.auth.config import INSECURE_JWT_SECRET, load_auth_config, parse_duration
from board.auth.models import User
from board.auth.tokens import extract_token, issue_token, verify_token
from board.errors import ConfigurationError


def _user() -> User:
    return User(id="65f0c0ffee0000000000abcd", name="Ada", email="ada@example.com", is_super_admin=False)


def test_issued_token_verifies_to_identity_snapshot() -> None:
    cfg = load_auth_config()
    claims = verify_token(cfg, issue_token(cfg, _user()))
    assert claims is not None
    assert claims.id == "65f0c0ffee0000000000abcd"
    assert claims.email == "ada@example.com"
    assert claims.name == "Ada"
    assert claims.is_super_admin is False


def test_token_expires_after_configured_lifetime(monkeypatch) -> None:
    monkeypatch.setenv("JWT_EXPIRES_IN", "7d")
    load_auth_config.cache_clear()
    cfg = load_auth_config()
    payload = jwt.decode(issue_token(cfg, _user()), cfg.jwt_secret, algorithms=["HS256"])
    assert payload["exp"] - payload["iat"] == 7 * 24 * 3600


def test_issue_fails_without_secret(monkeypatch) -> None:
    monkeypatch.delenv("JWT_SECRET", raising=False)
    load_auth_config.cache_clear()
    with pytest.raises(ConfigurationError):
        issue_token(load_auth_config(), _user())


def test_issue_fails_with_placeholder_secret(monkeypatch) -> None:
    monkeypatch.setenv("JWT_SECRET", INSECURE_JWT_SECRET)
    load_auth_config.cache_clear()
    with pytest.raises(ConfigurationError):
        issue_token(load_auth_config(), _user())


def test_verify_returns_none_for_bad_tokens() -> None:
    cfg = load_auth_config()
    now = int(time.time())
    expired = jwt.encode(
        {"id": "1", "email": "ada@example.com", "name": "Ada", "iat": now - 100, "exp": now - 10},
        cfg.jwt_secret,
        algorithm="HS256",
    )
    forged = jwt.encode(
        {"id": "1", "email": "ada@example.com", "name": "Ada", "exp": now + 600},
        "some-other-secret-that-is-long-enough!!",
        algorithm="HS256",
    )
    assert verify_token(cfg, expired) is None
    assert verify_token(cfg, forged) is None
    assert verify_token(cfg, "not-a-jwt") is None
    assert verify_token(cfg, "") is None
    assert verify_token(cfg, None) is None


def test_extract_token_accepts_only_bearer_form() -> None:
    assert extract_token("Bearer abc.def.ghi") == "abc.def.ghi"
    assert extract_token("bearer abc") is None
    assert extract_token("Basic dXNlcjpwYXNz") is None
    assert extract_token("abc.def.ghi") is None
    assert extract_token("Bearer ") is None
    assert extract_token(None) is None


def test_parse_duration() -> None:
    assert parse_duration("7d") == 7 * 86400
    assert parse_duration("12h") == 12 * 3600
    assert parse_duration("30m") == 1800
    assert parse_duration("3600") == 3600
    assert parse_duration("soon") == 7 * 86400
    assert parse_duration("0") == 7 * 86400
