from __future__ import annotations

from fastapi import Depends, Request
from pymongo.database import Database

from board.auth.config import load_auth_config
from board.auth.models import User
from board.auth.resolver import require_user
from board.storage.mongo import get_database


def get_db() -> Database:
    """Database dependency. Handlers that resolve the handle lazily call this directly."""
    return get_database()


def current_user(request: Request, db: Database = Depends(get_db)) -> User:
    """Authenticated caller, re-read from the store on every request (401 otherwise)."""
    return require_user(db, load_auth_config(), request.headers.get("authorization"))
