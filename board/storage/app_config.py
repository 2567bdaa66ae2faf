"""Generic `{key, value, updatedAt}` entries in the `app_config` collection."""

from __future__ import annotations

from typing import Any, Optional

from pymongo.database import Database

from board.storage.users import utcnow

COLLECTION = "app_config"

BULL_LOGO_KEY = "bull_logo_url"


def get_value(db: Database, key: str) -> Optional[Any]:
    doc = db[COLLECTION].find_one({"key": key})
    return doc.get("value") if doc else None


def set_value(db: Database, key: str, value: Any) -> None:
    db[COLLECTION].update_one(
        {"key": key},
        {"$set": {"key": key, "value": value, "updatedAt": utcnow()}},
        upsert=True,
    )
