from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING
from pymongo.database import Database

from board.auth.models import User

COLLECTION = "users"


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(value: Any) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value or "").strip())
    except (InvalidId, TypeError):
        return None


def find_by_email(db: Database, email: str) -> Optional[User]:
    e = normalize_email(email)
    if not e:
        return None
    doc = db[COLLECTION].find_one({"email": e})
    return User.from_doc(doc) if doc else None


def find_by_id(db: Database, user_id: Any) -> Optional[User]:
    oid = to_object_id(user_id)
    if oid is None:
        return None
    doc = db[COLLECTION].find_one({"_id": oid})
    return User.from_doc(doc) if doc else None


def insert_user(
    db: Database,
    *,
    name: str,
    email: str,
    password_hash: Optional[str],
    auth_provider: str,
    is_super_admin: bool,
    google_id: Optional[str] = None,
    google_picture: Optional[str] = None,
) -> User:
    doc: Dict[str, Any] = {
        "name": name,
        "email": normalize_email(email),
        "password": password_hash,
        "authProvider": auth_provider,
        "isSuperAdmin": bool(is_super_admin),
        "isAdmin": False,
        "created_at": utcnow(),
    }
    if google_id is not None:
        doc["googleId"] = google_id
    if google_picture is not None:
        doc["googlePicture"] = google_picture
    result = db[COLLECTION].insert_one(doc)
    doc["_id"] = result.inserted_id
    return User.from_doc(doc)


def set_fields(db: Database, user_id: Any, fields: Dict[str, Any]) -> bool:
    """`$set` the given fields. Returns False when no user matched."""
    oid = to_object_id(user_id)
    if oid is None:
        return False
    if not fields:
        return db[COLLECTION].count_documents({"_id": oid}, limit=1) > 0
    result = db[COLLECTION].update_one({"_id": oid}, {"$set": fields})
    return result.matched_count > 0


def delete_user(db: Database, user_id: Any) -> bool:
    oid = to_object_id(user_id)
    if oid is None:
        return False
    return db[COLLECTION].delete_one({"_id": oid}).deleted_count > 0


def delete_all_except_super_admin(db: Database, super_admin_email: Optional[str] = None) -> int:
    """Delete every user except flagged super admins and the designated super-admin email."""
    q: Dict[str, Any] = {"isSuperAdmin": {"$ne": True}}
    if super_admin_email:
        q["email"] = {"$ne": normalize_email(super_admin_email)}
    return db[COLLECTION].delete_many(q).deleted_count


def list_users(db: Database) -> List[User]:
    cur = db[COLLECTION].find({}, {"password": 0}).sort("created_at", DESCENDING)
    return [User.from_doc(d) for d in cur]


def list_admins(db: Database) -> List[User]:
    cur = (
        db[COLLECTION]
        .find({"$or": [{"isSuperAdmin": True}, {"isAdmin": True}]}, {"password": 0})
        .sort("created_at", DESCENDING)
    )
    return [User.from_doc(d) for d in cur]


def names_by_id(db: Database, user_ids: List[Any]) -> Dict[str, str]:
    oids = [oid for oid in (to_object_id(u) for u in user_ids) if oid is not None]
    if not oids:
        return {}
    return {str(d["_id"]): str(d.get("name") or "") for d in db[COLLECTION].find({"_id": {"$in": oids}}, {"name": 1})}
