from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from pymongo import DESCENDING
from pymongo.database import Database

from board.storage.users import names_by_id, to_object_id, utcnow

COLLECTION = "articles"

PLACEHOLDER_IMAGE_URL = "https://images.unsplash.com/photo-1541339907198-e08756dedf3f?w=800&h=600&fit=crop"


@dataclass
class ArticlePage:
    articles: List[Dict[str, Any]]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return int(math.ceil(self.total / self.limit)) if self.limit else 0


@dataclass
class ArticleFilter:
    page: int = 1
    limit: int = 20
    search: str = ""
    tag: str = ""
    status: str = ""

    def query(self) -> Dict[str, Any]:
        q: Dict[str, Any] = {}
        if self.search:
            pattern = re.escape(self.search)
            q["$or"] = [
                {"title": {"$regex": pattern, "$options": "i"}},
                {"body": {"$regex": pattern, "$options": "i"}},
            ]
        if self.tag:
            q["tag"] = self.tag
        if self.status:
            q["status"] = self.status
        return q


def _iso(value: Any) -> Any:
    return value.isoformat() if isinstance(value, datetime) else value


def public_article(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(doc["_id"]),
        "title": doc.get("title"),
        "body": doc.get("body"),
        "tag": doc.get("tag"),
        "image_path": doc.get("image_path"),
        "author_name": doc.get("author_name"),
        "created_at": _iso(doc.get("created_at")),
    }


def admin_article(doc: Dict[str, Any], author_names: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    author_id = str(doc["user_id"]) if doc.get("user_id") else None
    author_name = doc.get("author_name") or (author_names or {}).get(author_id or "") or "Unknown"
    d = public_article(doc)
    d.update(
        {
            "author_name": author_name,
            "author_id": author_id,
            "status": doc.get("status") or "pending",
        }
    )
    return d


def list_approved(db: Database) -> List[Dict[str, Any]]:
    cur = db[COLLECTION].find({"status": "approved"}).sort("created_at", DESCENDING)
    return [public_article(d) for d in cur]


def create_article(
    db: Database,
    *,
    title: str,
    body: str,
    tag: str,
    image_path: str,
    author_name: str,
    user_id: Optional[str] = None,
    status: str = "approved",
) -> Dict[str, Any]:
    doc: Dict[str, Any] = {
        "title": title,
        "body": body,
        "tag": tag,
        "image_path": image_path,
        "author_name": author_name,
        "status": status,
        "created_at": utcnow(),
    }
    if user_id:
        doc["user_id"] = user_id
    result = db[COLLECTION].insert_one(doc)
    doc["_id"] = result.inserted_id
    return doc


def get_article(db: Database, article_id: Any) -> Optional[Dict[str, Any]]:
    oid = to_object_id(article_id)
    if oid is None:
        return None
    return db[COLLECTION].find_one({"_id": oid})


def search_articles(db: Database, flt: ArticleFilter) -> ArticlePage:
    page = max(1, int(flt.page or 1))
    limit = max(1, int(flt.limit or 20))
    q = flt.query()
    total = db[COLLECTION].count_documents(q)
    docs = list(db[COLLECTION].find(q).sort("created_at", DESCENDING).skip((page - 1) * limit).limit(limit))
    names = names_by_id(db, [d.get("user_id") for d in docs if d.get("user_id")])
    return ArticlePage(articles=[admin_article(d, names) for d in docs], page=page, limit=limit, total=total)


def update_article(db: Database, article_id: Any, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    oid = to_object_id(article_id)
    if oid is None:
        return None
    if fields:
        result = db[COLLECTION].update_one({"_id": oid}, {"$set": fields})
        if result.matched_count == 0:
            return None
    return db[COLLECTION].find_one({"_id": oid})


def find_many(db: Database, article_ids: List[Any]) -> List[Dict[str, Any]]:
    oids = [oid for oid in (to_object_id(a) for a in article_ids) if oid is not None]
    if not oids:
        return []
    return list(db[COLLECTION].find({"_id": {"$in": oids}}))


def delete_articles(db: Database, article_ids: List[Any]) -> int:
    oids = [oid for oid in (to_object_id(a) for a in article_ids) if oid is not None]
    if not oids:
        return 0
    return db[COLLECTION].delete_many({"_id": {"$in": oids}}).deleted_count
