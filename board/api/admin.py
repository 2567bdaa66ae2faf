"""
Admin surface: `/admin?type=<kind>` (or `/admin/<kind>`).

Each kind is one entry in `OPERATIONS`: the role gate it requires and the
HTTP methods it supports. Authentication and the role gate run before the
method is looked at, so an unauthenticated caller always gets 401 and an
under-privileged one 403.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from fastapi import APIRouter, Body, Request
from fastapi.responses import JSONResponse
from pymongo.database import Database

from board.api.deps import get_db
from board.auth import accounts
from board.auth.config import AuthConfig, load_auth_config
from board.auth.models import User
from board.auth.resolver import require_user
from board.authz.policy import (
    admin_user_row,
    ensure_deletable,
    ensure_role_mutable,
    public_user,
    require_admin_access,
    require_super_admin,
)
from board.errors import BoardError, NotFoundError, ValidationError
from board.storage import articles, images
from board.storage import users as users_store
from board.storage.config import StorageConfig, load_storage_config

logger = logging.getLogger(__name__)

router = APIRouter()

_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


@dataclass
class AdminContext:
    db: Database
    auth: AuthConfig
    storage: StorageConfig
    user: User
    query: Mapping[str, str]
    body: Dict[str, Any]


Handler = Callable[[AdminContext], Any]


@dataclass(frozen=True)
class AdminOperation:
    gate: Callable[[User], User]
    methods: Dict[str, Handler]


def _int(raw: Optional[str], default: int) -> int:
    try:
        v = int(raw or "")
    except ValueError:
        return default
    return v if v > 0 else default


# ---- articles (admin or super admin) ----


def _require_article_id(ctx: AdminContext) -> str:
    article_id = (ctx.query.get("articleId") or "").strip()
    if not article_id:
        raise ValidationError("Article ID is required")
    if users_store.to_object_id(article_id) is None:
        raise ValidationError("Invalid article ID")
    return article_id


def _article_with_author(ctx: AdminContext, doc: Dict[str, Any]) -> Dict[str, Any]:
    names = users_store.names_by_id(ctx.db, [doc["user_id"]]) if doc.get("user_id") else {}
    return articles.admin_article(doc, names)


def articles_get(ctx: AdminContext) -> Dict[str, Any]:
    if ctx.query.get("articleId"):
        doc = articles.get_article(ctx.db, _require_article_id(ctx))
        if doc is None:
            raise NotFoundError("Article not found")
        return {"success": True, "article": _article_with_author(ctx, doc)}

    flt = articles.ArticleFilter(
        page=_int(ctx.query.get("page"), 1),
        limit=_int(ctx.query.get("limit"), 20),
        search=(ctx.query.get("search") or "").strip(),
        tag=(ctx.query.get("tag") or "").strip(),
        status=(ctx.query.get("status") or "").strip(),
    )
    page = articles.search_articles(ctx.db, flt)
    return {
        "success": True,
        "articles": page.articles,
        "pagination": {"page": page.page, "limit": page.limit, "total": page.total, "pages": page.pages},
    }


def articles_put(ctx: AdminContext) -> Dict[str, Any]:
    article_id = _require_article_id(ctx)
    existing = articles.get_article(ctx.db, article_id)
    if existing is None:
        raise NotFoundError("Article not found")

    fields: Dict[str, Any] = {}
    for key in ("title", "body", "tag"):
        if isinstance(ctx.body.get(key), str):
            fields[key] = ctx.body[key].strip()
    if ctx.body.get("status") is not None:
        fields["status"] = str(ctx.body["status"])

    image_data = ctx.body.get("imageData")
    if image_data:
        fields["image_path"] = images.upload(ctx.storage, str(image_data))
        images.delete_hosted_image(ctx.storage, existing.get("image_path"))

    updated = articles.update_article(ctx.db, article_id, fields)
    if updated is None:
        raise NotFoundError("Article not found")
    logger.info("Article %s updated by %s (fields=%s)", article_id, ctx.user.id, sorted(fields))
    return {"success": True, "article": _article_with_author(ctx, updated), "message": "Article updated successfully"}


def articles_delete(ctx: AdminContext) -> Dict[str, Any]:
    bulk = (ctx.query.get("articleIds") or "").strip()
    if bulk:
        ids = [x.strip() for x in bulk.split(",") if x.strip()]
        if not ids or any(users_store.to_object_id(x) is None for x in ids):
            raise ValidationError("Invalid article IDs")
        for doc in articles.find_many(ctx.db, ids):
            images.delete_hosted_image(ctx.storage, doc.get("image_path"))
        n = articles.delete_articles(ctx.db, ids)
        logger.info("Bulk-deleted %d article(s) by %s", n, ctx.user.id)
        return {"success": True, "message": f"Deleted {n} article(s)", "deletedCount": n}

    if ctx.query.get("articleId"):
        article_id = _require_article_id(ctx)
        doc = articles.get_article(ctx.db, article_id)
        if doc is None:
            raise NotFoundError("Article not found")
        images.delete_hosted_image(ctx.storage, doc.get("image_path"))
        if articles.delete_articles(ctx.db, [article_id]) == 0:
            raise NotFoundError("Article not found")
        logger.info("Article %s deleted by %s", article_id, ctx.user.id)
        return {"success": True, "message": "Article deleted successfully"}

    raise ValidationError("Article ID or IDs required")


# ---- users (super admin) ----


def users_get(ctx: AdminContext) -> Dict[str, Any]:
    return {"success": True, "users": [admin_user_row(u) for u in users_store.list_users(ctx.db)]}


def users_post(ctx: AdminContext) -> JSONResponse:
    user = accounts.admin_create_user(ctx.db, ctx.auth, ctx.body)
    return JSONResponse(
        status_code=201,
        content={"success": True, "user": public_user(user), "message": "User created successfully"},
    )


def users_delete(ctx: AdminContext) -> Dict[str, Any]:
    user_id = (ctx.query.get("userId") or "").strip()
    if not user_id:
        n = users_store.delete_all_except_super_admin(ctx.db, ctx.auth.super_admin_email)
        logger.warning("Deleted %d non-super-admin users (by %s)", n, ctx.user.id)
        return {"success": True, "message": f"Deleted {n} users", "deletedCount": n}

    target = accounts.ensure_super_admin(ctx.db, ctx.auth, accounts.find_user_for_admin(ctx.db, user_id))
    ensure_deletable(target)
    if not users_store.delete_user(ctx.db, target.id):
        raise NotFoundError("User not found")
    logger.info("User %s deleted by %s", target.id, ctx.user.id)
    return {"success": True, "message": "User deleted successfully"}


def users_patch(ctx: AdminContext) -> Dict[str, Any]:
    user_id = ctx.body.get("userId")
    is_admin = ctx.body.get("isAdmin")
    if not user_id or not isinstance(is_admin, bool):
        raise ValidationError("userId and isAdmin (boolean) are required")

    target = accounts.ensure_super_admin(ctx.db, ctx.auth, accounts.find_user_for_admin(ctx.db, str(user_id)))
    ensure_role_mutable(target)
    users_store.set_fields(ctx.db, target.id, {"isAdmin": is_admin})
    target.is_admin = is_admin
    logger.info("User %s isAdmin=%s (by %s)", target.id, is_admin, ctx.user.id)
    row = admin_user_row(target)
    row.pop("created_at", None)
    return {
        "success": True,
        "user": row,
        "message": "User promoted to admin" if is_admin else "Admin demoted to user",
    }


def admins_get(ctx: AdminContext) -> Dict[str, Any]:
    return {"success": True, "admins": [admin_user_row(u) for u in users_store.list_admins(ctx.db)]}


def wipe_users(ctx: AdminContext) -> Dict[str, Any]:
    n = users_store.delete_all_except_super_admin(ctx.db, ctx.auth.super_admin_email)
    logger.warning("Wiped %d users (by %s)", n, ctx.user.id)
    return {
        "success": True,
        "message": f"Successfully wiped {n} users. All existing credentials have been deleted.",
        "deletedCount": n,
    }


def restore_password(ctx: AdminContext) -> Dict[str, Any]:
    return accounts.restore_super_admin_password(ctx.db, ctx.auth)


def clear_password(ctx: AdminContext) -> Dict[str, Any]:
    return accounts.clear_super_admin_password(ctx.db, ctx.auth)


OPERATIONS: Dict[str, AdminOperation] = {
    "articles": AdminOperation(
        gate=require_admin_access,
        methods={"GET": articles_get, "PUT": articles_put, "DELETE": articles_delete},
    ),
    "users": AdminOperation(
        gate=require_super_admin,
        methods={"GET": users_get, "POST": users_post, "DELETE": users_delete, "PATCH": users_patch},
    ),
    "admins": AdminOperation(gate=require_super_admin, methods={"GET": admins_get}),
    "wipe-users": AdminOperation(gate=require_super_admin, methods={"POST": wipe_users}),
    "restore-password": AdminOperation(gate=require_super_admin, methods={"POST": restore_password}),
    "clear-password": AdminOperation(gate=require_super_admin, methods={"POST": clear_password}),
}


def _dispatch(request: Request, kind: str, body: Optional[Dict[str, Any]]) -> Any:
    op = OPERATIONS.get(kind)
    if op is None:
        valid: List[str] = list(OPERATIONS)
        raise ValidationError(f"Invalid type parameter. Use: {', '.join(valid)}")

    db = get_db()
    cfg = load_auth_config()
    user = op.gate(require_user(db, cfg, request.headers.get("authorization")))

    handler = op.methods.get(request.method)
    if handler is None:
        raise BoardError("Method not allowed", status_code=405)

    ctx = AdminContext(
        db=db,
        auth=cfg,
        storage=load_storage_config(),
        user=user,
        query=request.query_params,
        body=body if isinstance(body, dict) else {},
    )
    return handler(ctx)


@router.api_route("/admin", methods=_METHODS)
def admin_by_query(request: Request, body: Optional[Dict[str, Any]] = Body(None)) -> Any:
    return _dispatch(request, request.query_params.get("type") or "articles", body)


@router.api_route("/admin/{kind}", methods=_METHODS)
def admin_by_path(kind: str, request: Request, body: Optional[Dict[str, Any]] = Body(None)) -> Any:
    return _dispatch(request, kind, body)
