"""
Article board HTTP API.

Public routes (register/login/Google sign-in/status/articles) plus the profile
and admin surfaces. Bearer tokens only; every authenticated request is
re-checked against the `users` collection.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional
from urllib.parse import quote

from fastapi import Body, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse, Response
from pymongo.database import Database
from pymongo.errors import PyMongoError

from board.api import admin
from board.api.deps import current_user, get_db
from board.auth import accounts, google
from board.auth.config import load_auth_config
from board.auth.models import User
from board.auth.resolver import resolve
from board.authz.policy import public_user, require_admin_access, status_user
from board.errors import BoardError, ConfigurationError, UpstreamFailure, ValidationError
from board.storage import app_config, articles, images
from board.storage.config import load_storage_config

logger = logging.getLogger(__name__)


app = FastAPI(title="Article board API")
app.include_router(admin.router)

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Credentials": "true",
    "Access-Control-Allow-Methods": "GET,POST,PUT,PATCH,DELETE,OPTIONS",
    "Access-Control-Allow-Headers": (
        "X-CSRF-Token, X-Requested-With, Accept, Accept-Version, Content-Length, Content-MD5, "
        "Content-Type, Date, X-Api-Version, Authorization"
    ),
}


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming HTTP requests and apply permissive CORS."""
    start_time = time.time()
    logger.debug("%s %s", request.method, request.url.path)
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=_CORS_HEADERS)
    try:
        response = await call_next(request)
    except Exception as e:
        process_time = time.time() - start_time
        logger.exception("%s %s - ERROR after %.3fs: %s", request.method, request.url.path, process_time, str(e))
        raise
    response.headers.update(_CORS_HEADERS)
    process_time = time.time() - start_time
    logger.debug("%s %s - %d (%.3fs)", request.method, request.url.path, response.status_code, process_time)
    return response


@app.exception_handler(BoardError)
async def _board_error(_request: Request, exc: BoardError) -> JSONResponse:
    content: Dict[str, Any] = {"success": False, "error": exc.message}
    if isinstance(exc, ConfigurationError):
        # Detail stays in the server log unless diagnostic mode is on.
        logger.error("Configuration error: %s", exc.message)
        content["error"] = exc.public_message
        if load_auth_config().debug:
            content["details"] = exc.message
    elif isinstance(exc, UpstreamFailure):
        cause = exc.__cause__
        logger.warning("Upstream failure: %s (%s)", exc.message, type(cause).__name__ if cause else "-")
        if load_auth_config().debug and cause is not None:
            content["details"] = str(cause)
    content.update(exc.extra)
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(PyMongoError)
async def _database_error(_request: Request, exc: PyMongoError) -> JSONResponse:
    logger.error("Database error: %s", str(exc))
    content: Dict[str, Any] = {"success": False, "error": "Database unavailable"}
    if load_auth_config().debug:
        content["details"] = str(exc)
    return JSONResponse(status_code=503, content=content)


@app.exception_handler(RequestValidationError)
async def _request_validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.debug("Rejected request body: %s", exc.errors())
    return JSONResponse(status_code=400, content={"success": False, "error": "Invalid JSON in request body"})


@app.get("/healthz")
def healthz() -> Dict[str, Any]:
    return {"ok": True}


# ---- Accounts ----


@app.post("/register")
def register(body: Dict[str, Any] = Body(default_factory=dict), db: Database = Depends(get_db)) -> JSONResponse:
    user, token = accounts.register(db, load_auth_config(), body)
    return JSONResponse(
        status_code=201,
        content={
            "success": True,
            "user": public_user(user),
            "token": token,
            "message": "Registration successful",
        },
    )


@app.post("/login")
def login(body: Dict[str, Any] = Body(default_factory=dict), db: Database = Depends(get_db)) -> Dict[str, Any]:
    user, token = accounts.login(db, load_auth_config(), body)
    return {"success": True, "user": public_user(user), "token": token, "message": "Login successful"}


@app.post("/logout")
def logout() -> Dict[str, Any]:
    # Tokens are stateless; the client drops its copy.
    return {"success": True, "message": "Logged out"}


def _status(request: Request) -> Dict[str, Any]:
    """Always answered with 200: an unauthenticated caller is data, not an error."""
    try:
        res = resolve(get_db(), load_auth_config(), request.headers.get("authorization"))
    except (BoardError, PyMongoError) as e:
        logger.warning("Auth status check failed: %s", str(e))
        return {"authenticated": False, "error": "Authentication check failed"}
    if not res.authenticated or res.user is None:
        out: Dict[str, Any] = {"authenticated": False}
        if res.error:
            out["error"] = res.error
        return out
    return {"authenticated": True, "user": status_user(res.user)}


@app.get("/auth/status")
def auth_status(request: Request) -> Dict[str, Any]:
    return _status(request)


def _frontend_redirect(page: str, param: str, value: str) -> RedirectResponse:
    base = load_auth_config().frontend_url
    resp = RedirectResponse(url=f"{base}/{page}?{param}={quote(value, safe='')}", status_code=302)
    resp.headers["Cache-Control"] = "no-store"
    return resp


def _google(code: Optional[str], error: Optional[str]) -> Response:
    """
    Google sign-in, one endpoint for all phases:
    no params -> redirect to Google; `error` -> cancelled; `code` -> callback.

    The browser is mid-navigation here, so callback failures redirect to the
    login page instead of returning JSON.
    """
    cfg = load_auth_config()
    if code:
        try:
            # Resolved lazily so a database outage is reported by redirect too.
            db = get_db()
            _, token = accounts.google_sign_in(db, cfg, code)
        except (BoardError, PyMongoError) as e:
            if isinstance(e, ConfigurationError):
                logger.error("Google sign-in misconfigured: %s", e.message)
                message = google.FAILED_MESSAGE
            elif isinstance(e, BoardError):
                message = e.message
            else:
                logger.error("Database error during Google sign-in: %s", str(e))
                message = google.FAILED_MESSAGE
            return _frontend_redirect("login.html", "error", message)
        return _frontend_redirect("index.html", "token", token)

    if error:
        logger.info("Google sign-in cancelled: %s", error)
        return _frontend_redirect("login.html", "error", google.CANCELLED_MESSAGE)

    resp = RedirectResponse(url=google.build_authorization_url(cfg), status_code=302)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@app.get("/auth/google")
def auth_google(code: Optional[str] = Query(None), error: Optional[str] = Query(None)) -> Response:
    return _google(code, error)


@app.get("/auth")
def auth_dispatch(
    request: Request,
    action: str = Query("status"),
    code: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
) -> Response:
    """Consolidated form: `/auth?action=status|google`."""
    if action == "status":
        return JSONResponse(content=_status(request))
    if action == "google":
        return _google(code, error)
    raise ValidationError("Invalid action parameter. Use: status or google")


# ---- Profile ----


@app.get("/profile")
def get_profile(user: User = Depends(current_user)) -> Dict[str, Any]:
    return {"success": True, "user": status_user(user)}


@app.put("/profile")
def put_profile(
    body: Dict[str, Any] = Body(default_factory=dict),
    user: User = Depends(current_user),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    user = accounts.update_profile(db, user, body)
    return {"success": True, "user": status_user(user), "message": "Profile updated successfully"}


@app.post("/profile/password")
def post_profile_password(
    body: Dict[str, Any] = Body(default_factory=dict),
    user: User = Depends(current_user),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    user = accounts.set_password(db, user, body)
    return {"success": True, "user": status_user(user), "message": "Password updated successfully"}


# ---- Articles ----


@app.get("/articles")
def list_articles(db: Database = Depends(get_db)) -> Dict[str, Any]:
    return {"success": True, "articles": articles.list_approved(db)}


@app.post("/articles")
def create_article(
    request: Request,
    body: Dict[str, Any] = Body(default_factory=dict),
    db: Database = Depends(get_db),
) -> JSONResponse:
    title = str(body.get("title") or "").strip()
    text = str(body.get("body") or "").strip()
    tag = str(body.get("tag") or "").strip()
    if not title or not text or not tag:
        raise ValidationError("Title, body, and tag are required")

    # Signed-in authors are attributed; anonymous submissions are allowed.
    res = resolve(db, load_auth_config(), request.headers.get("authorization"))
    author = res.user if res.authenticated else None

    image_data = body.get("imageData")
    if image_data:
        image_url = images.upload(load_storage_config(), str(image_data))
    else:
        image_url = articles.PLACEHOLDER_IMAGE_URL

    author_name = str(body.get("author_name") or (author.name if author else "") or "Anonymous").strip()
    doc = articles.create_article(
        db,
        title=title,
        body=text,
        tag=tag,
        image_path=image_url,
        author_name=author_name,
        user_id=author.id if author else None,
    )
    logger.info("Created article %s (tag=%s)", doc["_id"], tag)
    return JSONResponse(
        status_code=201,
        content={"success": True, "article": articles.public_article(doc), "message": "Article created successfully"},
    )


# ---- App config ----


@app.get("/bull-logo")
def get_bull_logo(db: Database = Depends(get_db)) -> Dict[str, Any]:
    url = app_config.get_value(db, app_config.BULL_LOGO_KEY) or load_storage_config().bull_logo_url
    return {"success": True, "url": url or None}


@app.put("/bull-logo")
def put_bull_logo(
    body: Dict[str, Any] = Body(default_factory=dict),
    user: User = Depends(current_user),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    require_admin_access(user)
    url = str(body.get("url") or "").strip()
    if not url:
        raise ValidationError("URL is required")
    app_config.set_value(db, app_config.BULL_LOGO_KEY, url)
    return {"success": True, "url": url, "message": "Bull logo URL updated successfully"}
