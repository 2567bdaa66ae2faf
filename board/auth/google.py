"""
Google OAuth bridge.

Turns an authorization code into a verified Google identity. The identity is only
used to find or create a local account; Google tokens are never stored.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, Iterable, Optional, Tuple
from urllib.parse import urlencode

import jwt  # PyJWT
import requests

from board.auth.config import AuthConfig
from board.auth.models import GoogleIdentity
from board.errors import AuthenticationFailure, ConfigurationError, UpstreamFailure

logger = logging.getLogger(__name__)

GOOGLE_AUTH_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
GOOGLE_JWKS_URI = "https://www.googleapis.com/oauth2/v3/certs"
GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")

DEFAULT_SCOPES = (
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
)

# User-facing messages (safe to put in a redirect URL).
CANCELLED_MESSAGE = "Google authentication was cancelled"
FAILED_MESSAGE = "Google authentication failed"

_jwks_cache: Dict[str, Tuple[float, Optional[Dict[str, Any]]]] = {}


def _require_client(cfg: AuthConfig) -> None:
    if not cfg.google_enabled:
        raise ConfigurationError("Google OAuth credentials not configured")


def _get_jwks(jwks_uri: str) -> Dict[str, Any]:
    """
    Fetch Google's JSON Web Key Set.
    Caches result for 1 hour per JWKS URI.
    """
    ts, cached = _jwks_cache.get(jwks_uri, (0.0, None))
    now = time.time()
    if cached is not None and now - ts < 3600:
        return cached
    r = requests.get(jwks_uri, timeout=10)
    r.raise_for_status()
    data = r.json()
    if not isinstance(data, dict):
        raise ValueError("Invalid JWKS")
    _jwks_cache[jwks_uri] = (now, data)
    return data


def build_authorization_url(
    cfg: AuthConfig,
    *,
    scopes: Iterable[str] = DEFAULT_SCOPES,
    prompt_consent: bool = True,
) -> str:
    """Build the Google consent URL. Requests offline access."""
    _require_client(cfg)
    params = {
        "client_id": cfg.google_client_id,
        "redirect_uri": cfg.google_redirect_uri,
        "response_type": "code",
        "access_type": "offline",
        "scope": " ".join(scopes),
    }
    if prompt_consent:
        params["prompt"] = "consent"
    return f"{GOOGLE_AUTH_ENDPOINT}?{urlencode(params)}"


def exchange_code(cfg: AuthConfig, code: str) -> Dict[str, Any]:
    """
    Exchange authorization code for tokens (id_token, access_token, ...).
    """
    _require_client(cfg)
    payload = {
        "client_id": cfg.google_client_id,
        "client_secret": cfg.google_client_secret,
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": cfg.google_redirect_uri,
    }
    try:
        r = requests.post(GOOGLE_TOKEN_ENDPOINT, data=payload, timeout=10)
    except requests.RequestException as e:
        logger.warning("Google token exchange request failed: %s", str(e))
        raise UpstreamFailure(FAILED_MESSAGE) from e
    if r.status_code >= 400:
        # Avoid leaking sensitive info; include minimal context.
        logger.warning("Google token exchange rejected (status=%s)", r.status_code)
        raise UpstreamFailure(FAILED_MESSAGE)
    try:
        data = r.json()
    except ValueError as e:
        raise UpstreamFailure(FAILED_MESSAGE) from e
    if not isinstance(data, dict) or not data.get("id_token"):
        raise UpstreamFailure(FAILED_MESSAGE)
    return data


def verify_identity(cfg: AuthConfig, id_token: str) -> GoogleIdentity:
    """
    Validate a Google ID token and extract the identity.
    - Verifies JWT signature using Google's public keys
    - Validates issuer and audience
    - Rejects explicitly unverified emails
    """
    _require_client(cfg)
    try:
        hdr = jwt.get_unverified_header(id_token)
    except jwt.InvalidTokenError as e:
        raise AuthenticationFailure(FAILED_MESSAGE) from e
    kid = str(hdr.get("kid") or "")
    if not kid:
        raise AuthenticationFailure(FAILED_MESSAGE)

    try:
        jwks = _get_jwks(GOOGLE_JWKS_URI)
    except (requests.RequestException, ValueError) as e:
        logger.warning("Failed to fetch Google signing keys: %s", str(e))
        raise UpstreamFailure(FAILED_MESSAGE) from e

    keys = jwks.get("keys")
    jwk = None
    if isinstance(keys, list):
        for k in keys:
            if isinstance(k, dict) and str(k.get("kid") or "") == kid:
                jwk = k
                break
    if jwk is None:
        raise AuthenticationFailure(FAILED_MESSAGE)

    try:
        key = jwt.algorithms.RSAAlgorithm.from_jwk(json.dumps(jwk))
        claims = jwt.decode(
            id_token,
            key=key,
            algorithms=["RS256"],
            audience=cfg.google_client_id,
            options={"require": ["exp", "iat", "iss", "aud", "sub"]},
        )
    except (jwt.PyJWTError, ValueError) as e:
        logger.info("Google ID token rejected: %s", type(e).__name__)
        raise AuthenticationFailure(FAILED_MESSAGE) from e

    if str(claims.get("iss") or "") not in GOOGLE_ISSUERS:
        raise AuthenticationFailure(FAILED_MESSAGE)

    email_verified = claims.get("email_verified")
    if email_verified is not None and email_verified is not True:
        raise AuthenticationFailure("Google email address is not verified")

    email = str(claims.get("email") or "").strip().lower()
    if "@" not in email:
        raise AuthenticationFailure("Google account has no email address")

    return GoogleIdentity(
        email=email,
        name=str(claims.get("name") or claims.get("given_name") or "").strip() or "User",
        external_id=str(claims.get("sub")),
        picture_url=str(claims.get("picture") or "").strip() or None,
    )
