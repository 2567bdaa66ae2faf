"""
Image host client (Cloudinary upload API over plain HTTPS).

Only two calls are used: a signed upload that returns the public URL, and a
signed destroy by public id.
"""

from __future__ import annotations

import hashlib
import logging
import time
from typing import Any, Dict, Optional

import requests

from board.errors import ConfigurationError, UpstreamFailure
from board.storage.config import StorageConfig

logger = logging.getLogger(__name__)

_API_BASE = "https://api.cloudinary.com/v1_1"

# Articles are displayed as 1500x1100 cards.
ARTICLE_TRANSFORMATION = "c_fill,f_auto,h_1100,q_auto,w_1500"


def _sign(params: Dict[str, Any], api_secret: str) -> str:
    to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params) if params[k] not in (None, ""))
    return hashlib.sha1((to_sign + api_secret).encode("utf-8")).hexdigest()


def _require(cfg: StorageConfig) -> None:
    if not cfg.images_enabled:
        raise ConfigurationError("Image host not configured")


def upload(cfg: StorageConfig, data: str, *, folder: Optional[str] = None) -> str:
    """
    Upload an image (data URL or remote URL) and return its https URL.
    """
    _require(cfg)
    params: Dict[str, Any] = {
        "folder": folder or cfg.cloudinary_folder,
        "timestamp": int(time.time()),
        "transformation": ARTICLE_TRANSFORMATION,
    }
    form = dict(params)
    form["signature"] = _sign(params, cfg.cloudinary_api_secret or "")
    form["api_key"] = cfg.cloudinary_api_key
    form["file"] = data

    url = f"{_API_BASE}/{cfg.cloudinary_cloud_name}/image/upload"
    try:
        r = requests.post(url, data=form, timeout=30)
    except requests.RequestException as e:
        logger.warning("Image upload request failed: %s", str(e))
        raise UpstreamFailure("Failed to upload image", status_code=500) from e
    if r.status_code >= 400:
        logger.warning("Image upload rejected (status=%s)", r.status_code)
        raise UpstreamFailure("Failed to upload image", status_code=500)
    try:
        body = r.json()
    except ValueError as e:
        raise UpstreamFailure("Image host returned an invalid response", status_code=500) from e
    secure_url = body.get("secure_url") if isinstance(body, dict) else None
    if not secure_url:
        raise UpstreamFailure("Image host returned an invalid response", status_code=500)
    logger.info("Uploaded image %s", body.get("public_id"))
    return str(secure_url)


def destroy(cfg: StorageConfig, public_id: str) -> bool:
    _require(cfg)
    params: Dict[str, Any] = {"public_id": public_id, "timestamp": int(time.time())}
    form = dict(params)
    form["signature"] = _sign(params, cfg.cloudinary_api_secret or "")
    form["api_key"] = cfg.cloudinary_api_key

    url = f"{_API_BASE}/{cfg.cloudinary_cloud_name}/image/destroy"
    r = requests.post(url, data=form, timeout=15)
    r.raise_for_status()
    return (r.json() or {}).get("result") == "ok"


def public_id_from_url(url: Optional[str]) -> Optional[str]:
    """`.../upload/v123/proto-articles/abc.jpg` -> `proto-articles/abc`."""
    if not url or "cloudinary.com" not in url:
        return None
    tail = "/".join(url.rstrip("/").split("/")[-2:])
    return tail.split(".")[0] or None


def delete_hosted_image(cfg: StorageConfig, url: Optional[str]) -> None:
    """Delete a previously uploaded image. Failures are logged, never raised."""
    public_id = public_id_from_url(url)
    if not public_id or not cfg.images_enabled:
        return
    try:
        destroy(cfg, public_id)
    except (requests.RequestException, ValueError) as e:
        logger.warning("Failed to delete hosted image %s: %s", public_id, str(e))
