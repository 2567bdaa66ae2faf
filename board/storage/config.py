from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


@dataclass(frozen=True)
class StorageConfig:
    # Document database
    mongodb_uri: Optional[str]
    mongodb_db: str
    mongodb_timeout_ms: int

    # Image host (Cloudinary)
    cloudinary_cloud_name: Optional[str]
    cloudinary_api_key: Optional[str]
    cloudinary_api_secret: Optional[str]
    cloudinary_folder: str

    # Fallback for the `bull_logo_url` app config entry
    bull_logo_url: Optional[str]

    @property
    def images_enabled(self) -> bool:
        return bool(self.cloudinary_cloud_name and self.cloudinary_api_key and self.cloudinary_api_secret)


@lru_cache(maxsize=1)
def load_storage_config() -> StorageConfig:
    timeout_raw = (os.getenv("MONGODB_TIMEOUT_MS") or "").strip() or "5000"
    try:
        timeout_ms = int(timeout_raw)
    except Exception:
        timeout_ms = 5000

    return StorageConfig(
        mongodb_uri=(os.getenv("MONGODB_URI") or "").strip() or None,
        mongodb_db=(os.getenv("MONGODB_DB") or "").strip() or "campuzway_main",
        mongodb_timeout_ms=max(500, timeout_ms),
        cloudinary_cloud_name=(os.getenv("CLOUDINARY_CLOUD_NAME") or "").strip() or None,
        cloudinary_api_key=(os.getenv("CLOUDINARY_API_KEY") or "").strip() or None,
        cloudinary_api_secret=(os.getenv("CLOUDINARY_API_SECRET") or "").strip() or None,
        cloudinary_folder=(os.getenv("CLOUDINARY_FOLDER") or "").strip() or "proto-articles",
        bull_logo_url=(os.getenv("BULL_LOGO_URL") or "").strip() or None,
    )
