"""Process-wide MongoDB handle: created lazily, pinged before reuse, rebuilt on failure."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from board.errors import ConfigurationError, UpstreamFailure
from board.storage.config import load_storage_config

logger = logging.getLogger(__name__)

_client: Optional[MongoClient] = None
_lock = threading.Lock()


def _connect() -> MongoClient:
    cfg = load_storage_config()
    if not cfg.mongodb_uri:
        raise ConfigurationError("MONGODB_URI environment variable is not set")

    client: MongoClient = MongoClient(
        cfg.mongodb_uri,
        serverSelectionTimeoutMS=cfg.mongodb_timeout_ms,
        connectTimeoutMS=cfg.mongodb_timeout_ms * 2,
    )
    try:
        client.admin.command("ping")
    except PyMongoError as e:
        client.close()
        logger.warning("MongoDB connection failed: %s", str(e))
        raise UpstreamFailure("Database unavailable") from e
    logger.info("MongoDB connected (db=%s)", cfg.mongodb_db)
    return client


def get_database() -> Database:
    """
    Return the application database, reconnecting if the cached client is unhealthy.

    The lock only guards swapping the cached client. Pings and connects run
    outside it, so concurrent requests never wait on each other's round trip.
    """
    global _client
    with _lock:
        client = _client

    if client is not None:
        try:
            client.admin.command("ping")
        except PyMongoError as e:
            logger.warning("MongoDB ping failed, reconnecting: %s", str(e))
            with _lock:
                if _client is client:
                    _client = None
            client.close()
            client = None

    if client is None:
        fresh: Optional[MongoClient] = _connect()
        with _lock:
            if _client is None:
                _client, fresh = fresh, None
            client = _client
        if fresh is not None:
            # Another request reconnected first.
            fresh.close()

    return client[load_storage_config().mongodb_db]


def close() -> None:
    global _client
    with _lock:
        if _client is not None:
            _client.close()
            _client = None
