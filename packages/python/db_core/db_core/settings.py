"""Configuration helpers for the MongoDB connection used by db_core.

Applications can create a new ``MongoSettings`` instance at startup and hand
it to ``MongoConnection`` (or assign it to ``db_core.settings`` before the
first ``acquire``) to override the defaults. If not overridden, the values
below are read from the environment, then from the nearest ``.env``.
"""
from __future__ import annotations

import os
from typing import Any, Optional
from urllib.parse import urlsplit, urlunsplit

from dotenv import find_dotenv, load_dotenv
from loguru import logger
from pydantic import BaseModel, Field

load_dotenv(find_dotenv(usecwd=True))

LOCAL_URI = (
    "mongodb://localhost:27017/mongo-model-local?connectTimeoutMS=10000&maxPoolSize=500"
)


def _optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return int(raw)


class MongoSettings(BaseModel):
    """Connection string plus the pool and timeout bounds applied to every operation."""

    uri: str = Field(default_factory=lambda: os.getenv("MONGO_URI", LOCAL_URI))
    # Only used when the URI does not name a database.
    db_name: Optional[str] = Field(default_factory=lambda: os.getenv("MONGO_DB_NAME") or None)
    max_pool_size: Optional[int] = Field(
        default_factory=lambda: _optional_int("MONGO_MAX_POOL_SIZE")
    )
    connect_timeout_ms: Optional[int] = Field(
        default_factory=lambda: _optional_int("MONGO_CONNECT_TIMEOUT_MS")
    )
    server_selection_timeout_ms: Optional[int] = Field(
        default_factory=lambda: _optional_int("MONGO_SERVER_SELECTION_TIMEOUT_MS")
    )
    app_name: str = Field(default_factory=lambda: os.getenv("MONGO_APP_NAME", "mongo-model"))
    # Verify the server answers during initialization instead of on first query.
    ping_on_connect: bool = Field(
        default_factory=lambda: os.getenv("MONGO_PING_ON_CONNECT", "").lower() in {"1", "true", "yes"}
    )

    def client_options(self) -> dict[str, Any]:
        """Keyword arguments for the Motor client; unset overrides defer to the URI."""

        options: dict[str, Any] = {"tz_aware": True, "appname": self.app_name}
        if self.max_pool_size is not None:
            options["maxPoolSize"] = self.max_pool_size
        if self.connect_timeout_ms is not None:
            options["connectTimeoutMS"] = self.connect_timeout_ms
        if self.server_selection_timeout_ms is not None:
            options["serverSelectionTimeoutMS"] = self.server_selection_timeout_ms
        return options

    def redacted_uri(self) -> str:
        """Return the URI with the password hidden, safe for logging."""

        parts = urlsplit(self.uri)
        if "@" not in parts.netloc:
            return self.uri
        credentials, host = parts.netloc.rsplit("@", 1)
        if ":" in credentials:
            username = credentials.split(":", 1)[0]
            credentials = f"{username}:***"
        return urlunsplit(parts._replace(netloc=f"{credentials}@{host}"))


def _default_settings() -> "MongoSettings":
    """Build the process default from the environment."""

    return MongoSettings()


settings: MongoSettings = _default_settings()
logger.debug(
    "MongoSettings initialized with uri={uri} db_name={db_name}",
    uri=settings.redacted_uri(),
    db_name=settings.db_name,
)
