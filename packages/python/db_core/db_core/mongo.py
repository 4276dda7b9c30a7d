"""Async MongoDB connection handle built on top of Motor.

Only generic utilities live here; domain repositories receive a
``MongoConnection`` (or fall back to the process-wide default) and build their
own collections, queries and error mapping on top.

Example usage:

    from db_core import get_db

    async def list_adults():
        db = await get_db()
        cursor = db["users"].find({"age": {"$gte": 18}}).sort("age", 1)
        return await cursor.to_list(length=100)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Optional

from loguru import logger
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from .settings import MongoSettings


def _current_settings() -> MongoSettings:
    """Return ``db_core.settings`` as it is now, including a replacement assigned at startup."""

    import db_core

    return db_core.settings


@dataclass(frozen=True)
class Connection:
    """The client/database pair shared by every repository."""

    client: AsyncIOMotorClient
    database: AsyncIOMotorDatabase


class MongoConnection:
    """Lazily-initialized, process-lifetime MongoDB handle.

    The first ``acquire`` builds the client and resolves the default database;
    concurrent first callers wait on the same lock and all receive the same
    ``Connection``. Failing to initialize is fatal: without a connection no
    repository operation can succeed, so the process exits instead of handing
    out a broken handle. There is no teardown; the pool lives as long as the
    process.
    """

    def __init__(self, settings: Optional[MongoSettings] = None) -> None:
        self._settings = settings
        self._connection: Optional[Connection] = None
        self._lock = asyncio.Lock()

    @property
    def settings(self) -> MongoSettings:
        return self._settings if self._settings is not None else _current_settings()

    @property
    def initialized(self) -> bool:
        return self._connection is not None

    async def acquire(self) -> Connection:
        """Return the shared connection, creating it on first use."""

        if self._connection is not None:
            return self._connection
        async with self._lock:
            if self._connection is None:
                self._connection = await self._connect()
        return self._connection

    async def _connect(self) -> Connection:
        uri = self.settings.redacted_uri()
        try:
            client = AsyncIOMotorClient(self.settings.uri, **self.settings.client_options())
            # Raises ConfigurationError when neither the URI nor settings name a database.
            database = client.get_default_database(default=self.settings.db_name)
            if self.settings.ping_on_connect:
                await database.command("ping")
        except (PyMongoError, ValueError, TypeError) as exc:
            logger.critical(
                "Failed to initialize MongoDB connection to {uri}: {error}",
                uri=uri,
                error=exc,
            )
            raise SystemExit(1) from exc

        logger.info(
            "Connected to MongoDB {uri} database={database}",
            uri=uri,
            database=database.name,
        )
        return Connection(client=client, database=database)

    async def ping(self) -> dict[str, Any]:
        """Run a simple ``ping`` command against the configured MongoDB server."""

        connection = await self.acquire()
        await connection.database.command("ping")
        return {"ok": True}


_default_connection: Optional[MongoConnection] = None


def get_connection() -> MongoConnection:
    """Return the process-wide default handle configured via ``db_core.settings``."""

    global _default_connection
    if _default_connection is None:
        _default_connection = MongoConnection()
    return _default_connection


async def acquire() -> Connection:
    return await get_connection().acquire()


async def get_mongo_client() -> AsyncIOMotorClient:
    """Return the shared Motor client."""

    return (await acquire()).client


async def get_db() -> AsyncIOMotorDatabase:
    """Return the default application database of the shared client."""

    return (await acquire()).database


async def ping() -> dict[str, Any]:
    return await get_connection().ping()
