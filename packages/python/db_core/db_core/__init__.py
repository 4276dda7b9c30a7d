"""Connection handle, settings and logging setup shared by Mongo-backed code.

Repositories take a ``MongoConnection``; scripts can use the default one:

    from db_core import configure_logging, get_db

    configure_logging()
    db = await get_db()
    await db["users"].count_documents({})
"""

from .settings import MongoSettings, settings
from .log_config import configure_logging
from .mongo import (
    Connection,
    MongoConnection,
    acquire,
    get_connection,
    get_db,
    get_mongo_client,
    ping,
)
from .typing import DocumentLike, Filter, MongoDocument, Pipeline, RawDocument

__all__ = [
    "MongoSettings",
    "settings",
    "configure_logging",
    "Connection",
    "MongoConnection",
    "acquire",
    "get_connection",
    "get_mongo_client",
    "get_db",
    "ping",
    "DocumentLike",
    "Filter",
    "MongoDocument",
    "Pipeline",
    "RawDocument",
]
