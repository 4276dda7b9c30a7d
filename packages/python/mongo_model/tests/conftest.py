"""
Pytest configuration and shared fixtures.

Unit tests run against a MagicMock stand-in for the Motor collection; the
integration suite (``-m integration``) needs ``MONGO_TEST_URI`` pointing at a
disposable MongoDB database.
"""

from __future__ import annotations

import os
from typing import Any, Iterable, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from db_core import Connection, MongoConnection


class FakeCursor:
    """Async-iterable cursor yielding ``docs`` then optionally raising ``error``."""

    def __init__(self, docs: Iterable[dict[str, Any]], error: Optional[Exception] = None):
        self.docs = list(docs)
        self.error = error

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for doc in self.docs:
            yield doc
        if self.error is not None:
            raise self.error


@pytest.fixture
def cursor_factory():
    return FakeCursor


@pytest.fixture
def collection():
    coll = MagicMock(name="collection")
    coll.insert_one = AsyncMock()
    coll.insert_many = AsyncMock()
    coll.find_one = AsyncMock(return_value=None)
    coll.find = MagicMock(return_value=FakeCursor([]))
    coll.find_one_and_update = AsyncMock(return_value=None)
    coll.update_many = AsyncMock()
    coll.delete_one = AsyncMock()
    coll.delete_many = AsyncMock()
    coll.count_documents = AsyncMock(return_value=0)
    coll.aggregate = MagicMock(return_value=FakeCursor([]))
    coll.create_indexes = AsyncMock(return_value=[])
    return coll


@pytest.fixture
def database(collection):
    db = MagicMock(name="database")
    db.__getitem__.return_value = collection
    db.create_collection = AsyncMock()
    return db


@pytest.fixture
def connection(database):
    conn = MagicMock(spec=MongoConnection)
    conn.acquire = AsyncMock(return_value=Connection(client=MagicMock(name="client"), database=database))
    return conn


@pytest.fixture
def mongo_test_uri() -> str:
    uri = os.getenv("MONGO_TEST_URI")
    if not uri:
        pytest.skip("MONGO_TEST_URI not set")
    return uri
