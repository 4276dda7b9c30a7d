"""MongoConnection lifecycle against a patched Motor client factory."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo.errors import ConfigurationError, ServerSelectionTimeoutError

import db_core
import db_core.mongo as mongo
from db_core import Connection, MongoConnection, MongoSettings


def _fake_client(database_name="app", command=None):
    database = MagicMock(name="database")
    database.name = database_name
    database.command = command or AsyncMock(return_value={"ok": 1.0})
    client = MagicMock(name="client")
    client.get_default_database.return_value = database
    return client


@pytest.fixture()
def client_factory(monkeypatch):
    client = _fake_client()
    factory = MagicMock(return_value=client)
    monkeypatch.setattr(mongo, "AsyncIOMotorClient", factory)
    return factory


def _settings(**overrides):
    values = dict(
        uri="mongodb://localhost:27017/app",
        db_name=None,
        app_name="tests",
        max_pool_size=None,
        connect_timeout_ms=None,
        server_selection_timeout_ms=None,
        ping_on_connect=False,
    )
    values.update(overrides)
    return MongoSettings(**values)


@pytest.mark.asyncio
async def test_acquire_builds_client_from_settings(client_factory):
    handle = MongoConnection(_settings(db_name="fallback", max_pool_size=10))

    connection = await handle.acquire()

    assert isinstance(connection, Connection)
    assert handle.initialized
    client_factory.assert_called_once_with(
        "mongodb://localhost:27017/app", tz_aware=True, appname="tests", maxPoolSize=10
    )
    connection.client.get_default_database.assert_called_once_with(default="fallback")
    connection.database.command.assert_not_called()


@pytest.mark.asyncio
async def test_concurrent_first_acquire_initializes_once(monkeypatch):
    async def slow_ping(*args, **kwargs):
        await asyncio.sleep(0.01)
        return {"ok": 1.0}

    client = _fake_client(command=AsyncMock(side_effect=slow_ping))
    factory = MagicMock(return_value=client)
    monkeypatch.setattr(mongo, "AsyncIOMotorClient", factory)
    handle = MongoConnection(_settings(ping_on_connect=True))

    results = await asyncio.gather(*(handle.acquire() for _ in range(25)))

    factory.assert_called_once()
    assert all(result is results[0] for result in results)
    client.get_default_database.return_value.command.assert_awaited_once_with("ping")


@pytest.mark.asyncio
async def test_later_acquire_reuses_connection(client_factory):
    handle = MongoConnection(_settings())

    first = await handle.acquire()
    second = await handle.acquire()

    assert first is second
    client_factory.assert_called_once()


@pytest.mark.asyncio
async def test_missing_database_name_exits(monkeypatch):
    client = _fake_client()
    client.get_default_database.side_effect = ConfigurationError("No default database name defined")
    monkeypatch.setattr(mongo, "AsyncIOMotorClient", MagicMock(return_value=client))
    handle = MongoConnection(_settings(uri="mongodb://localhost:27017"))

    with pytest.raises(SystemExit) as excinfo:
        await handle.acquire()

    assert excinfo.value.code == 1
    assert not handle.initialized


@pytest.mark.asyncio
async def test_invalid_uri_exits(monkeypatch):
    factory = MagicMock(side_effect=ConfigurationError("bad uri"))
    monkeypatch.setattr(mongo, "AsyncIOMotorClient", factory)

    with pytest.raises(SystemExit):
        await MongoConnection(_settings(uri="not-a-uri")).acquire()


@pytest.mark.asyncio
async def test_unreachable_server_exits_when_pinging(monkeypatch):
    command = AsyncMock(side_effect=ServerSelectionTimeoutError("no servers"))
    monkeypatch.setattr(mongo, "AsyncIOMotorClient", MagicMock(return_value=_fake_client(command=command)))

    with pytest.raises(SystemExit):
        await MongoConnection(_settings(ping_on_connect=True)).acquire()


@pytest.mark.asyncio
async def test_ping(client_factory):
    handle = MongoConnection(_settings())

    assert await handle.ping() == {"ok": True}
    client_factory.return_value.get_default_database.return_value.command.assert_awaited_once_with("ping")


@pytest.mark.asyncio
async def test_module_helpers_share_default_handle(monkeypatch, client_factory):
    monkeypatch.setattr(mongo, "_default_connection", MongoConnection(_settings()))

    client = await mongo.get_mongo_client()
    db = await mongo.get_db()

    assert mongo.get_connection() is mongo.get_connection()
    assert client is client_factory.return_value
    assert db is client.get_default_database.return_value
    client_factory.assert_called_once()


@pytest.mark.asyncio
async def test_replaced_default_settings_are_used(monkeypatch, client_factory):
    custom = _settings(uri="mongodb://override:27017/custom")
    monkeypatch.setattr(mongo, "_default_connection", None)
    handle = mongo.get_connection()
    monkeypatch.setattr(db_core, "settings", custom)

    await handle.acquire()

    assert handle.settings is custom
    assert mongo.get_connection() is handle
    client_factory.assert_called_once_with("mongodb://override:27017/custom", tz_aware=True, appname="tests")


def test_explicit_settings_ignore_replaced_default(monkeypatch):
    explicit = _settings()
    monkeypatch.setattr(db_core, "settings", MongoSettings(uri="mongodb://other:27017/x"))

    assert MongoConnection(explicit).settings is explicit
