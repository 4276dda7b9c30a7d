"""Generic async repository bound to one record type.

``Repository(User)`` gives ``User`` the full CRUD, aggregation, index and view
surface against the ``users`` collection of the shared MongoDB connection:

    users = Repository(User)
    saved = await users.save(User(username="ada", age=36))
    older = await users.update({"_id": saved.id}, {"$inc": {"age": 1}})
    page = await users.list({"age": {"$gte": 18}}, ListOptions(sort={"age": 1}, limit=10))

Every driver failure is logged and re-raised as the matching ``ModelError``
subclass; nothing is retried.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import (
    Any,
    AsyncIterator,
    Generic,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    TypeVar,
    Union,
)

from bson.errors import BSONError
from db_core import (
    Connection,
    DocumentLike,
    Filter,
    MongoConnection,
    MongoDocument,
    Pipeline,
    RawDocument,
    get_connection,
)
from loguru import logger
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pydantic import BaseModel, TypeAdapter, ValidationError
from pymongo import ReturnDocument
from pymongo.errors import CollectionInvalid, OperationFailure, PyMongoError

from .errors import (
    AggregateError,
    BulkDeleteError,
    BulkInsertError,
    BulkUpdateError,
    CountError,
    CreateIndexError,
    CreateViewError,
    DeleteError,
    InsertError,
    ListError,
    ModelError,
    NotFoundError,
    ReadError,
    UpdateError,
)
from .options import DeleteResult, IndexDescriptor, InsertManyResult, ListOptions, UpdateManyResult
from .pipeline import PipelineStage, build_pipeline, build_stage
from .record import collection_name_for
from .updates import TIMESTAMP_FIELD, normalize_updates

R = TypeVar("R", bound=BaseModel)
T = TypeVar("T")

# Server error code for "collection / view already exists".
NAMESPACE_EXISTS = 48


class Repository(Generic[R]):
    """Persistence operations for ``record_type`` documents."""

    def __init__(
        self,
        record_type: type[R],
        connection: Optional[MongoConnection] = None,
        *,
        name: Optional[str] = None,
        timestamp_field: str = TIMESTAMP_FIELD,
    ) -> None:
        self.record_type = record_type
        self.connection = connection or get_connection()
        self.timestamp_field = timestamp_field
        if name is None:
            resolve = getattr(record_type, "collection_name", None)
            name = resolve() if callable(resolve) else collection_name_for(record_type)
        self.name = name

    def __repr__(self) -> str:
        return f"Repository({self.record_type.__name__}, name={self.name!r})"

    # ---------------------------------------------------------
    # Handles
    # ---------------------------------------------------------

    async def _acquire(self) -> Connection:
        return await self.connection.acquire()

    async def client(self) -> AsyncIOMotorClient:
        return (await self._acquire()).client

    async def database(self) -> AsyncIOMotorDatabase:
        return (await self._acquire()).database

    async def collection(self) -> AsyncIOMotorCollection:
        return (await self.database())[self.name]

    @asynccontextmanager
    async def _operation(self, error_type: type[ModelError], action: str) -> AsyncIterator[None]:
        """Time the wrapped driver calls and convert their failures to ``error_type``."""

        start = time.perf_counter()
        try:
            yield
        except (PyMongoError, BSONError) as exc:
            logger.error(
                "Error {action} {name}: {error}",
                action=action,
                name=self.name,
                error=exc,
            )
            raise error_type(self.name) from exc
        duration = (time.perf_counter() - start) * 1000
        logger.debug(
            "Finished {action} {name} in {duration:.2f} ms",
            action=action,
            name=self.name,
            duration=duration,
        )

    def _decode(self, doc: DocumentLike) -> R:
        return self.record_type.model_validate(doc)

    @staticmethod
    def _encode(record: BaseModel) -> RawDocument:
        return record.model_dump(by_alias=True)

    # ---------------------------------------------------------
    # CREATE
    # ---------------------------------------------------------

    async def save(self, record: R) -> R:
        """Insert ``record``; the returned copy is what was stored."""

        collection = await self.collection()
        async with self._operation(InsertError, "inserting document into"):
            await collection.insert_one(self._encode(record))
        return record.model_copy(deep=True)

    async def bulk_insert(self, records: Sequence[R]) -> InsertManyResult:
        collection = await self.collection()
        async with self._operation(BulkInsertError, "bulk inserting documents into"):
            result = await collection.insert_many([self._encode(record) for record in records])
        return InsertManyResult(inserted_ids=list(result.inserted_ids))

    # ---------------------------------------------------------
    # READ
    # ---------------------------------------------------------

    async def read(self, filter: Filter) -> R:
        """Return the first document matching ``filter`` or raise ``NotFoundError``."""

        collection = await self.collection()
        async with self._operation(ReadError, "reading document from"):
            doc = await collection.find_one(dict(filter))
        if doc is None:
            raise NotFoundError(self.name)
        try:
            return self._decode(doc)
        except ValidationError as exc:
            logger.error(
                "Error decoding {name} document {id}: {error}",
                name=self.name,
                id=doc.get("_id"),
                error=exc,
            )
            raise ReadError(self.name) from exc

    async def read_by_id(self, id: Any) -> R:
        return await self.read({"_id": id})

    async def list(
        self,
        filter: Optional[Filter] = None,
        options: Optional[ListOptions] = None,
    ) -> List[R]:
        """Return up to ``options.limit`` (default 1000) matching records.

        An empty result is not an error. Documents that no longer fit the
        record type are skipped with a warning rather than failing the page.
        """

        options = options or ListOptions()
        collection = await self.collection()
        async with self._operation(ListError, "listing documents in"):
            cursor = collection.find(dict(filter or {}), **options.find_kwargs())
            docs = [doc async for doc in cursor]

        records: List[R] = []
        for doc in docs:
            try:
                records.append(self._decode(doc))
            except ValidationError as exc:
                logger.warning(
                    "Skipping undecodable {name} document {id}: {error}",
                    name=self.name,
                    id=doc.get("_id"),
                    error=exc,
                )
        return records

    async def count(self, filter: Optional[Filter] = None) -> int:
        collection = await self.collection()
        async with self._operation(CountError, "counting documents in"):
            return await collection.count_documents(dict(filter or {}))

    # ---------------------------------------------------------
    # UPDATE
    # ---------------------------------------------------------

    async def update(self, filter: Filter, updates: Mapping[str, Any]) -> R:
        """Apply ``updates`` to one matching document and return it as stored afterwards."""

        collection = await self.collection()
        document = normalize_updates(updates, timestamp_field=self.timestamp_field)
        async with self._operation(UpdateError, "updating document in"):
            doc = await collection.find_one_and_update(
                dict(filter),
                document,
                return_document=ReturnDocument.AFTER,
            )
        if doc is None:
            raise NotFoundError(self.name)
        try:
            return self._decode(doc)
        except ValidationError as exc:
            logger.error(
                "Error decoding updated {name} document {id}: {error}",
                name=self.name,
                id=doc.get("_id"),
                error=exc,
            )
            raise UpdateError(self.name) from exc

    async def bulk_update(self, filter: Filter, updates: Mapping[str, Any]) -> UpdateManyResult:
        collection = await self.collection()
        document = normalize_updates(updates, timestamp_field=self.timestamp_field)
        async with self._operation(BulkUpdateError, "updating documents in"):
            result = await collection.update_many(dict(filter), document)
        return UpdateManyResult(
            matched_count=result.matched_count,
            modified_count=result.modified_count,
        )

    # ---------------------------------------------------------
    # DELETE
    # ---------------------------------------------------------

    async def delete(self, filter: Filter) -> DeleteResult:
        """Remove at most one matching document; matching nothing still succeeds."""

        collection = await self.collection()
        async with self._operation(DeleteError, "deleting document from"):
            result = await collection.delete_one(dict(filter))
        return DeleteResult(deleted_count=result.deleted_count)

    async def bulk_delete(self, filter: Filter) -> DeleteResult:
        collection = await self.collection()
        async with self._operation(BulkDeleteError, "bulk deleting documents from"):
            result = await collection.delete_many(dict(filter))
        return DeleteResult(deleted_count=result.deleted_count)

    # ---------------------------------------------------------
    # AGGREGATE
    # ---------------------------------------------------------

    async def aggregate(
        self,
        stages: Iterable[PipelineStage],
        output: Any = dict,
    ) -> List[Any]:
        """Run typed ``stages`` and decode every result as ``output``."""

        return await self.aggregate_raw(build_pipeline(stages), output)

    async def aggregate_raw(
        self,
        pipeline: Sequence[MongoDocument],
        output: Any = dict,
    ) -> List[Any]:
        """Run a raw pipeline; one undecodable result fails the whole call."""

        collection = await self.collection()
        async with self._operation(AggregateError, "aggregating documents in"):
            raw: Pipeline = [dict(stage) for stage in pipeline]
            cursor = collection.aggregate(raw)
            docs = [doc async for doc in cursor]

        adapter = TypeAdapter(output)
        output_name = getattr(output, "__name__", repr(output))
        results: List[Any] = []
        for index, doc in enumerate(docs):
            try:
                results.append(adapter.validate_python(doc))
            except ValidationError as exc:
                logger.error(
                    "Error converting {name} aggregation result {index} to {output}: {error}",
                    name=self.name,
                    index=index,
                    output=output_name,
                    error=exc,
                )
                raise AggregateError(
                    self.name, detail=f"result {index} is not a valid {output_name}"
                ) from exc
        return results

    # ---------------------------------------------------------
    # INDEXES / VIEWS
    # ---------------------------------------------------------

    def _declared_indexes(self) -> List[IndexDescriptor]:
        declared = getattr(self.record_type, "index_descriptors", None)
        return list(declared()) if callable(declared) else []

    async def create_indexes(
        self, descriptors: Optional[Sequence[IndexDescriptor]] = None
    ) -> List[str]:
        """Create ``descriptors`` (default: the record type's declared indexes).

        Re-declaring an identical index is a no-op on the server; a conflicting
        definition raises ``CreateIndexError``.
        """

        if descriptors is None:
            descriptors = self._declared_indexes()
        if not descriptors:
            return []
        collection = await self.collection()
        async with self._operation(CreateIndexError, "creating indexes on"):
            names = await collection.create_indexes(
                [descriptor.to_index_model() for descriptor in descriptors]
            )
        logger.debug("Indexes {names} ensured on {name}", names=names, name=self.name)
        return list(names)

    async def migrate(self) -> List[str]:
        """Apply declared indexes at startup; failures are logged, not raised."""

        try:
            return await self.create_indexes()
        except CreateIndexError:
            return []

    async def create_view(
        self,
        source: str,
        pipeline: Sequence[Union[PipelineStage, MongoDocument]],
    ) -> bool:
        """Create this repository's collection as a read-only view on ``source``.

        Returns False when a collection or view with this name already exists;
        its definition is not compared.
        """

        raw: Pipeline = [
            dict(stage) if isinstance(stage, Mapping) else build_stage(stage) for stage in pipeline
        ]
        database = await self.database()
        async with self._operation(CreateViewError, "creating view"):
            try:
                await database.create_collection(self.name, viewOn=source, pipeline=raw)
            except CollectionInvalid:
                exists = True
            except OperationFailure as exc:
                if exc.code != NAMESPACE_EXISTS:
                    raise
                exists = True
            else:
                exists = False

        if exists:
            logger.info("View {name} already exists, definition left unchanged", name=self.name)
            return False
        logger.info("Created view {name} on {source}", name=self.name, source=source)
        return True
