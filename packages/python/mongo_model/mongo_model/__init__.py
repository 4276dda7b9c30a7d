"""Typed MongoDB records with a generic async repository."""

from .errors import (
    AggregateError,
    BulkDeleteError,
    BulkInsertError,
    BulkUpdateError,
    CountError,
    CreateIndexError,
    CreateViewError,
    DeleteError,
    ErrorKind,
    InsertError,
    ListError,
    ModelError,
    NotFoundError,
    ReadError,
    UpdateError,
    error_for,
)
from .options import (
    DEFAULT_LIST_LIMIT,
    DeleteResult,
    IndexDescriptor,
    InsertManyResult,
    ListOptions,
    UpdateManyResult,
)
from .pipeline import (
    AddFields,
    Limit,
    Lookup,
    Match,
    PipelineStage,
    Project,
    Sort,
    Unwind,
    build_pipeline,
    build_stage,
)
from .record import Record, collection_name_for, new_id
from .repository import Repository
from .updates import normalize_updates, utc_now

__all__ = [
    "Record",
    "Repository",
    "collection_name_for",
    "new_id",
    "ListOptions",
    "IndexDescriptor",
    "InsertManyResult",
    "UpdateManyResult",
    "DeleteResult",
    "DEFAULT_LIST_LIMIT",
    "Match",
    "Lookup",
    "Unwind",
    "Project",
    "AddFields",
    "Limit",
    "Sort",
    "PipelineStage",
    "build_pipeline",
    "build_stage",
    "normalize_updates",
    "utc_now",
    "ErrorKind",
    "ModelError",
    "NotFoundError",
    "ReadError",
    "InsertError",
    "BulkInsertError",
    "ListError",
    "UpdateError",
    "BulkUpdateError",
    "DeleteError",
    "BulkDeleteError",
    "CountError",
    "AggregateError",
    "CreateIndexError",
    "CreateViewError",
    "error_for",
]
