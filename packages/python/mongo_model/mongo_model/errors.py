"""Domain-level errors raised by repositories.

Every repository operation converts driver and decoding failures into exactly
one of these, naming the record collection involved. The driver exception is
kept as ``__cause__`` for debugging but never raised to callers.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    READ_FAILED = "read_failed"
    INSERT_FAILED = "insert_failed"
    BULK_INSERT_FAILED = "bulk_insert_failed"
    LIST_FAILED = "list_failed"
    UPDATE_FAILED = "update_failed"
    BULK_UPDATE_FAILED = "bulk_update_failed"
    DELETE_FAILED = "delete_failed"
    BULK_DELETE_FAILED = "bulk_delete_failed"
    COUNT_FAILED = "count_failed"
    AGGREGATE_FAILED = "aggregate_failed"
    CREATE_INDEX_FAILED = "create_index_failed"
    CREATE_VIEW_FAILED = "create_view_failed"


class ModelError(Exception):
    """Base class for repository failures."""

    kind: ErrorKind
    action: str = "operation failed for"

    def __init__(self, record_name: str, detail: Optional[str] = None) -> None:
        self.record_name = record_name
        self.detail = detail
        message = f"{self.action} {record_name}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "record_name": self.record_name,
            "message": str(self),
        }


class NotFoundError(ModelError):
    """Raised when a single-document read or update matches nothing."""

    kind = ErrorKind.NOT_FOUND
    action = "no document found in"


class ReadError(ModelError):
    kind = ErrorKind.READ_FAILED
    action = "error reading document from"


class InsertError(ModelError):
    kind = ErrorKind.INSERT_FAILED
    action = "error inserting document into"


class BulkInsertError(ModelError):
    kind = ErrorKind.BULK_INSERT_FAILED
    action = "error bulk inserting documents into"


class ListError(ModelError):
    kind = ErrorKind.LIST_FAILED
    action = "error listing documents in"


class UpdateError(ModelError):
    kind = ErrorKind.UPDATE_FAILED
    action = "error updating document in"


class BulkUpdateError(ModelError):
    kind = ErrorKind.BULK_UPDATE_FAILED
    action = "error updating documents in"


class DeleteError(ModelError):
    kind = ErrorKind.DELETE_FAILED
    action = "error deleting document from"


class BulkDeleteError(ModelError):
    kind = ErrorKind.BULK_DELETE_FAILED
    action = "error bulk deleting documents from"


class CountError(ModelError):
    kind = ErrorKind.COUNT_FAILED
    action = "error counting documents in"


class AggregateError(ModelError):
    kind = ErrorKind.AGGREGATE_FAILED
    action = "error aggregating documents in"


class CreateIndexError(ModelError):
    kind = ErrorKind.CREATE_INDEX_FAILED
    action = "error creating indexes on"


class CreateViewError(ModelError):
    kind = ErrorKind.CREATE_VIEW_FAILED
    action = "error creating view"


ERRORS_BY_KIND: dict[ErrorKind, type[ModelError]] = {
    cls.kind: cls
    for cls in (
        NotFoundError,
        ReadError,
        InsertError,
        BulkInsertError,
        ListError,
        UpdateError,
        BulkUpdateError,
        DeleteError,
        BulkDeleteError,
        CountError,
        AggregateError,
        CreateIndexError,
        CreateViewError,
    )
}

# Adding an ErrorKind without its exception class fails at import time.
_missing = set(ErrorKind) - set(ERRORS_BY_KIND)
if _missing:
    raise RuntimeError(f"ErrorKind values without an error class: {sorted(k.value for k in _missing)}")


def error_for(kind: ErrorKind, record_name: str, detail: Optional[str] = None) -> ModelError:
    """Build the error instance for ``kind``."""

    return ERRORS_BY_KIND[ErrorKind(kind)](record_name, detail)
