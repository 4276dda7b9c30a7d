"""Base model for documents persisted through ``Repository``."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, ClassVar, List, Mapping, Optional, Sequence
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .options import IndexDescriptor
from .updates import utc_now

_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z\d])([A-Z])")


def snake_case(name: str) -> str:
    name = _ACRONYM_BOUNDARY.sub(r"\1_\2", name)
    return _WORD_BOUNDARY.sub(r"\1_\2", name).lower()


def collection_name_for(record_type: type) -> str:
    """``User`` -> ``users``, ``PopulatedPost`` -> ``populated_posts``, ``UserPosts`` -> ``user_posts``."""

    name = snake_case(record_type.__name__)
    if not name.endswith("s"):
        name += "s"
    return name


def new_id() -> str:
    return uuid4().hex


class Record(BaseModel):
    """A document with a string ``_id`` and creation / modification timestamps.

    Subclasses may set ``__collection__`` to pick the collection name and
    ``__indexes__`` to declare the indexes ``Repository.migrate`` creates.
    """

    model_config = ConfigDict(populate_by_name=True)

    __collection__: ClassVar[Optional[str]] = None
    __indexes__: ClassVar[Sequence[IndexDescriptor]] = ()

    id: str = Field(default_factory=new_id, alias="_id")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode="before")
    @classmethod
    def _stamp_timestamps(cls, data: Any) -> Any:
        # A new record is created and last modified at the same instant.
        if isinstance(data, dict) and ("created_at" not in data or "updated_at" not in data):
            data = dict(data)
            data.setdefault("created_at", utc_now())
            data.setdefault("updated_at", data["created_at"])
        return data

    @classmethod
    def collection_name(cls) -> str:
        return cls.__collection__ or collection_name_for(cls)

    @classmethod
    def index_descriptors(cls) -> List[IndexDescriptor]:
        return list(cls.__indexes__)

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "Record":
        return cls.model_validate(doc)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
