"""Query bounds, index declarations and write-result models."""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, Field, field_validator
from pymongo import IndexModel

DEFAULT_LIST_LIMIT = 1000

SortSpec = Union[Mapping[str, int], Sequence[Tuple[str, int]]]


def _as_pairs(spec: Any) -> List[Tuple[str, Any]]:
    if isinstance(spec, Mapping):
        return list(spec.items())
    return [tuple(pair) for pair in spec]


class ListOptions(BaseModel):
    """Bounds for ``Repository.list``.

    An unset ``limit`` means ``DEFAULT_LIST_LIMIT``, never "everything".
    """

    limit: Optional[int] = Field(default=None, gt=0)
    skip: Optional[int] = Field(default=None, ge=0)
    sort: Optional[List[Tuple[str, int]]] = None

    @field_validator("sort", mode="before")
    @classmethod
    def _sort_pairs(cls, value: Optional[SortSpec]) -> Any:
        if value is None:
            return None
        return _as_pairs(value)

    @property
    def effective_limit(self) -> int:
        return self.limit if self.limit is not None else DEFAULT_LIST_LIMIT

    def find_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"limit": self.effective_limit}
        if self.skip:
            kwargs["skip"] = self.skip
        if self.sort:
            kwargs["sort"] = list(self.sort)
        return kwargs


class IndexDescriptor(BaseModel):
    """Declarative index: ordered keys plus unique / sparse / TTL options."""

    keys: List[Tuple[str, Union[int, str]]]
    unique: bool = False
    sparse: bool = False
    expire_after_seconds: Optional[int] = Field(default=None, ge=0)
    name: Optional[str] = None

    @field_validator("keys", mode="before")
    @classmethod
    def _key_pairs(cls, value: SortSpec) -> Any:
        pairs = _as_pairs(value)
        if not pairs:
            raise ValueError("an index needs at least one key")
        return pairs

    def to_index_model(self) -> IndexModel:
        options: dict[str, Any] = {}
        if self.unique:
            options["unique"] = True
        if self.sparse:
            options["sparse"] = True
        if self.expire_after_seconds is not None:
            options["expireAfterSeconds"] = self.expire_after_seconds
        if self.name:
            options["name"] = self.name
        return IndexModel(list(self.keys), **options)


class InsertManyResult(BaseModel):
    inserted_ids: List[Any] = Field(default_factory=list)


class UpdateManyResult(BaseModel):
    matched_count: int = 0
    modified_count: int = 0


class DeleteResult(BaseModel):
    deleted_count: int = 0
