"""Typed aggregation stages and their translation to raw pipeline documents."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional, Union

if TYPE_CHECKING:
    from .record import Record


@dataclass(frozen=True)
class Match:
    filter: Mapping[str, Any]


@dataclass(frozen=True)
class Lookup:
    """Join ``from_`` on ``local_field == foreign_field``; ``as_`` receives an array."""

    from_: str
    local_field: str
    foreign_field: str
    as_: str

    @classmethod
    def for_record(
        cls,
        record_type: type["Record"],
        local_field: str,
        foreign_field: str = "_id",
        as_: Optional[str] = None,
    ) -> "Lookup":
        name = record_type.collection_name()
        return cls(from_=name, local_field=local_field, foreign_field=foreign_field, as_=as_ or name)


@dataclass(frozen=True)
class Unwind:
    path: str
    preserve_null_and_empty_arrays: bool = False


@dataclass(frozen=True)
class Project:
    spec: Mapping[str, Any]


@dataclass(frozen=True)
class AddFields:
    spec: Mapping[str, Any]


@dataclass(frozen=True)
class Limit:
    count: int


@dataclass(frozen=True)
class Sort:
    spec: Mapping[str, Any]


PipelineStage = Union[Match, Lookup, Unwind, Project, AddFields, Limit, Sort]


def build_stage(stage: PipelineStage) -> dict[str, Any]:
    match stage:
        case Match(filter=filter_):
            return {"$match": dict(filter_)}
        case Lookup():
            return {
                "$lookup": {
                    "from": stage.from_,
                    "localField": stage.local_field,
                    "foreignField": stage.foreign_field,
                    "as": stage.as_,
                }
            }
        case Unwind(path=path, preserve_null_and_empty_arrays=preserve):
            unwind: dict[str, Any] = {"path": path}
            if preserve:
                unwind["preserveNullAndEmptyArrays"] = True
            return {"$unwind": unwind}
        case Project(spec=spec):
            return {"$project": dict(spec)}
        case AddFields(spec=spec):
            return {"$addFields": dict(spec)}
        case Limit(count=count):
            return {"$limit": count}
        case Sort(spec=spec):
            return {"$sort": dict(spec)}
        case _:
            raise TypeError(f"unsupported pipeline stage: {stage!r}")


def build_pipeline(stages: Iterable[PipelineStage]) -> list[dict[str, Any]]:
    """Translate ``stages`` one by one, preserving order and length."""

    return [build_stage(stage) for stage in stages]
