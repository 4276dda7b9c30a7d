"""Type aliases for the raw documents exchanged with the driver."""

from typing import Any, List, Mapping, MutableMapping, Protocol


class DocumentLike(Protocol):
    """Anything readable like a decoded BSON document."""

    def get(self, key: str, default: Any = None) -> Any:  # pragma: no cover - structural typing only
        ...


MongoDocument = Mapping[str, Any]
# Filter / update / stage documents as handed to the driver.
RawDocument = MutableMapping[str, Any]
Filter = Mapping[str, Any]
Pipeline = List[RawDocument]
