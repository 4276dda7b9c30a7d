"""Update-document normalization.

Callers describe an update as one flat mapping that mixes plain field
assignments with operator keys::

    {"username": "new", "address.city": "Paris", "$inc": {"age": 1}}

``normalize_updates`` turns that into the shape ``update_one`` and friends
expect and always stamps the modification time::

    {"$set": {"username": "new", "address.city": "Paris", "updated_at": <now>},
     "$inc": {"age": 1}}
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Mapping, Optional

SET_OPERATOR = "$set"
OPERATOR_PREFIX = "$"
TIMESTAMP_FIELD = "updated_at"


def utc_now() -> datetime:
    """Current UTC time at millisecond precision, the resolution BSON dates keep."""

    now = datetime.now(UTC)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def normalize_updates(
    updates: Mapping[str, Any],
    *,
    now: Optional[datetime] = None,
    timestamp_field: str = TIMESTAMP_FIELD,
) -> dict[str, Any]:
    """Split ``updates`` into a ``$set`` bucket plus one bucket per operator.

    A caller-supplied ``$set`` key is ignored: the bucket is rebuilt here so the
    timestamp cannot be overridden. Keys that only look odd (``""``, ``"a..b"``)
    are passed through as field names; the server decides whether they are valid.
    """

    set_updates: dict[str, Any] = {}
    operator_updates: dict[str, Any] = {}
    for key, value in updates.items():
        if key == SET_OPERATOR:
            continue
        if key.startswith(OPERATOR_PREFIX):
            # $inc / $push / $pull / $unset ...
            operator_updates[key] = value
        else:
            set_updates[key] = value

    set_updates[timestamp_field] = now if now is not None else utc_now()
    return {SET_OPERATOR: set_updates, **operator_updates}
