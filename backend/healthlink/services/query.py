"""
Read views over collections.

Every list operation is the same pipeline: filter by owner/type, sort
most-recent-first on the entity's natural timestamp, then optionally limit.
"""
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional, Tuple, TypeVar

from ..core.errors import InvalidInputError
from ..models.base import as_utc
from .entity_store import EntityCollection, Predicate

T = TypeVar("T")

_MISSING_TIMESTAMP = datetime.min.replace(tzinfo=timezone.utc)


def where(**criteria: Any) -> Predicate:
    """Predicate matching entities whose attributes equal every given value."""
    def predicate(entity) -> bool:
        return all(getattr(entity, field, None) == value for field, value in criteria.items())
    return predicate


def _timestamp_key(value: Optional[datetime]) -> Tuple[int, datetime]:
    if value is None:
        return (0, _MISSING_TIMESTAMP)
    return (1, as_utc(value))


def sort_by_timestamp_desc(items: Iterable[T], field: str) -> List[T]:
    """Stable sort, newest first. Records without the timestamp go last."""
    return sorted(items, key=lambda item: _timestamp_key(getattr(item, field, None)), reverse=True)


def limit(items: Iterable[T], n: Optional[int]) -> List[T]:
    items = list(items)
    if n is None:
        return items
    if n < 0:
        raise InvalidInputError("limit must not be negative", details={"limit": n})
    return items[:n]


def list_view(
    collection: EntityCollection,
    predicate: Predicate,
    timestamp_field: str,
    n: Optional[int] = None,
) -> List[Any]:
    return limit(sort_by_timestamp_desc(collection.find_by(predicate), timestamp_field), n)


def latest(collection: EntityCollection, predicate: Predicate, timestamp_field: str) -> Optional[Any]:
    view = list_view(collection, predicate, timestamp_field, 1)
    return view[0] if view else None
