"""
Generic keyed storage, one collection per entity type.

The store owns identity and creation timestamps: ids are random UUID4 strings
and stamped fields are always taken from the store clock, whatever the caller
sends. Collections are not aware of each other, so foreign keys such as
``patient_id`` are never checked.
"""
import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Generic, Iterable, List, Mapping, Optional, Sequence, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..core.errors import AppendOnlyError, ConflictError, InvalidInputError, StorageError
from ..models.base import Entity, as_utc, generate_uuid, utcnow
from ..models.orm import EntityRow

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Entity)

Payload = Union[BaseModel, Mapping[str, Any]]
Predicate = Callable[[Any], bool]


class MonotonicClock:
    """UTC clock whose readings strictly increase.

    Records stamped one after another therefore never share a timestamp, and
    most-recent-first ordering matches insertion order.
    """

    def __init__(self, source: Callable[[], datetime] = utcnow):
        self._source = source
        self._last: Optional[datetime] = None
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            now = as_utc(self._source())
            if self._last is not None and now <= self._last:
                now = self._last + timedelta(microseconds=1)
            self._last = now
            return now


class EntityCollection(Generic[T]):
    """Behaviour shared by every backend.

    ``stamped`` fields are write-once and set to the clock reading on create.
    ``default_now`` fields keep a caller value and fall back to the clock.
    ``unique`` fields are checked on create and update when ``enforce_unique``
    is on; otherwise duplicates are stored and lookups return the first match.
    ``append_only`` collections refuse every update and delete.
    """

    def __init__(
        self,
        name: str,
        model: Type[T],
        *,
        stamped: Sequence[str] = (),
        default_now: Sequence[str] = (),
        unique: Sequence[str] = (),
        enforce_unique: bool = True,
        append_only: bool = False,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.name = name
        self.model = model
        self.stamped = tuple(stamped)
        self.default_now = tuple(default_now)
        self.unique = tuple(unique)
        self.enforce_unique = enforce_unique
        self.append_only = append_only
        self.clock = clock or MonotonicClock()
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def create(self, data: Payload) -> T:
        raise NotImplementedError

    def get(self, entity_id: str) -> Optional[T]:
        raise NotImplementedError

    def update(self, entity_id: str, changes: Payload) -> Optional[T]:
        raise NotImplementedError

    def delete(self, entity_id: str) -> bool:
        raise NotImplementedError

    def all(self) -> List[T]:
        """Every record, in insertion order."""
        raise NotImplementedError

    def count(self) -> int:
        return len(self.all())

    def find_by(self, predicate: Predicate) -> List[T]:
        return [entity for entity in self.all() if predicate(entity)]

    def find_first(self, predicate: Predicate) -> Optional[T]:
        return next((entity for entity in self.all() if predicate(entity)), None)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _build_new(self, data: Payload) -> T:
        payload = {k: v for k, v in _as_dict(data).items() if v is not None}
        for field in ("id",) + self.stamped:
            payload.pop(field, None)
        now = self.clock()
        for field in self.stamped:
            payload[field] = now
        for field in self.default_now:
            payload.setdefault(field, now)
        payload["id"] = generate_uuid()
        return self._validate(payload)

    def _merge(self, current: T, changes: Payload) -> T:
        if isinstance(changes, BaseModel):
            updates = changes.model_dump(exclude_unset=True)
        else:
            updates = dict(changes)
        for field in ("id",) + self.stamped:
            if updates.pop(field, None) is not None:
                logger.debug("Ignoring write to store-owned field %s on %s %s", field, self.name, current.id)
        return self._validate({**current.model_dump(), **updates})

    def _validate(self, payload: Dict[str, Any]) -> T:
        try:
            return self.model.model_validate(payload)
        except ValidationError as exc:
            raise InvalidInputError(
                f"Invalid {self.name} payload",
                details={"errors": exc.errors(include_url=False)},
            ) from exc

    def _guard_mutation(self, operation: str, entity_id: str) -> None:
        if self.append_only:
            logger.warning("Refused %s of %s %s: collection is append-only", operation, self.name, entity_id)
            raise AppendOnlyError(f"{self.name} is append-only", operation=operation)

    def _check_unique(self, candidate: T, existing: Iterable[T]) -> None:
        if not self.enforce_unique or not self.unique:
            return
        others = [entity for entity in existing if entity.id != candidate.id]
        for field in self.unique:
            value = getattr(candidate, field)
            if any(getattr(entity, field) == value for entity in others):
                logger.warning("Rejected duplicate %s on %s", field, self.name)
                raise ConflictError(f"{self.name}.{field} already in use", field=field, value=value)


class InMemoryCollection(EntityCollection[T]):
    """Dict-backed collection. Mutations are serialized by a re-entrant lock."""

    def __init__(self, name: str, model: Type[T], **options):
        super().__init__(name, model, **options)
        self._records: Dict[str, T] = {}

    def create(self, data: Payload) -> T:
        with self._lock:
            entity = self._build_new(data)
            self._check_unique(entity, self._records.values())
            self._records[entity.id] = entity
        logger.debug("Created %s %s", self.name, entity.id)
        return entity

    def get(self, entity_id: str) -> Optional[T]:
        return self._records.get(entity_id)

    def update(self, entity_id: str, changes: Payload) -> Optional[T]:
        self._guard_mutation("update", entity_id)
        with self._lock:
            current = self._records.get(entity_id)
            if current is None:
                return None
            updated = self._merge(current, changes)
            self._check_unique(updated, self._records.values())
            self._records[entity_id] = updated
        return updated

    def delete(self, entity_id: str) -> bool:
        self._guard_mutation("delete", entity_id)
        with self._lock:
            removed = self._records.pop(entity_id, None) is not None
        if removed:
            logger.debug("Deleted %s %s", self.name, entity_id)
        return removed

    def all(self) -> List[T]:
        with self._lock:
            return list(self._records.values())


class SqlCollection(EntityCollection[T]):
    """Collection persisted through SQLAlchemy, one transaction per operation."""

    def __init__(self, name: str, model: Type[T], session_factory: sessionmaker, **options):
        super().__init__(name, model, **options)
        self._session_factory = session_factory

    @contextmanager
    def _session(self, operation: str):
        session: Session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Storage failure during %s on %s: %s", operation, self.name, exc)
            raise StorageError(f"{operation} on {self.name} failed", operation=operation) from exc
        finally:
            session.close()

    def _rows(self, session: Session):
        return session.query(EntityRow).filter(EntityRow.kind == self.name)

    def _row(self, session: Session, entity_id: str, for_update: bool = False) -> Optional[EntityRow]:
        query = self._rows(session).filter(EntityRow.id == entity_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def _from_row(self, row: EntityRow) -> T:
        return self.model.model_validate(row.payload)

    def _existing(self, session: Session) -> List[T]:
        if not self.enforce_unique or not self.unique:
            return []
        return [self._from_row(row) for row in self._rows(session).order_by(EntityRow.seq)]

    def create(self, data: Payload) -> T:
        with self._lock, self._session("create") as session:
            entity = self._build_new(data)
            self._check_unique(entity, self._existing(session))
            session.add(EntityRow(kind=self.name, id=entity.id, payload=entity.model_dump(mode="json")))
        logger.debug("Created %s %s", self.name, entity.id)
        return entity

    def get(self, entity_id: str) -> Optional[T]:
        with self._session("get") as session:
            row = self._row(session, entity_id)
            return self._from_row(row) if row is not None else None

    def update(self, entity_id: str, changes: Payload) -> Optional[T]:
        self._guard_mutation("update", entity_id)
        with self._lock, self._session("update") as session:
            row = self._row(session, entity_id, for_update=True)
            if row is None:
                return None
            updated = self._merge(self._from_row(row), changes)
            self._check_unique(updated, self._existing(session))
            row.payload = updated.model_dump(mode="json")
        return updated

    def delete(self, entity_id: str) -> bool:
        self._guard_mutation("delete", entity_id)
        with self._lock, self._session("delete") as session:
            row = self._row(session, entity_id, for_update=True)
            if row is None:
                return False
            session.delete(row)
        logger.debug("Deleted %s %s", self.name, entity_id)
        return True

    def all(self) -> List[T]:
        with self._session("scan") as session:
            return [self._from_row(row) for row in self._rows(session).order_by(EntityRow.seq)]

    def count(self) -> int:
        with self._session("count") as session:
            return self._rows(session).count()


def _as_dict(data: Payload) -> Dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump()
    return dict(data)


P = TypeVar("P", bound=BaseModel)


def coerce_payload(model: Type[P], data: Payload) -> P:
    """Validate caller input against a create payload model.

    Fields the model does not declare, such as store-owned timestamps, are
    dropped here.
    """
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(_as_dict(data))
    except ValidationError as exc:
        raise InvalidInputError(
            f"Invalid {model.__name__} payload",
            details={"errors": exc.errors(include_url=False)},
        ) from exc
