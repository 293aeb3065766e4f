import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict


def generate_uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with store timestamps."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Entity(BaseModel):
    """A stored record. Stored values are immutable; updates replace them."""
    model_config = ConfigDict(frozen=True)

    id: str


class CreatePayload(BaseModel):
    """Caller-supplied fields for a new record. Unknown keys are dropped."""
    model_config = ConfigDict(extra="ignore")
