from datetime import datetime
from typing import List, Optional

from pydantic import field_validator

from .base import Entity, CreatePayload, as_utc, utcnow


class ConsentStatus:
    ACTIVE = "active"
    EXPIRED = "expired"
    REVOKED = "revoked"


class ConsentSessionCreate(CreatePayload):
    patient_id: str
    doctor_id: Optional[str] = None
    share_code: str
    status: str = ConsentStatus.ACTIVE
    scope: List[str] = []  # Record types shared; empty means everything
    expires_at: datetime

    @field_validator("expires_at")
    @classmethod
    def expiry_as_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class ConsentSession(Entity):
    patient_id: str
    doctor_id: Optional[str] = None
    share_code: str
    status: str = ConsentStatus.ACTIVE
    scope: List[str] = []
    expires_at: datetime
    created_at: datetime

    @field_validator("expires_at")
    @classmethod
    def expiry_as_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    def is_effectively_active(self, now: Optional[datetime] = None) -> bool:
        """Active only while the stored status says so AND the expiry lies ahead.

        The persisted ``status`` stays ``active`` after ``expires_at`` passes
        until the session is expired explicitly, so callers must not read
        ``status`` alone.
        """
        now = as_utc(now) if now is not None else utcnow()
        return self.status == ConsentStatus.ACTIVE and self.expires_at > now
