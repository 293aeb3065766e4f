from datetime import datetime
from typing import Optional

from .base import Entity, CreatePayload


class UserRole:
    PATIENT = "patient"
    DOCTOR = "doctor"
    ADMIN = "admin"


class UserCreate(CreatePayload):
    phone: str
    name: Optional[str] = None
    role: str = UserRole.PATIENT


class User(Entity):
    phone: str
    name: Optional[str] = None
    role: str = UserRole.PATIENT
    is_verified: bool = False
    created_at: datetime
