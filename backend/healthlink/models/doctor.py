from typing import List, Optional

from .base import Entity, CreatePayload


class DoctorCreate(CreatePayload):
    user_id: str
    name: str
    registration_number: str  # Medical council registration, unique per doctor
    specialization: Optional[str] = None


class Doctor(Entity):
    user_id: str
    name: str
    registration_number: str
    specialization: Optional[str] = None
    is_verified: bool = False
    verification_documents: Optional[List[str]] = None
