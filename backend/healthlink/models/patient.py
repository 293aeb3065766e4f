from datetime import date
from typing import List, Optional

from .base import Entity, CreatePayload


class PatientCreate(CreatePayload):
    user_id: str  # Not checked against the users collection
    name: str
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    blood_group: Optional[str] = None
    allergies: List[str] = []
    emergency_contact: Optional[str] = None


class Patient(Entity):
    user_id: str
    name: str
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    blood_group: Optional[str] = None
    allergies: List[str] = []
    emergency_contact: Optional[str] = None
