from datetime import datetime
from typing import List, Optional

from .base import Entity, CreatePayload


class EncounterCreate(CreatePayload):
    patient_id: str
    doctor_id: Optional[str] = None
    consent_session_id: Optional[str] = None
    summary: Optional[str] = None
    diagnosis: Optional[str] = None
    prescriptions: List[str] = []


class Encounter(Entity):
    patient_id: str
    doctor_id: Optional[str] = None
    consent_session_id: Optional[str] = None
    summary: Optional[str] = None
    diagnosis: Optional[str] = None
    prescriptions: List[str] = []
    encounter_date: datetime
