from datetime import datetime
from typing import Optional

from .base import Entity, CreatePayload


class VitalType:
    BLOOD_PRESSURE = "blood_pressure"
    HEART_RATE = "heart_rate"
    BLOOD_GLUCOSE = "blood_glucose"
    TEMPERATURE = "temperature"
    SPO2 = "spo2"
    WEIGHT = "weight"


class VitalSource:
    PATIENT = "patient"
    DOCTOR = "doctor"
    DEVICE = "device"


class VitalCreate(CreatePayload):
    patient_id: str
    type: str
    value: str  # e.g. "120/80" for blood pressure
    unit: Optional[str] = None
    source: Optional[str] = None


class Vital(Entity):
    patient_id: str
    type: str
    value: str
    unit: Optional[str] = None
    source: str = VitalSource.PATIENT
    recorded_at: datetime
