from datetime import datetime
from typing import Optional

from .base import Entity, CreatePayload


class RecordType:
    PRESCRIPTION = "prescription"
    LAB_REPORT = "lab_report"
    IMAGING = "imaging"
    DISCHARGE_SUMMARY = "discharge_summary"
    OTHER = "other"


class MedicalRecordCreate(CreatePayload):
    patient_id: str
    title: str
    record_type: str = RecordType.OTHER
    description: Optional[str] = None
    file_url: Optional[str] = None
    record_date: Optional[datetime] = None  # Defaults to creation time


class MedicalRecord(Entity):
    patient_id: str
    title: str
    record_type: str = RecordType.OTHER
    description: Optional[str] = None
    file_url: Optional[str] = None
    record_date: datetime
    created_at: datetime
