from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from .base import Entity, CreatePayload


class AuditAction(str, Enum):
    # Consent
    CONSENT_CREATE = "consent_create"
    CONSENT_UPDATE = "consent_update"
    CONSENT_EXPIRE = "consent_expire"
    CONSENT_REVOKE = "consent_revoke"
    CONSENT_ACCESS = "consent_access"
    # Records
    RECORD_VIEW = "record_view"
    RECORD_CREATE = "record_create"
    RECORD_DELETE = "record_delete"
    # Vitals / encounters
    VITAL_CREATE = "vital_create"
    ENCOUNTER_CREATE = "encounter_create"


class AuditLogCreate(CreatePayload):
    patient_id: str
    actor_id: Optional[str] = None
    action: str
    details: Dict[str, Any] = {}


class AuditLog(Entity):
    """HIPAA-style access trail entry. Never updated or deleted."""
    patient_id: str
    actor_id: Optional[str] = None
    action: str
    details: Dict[str, Any] = {}
    timestamp: datetime
