"""
Demo data seeder for HealthLink.

Creates a demo patient and a demo doctor (with their user accounts), a few
vitals and an active consent session so a fresh in-memory store has something
to share. Pass the ``Storage`` to seed; nothing here keeps global state.

Demo share code: DEMO-4821 (valid for 24 hours from seeding; reseeding reopens
it once it has lapsed or been revoked)

This seeder is idempotent: it is safe to call on every startup.
"""
import logging
from datetime import date, timedelta

from .models.consent import ConsentStatus
from .models.user import UserRole
from .models.vital import VitalType
from .services.storage import Storage

logger = logging.getLogger(__name__)

DEMO_PATIENT_PHONE = "+910000000001"
DEMO_DOCTOR_PHONE = "+910000000002"
DEMO_REGISTRATION_NUMBER = "DEMO-REG-001"
DEMO_SHARE_CODE = "DEMO-4821"
DEMO_SESSION_HOURS = 24


def seed_demo_data(storage: Storage) -> None:
    """Create demo users, patient, doctor, vitals and consent session if missing."""
    patient = _seed_patient(storage)
    doctor = _seed_doctor(storage)
    _seed_vitals(storage, patient.id)
    _seed_consent(storage, patient.id, doctor.id)


# ── helpers ──────────────────────────────────────────────────────────────────

def _seed_patient(storage: Storage):
    user = storage.get_user_by_phone(DEMO_PATIENT_PHONE)
    if not user:
        user = storage.create_user({"phone": DEMO_PATIENT_PHONE, "name": "Asha Demo", "role": UserRole.PATIENT})
        storage.update_user(user.id, {"is_verified": True})
    patient = storage.get_patient_by_user_id(user.id)
    if not patient:
        patient = storage.create_patient(
            {
                "user_id": user.id,
                "name": "Asha Demo",
                "date_of_birth": date(1985, 3, 12),
                "gender": "female",
                "blood_group": "B+",
                "allergies": ["penicillin"],
            }
        )
        logger.info("[seed] Created demo patient %s", patient.id)
    return patient


def _seed_doctor(storage: Storage):
    doctor = storage.get_doctor_by_registration_number(DEMO_REGISTRATION_NUMBER)
    if doctor:
        return doctor
    user = storage.get_user_by_phone(DEMO_DOCTOR_PHONE)
    if not user:
        user = storage.create_user({"phone": DEMO_DOCTOR_PHONE, "name": "Dr. Ravi Demo", "role": UserRole.DOCTOR})
    doctor = storage.create_doctor(
        {
            "user_id": user.id,
            "name": "Dr. Ravi Demo",
            "registration_number": DEMO_REGISTRATION_NUMBER,
            "specialization": "general_medicine",
        }
    )
    logger.info("[seed] Created demo doctor %s", doctor.id)
    return doctor


def _seed_vitals(storage: Storage, patient_id: str) -> None:
    if storage.get_vitals_by_patient(patient_id, limit=1):
        return
    storage.create_vital({"patient_id": patient_id, "type": VitalType.BLOOD_PRESSURE, "value": "122/78", "unit": "mmHg"})
    storage.create_vital({"patient_id": patient_id, "type": VitalType.HEART_RATE, "value": "72", "unit": "bpm"})
    storage.create_vital(
        {"patient_id": patient_id, "type": VitalType.BLOOD_GLUCOSE, "value": "104", "unit": "mg/dL", "source": "device"}
    )


def _seed_consent(storage: Storage, patient_id: str, doctor_id: str) -> None:
    existing = storage.get_consent_session(DEMO_SHARE_CODE)
    if existing:
        if not storage.consent.is_effectively_active(existing):
            # Reopen a lapsed or revoked demo code for another full window
            storage.update_consent_session(
                existing.id,
                {
                    "status": ConsentStatus.ACTIVE,
                    "expires_at": storage.clock() + timedelta(hours=DEMO_SESSION_HOURS),
                },
            )
            logger.info("[seed] Refreshed demo consent session %s (code %s)", existing.id, DEMO_SHARE_CODE)
        return
    session = storage.create_consent_session(
        {
            "patient_id": patient_id,
            "doctor_id": doctor_id,
            "share_code": DEMO_SHARE_CODE,
            "expires_at": storage.clock() + timedelta(hours=DEMO_SESSION_HOURS),
        }
    )
    logger.info("[seed] Opened demo consent session %s (code %s)", session.id, DEMO_SHARE_CODE)
