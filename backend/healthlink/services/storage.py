"""
Storage facade: every collection of the platform behind one object.

Build one ``Storage`` per process (or per test) and pass it to whatever needs
it; there is no module-level instance. ``create_storage`` picks the backend
from settings.
"""
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ..core.config import Settings, settings as default_settings
from ..core.errors import InvalidInputError, StorageError
from ..models.audit import AuditLog
from ..models.consent import ConsentSession, ConsentSessionCreate
from ..models.doctor import Doctor, DoctorCreate
from ..models.encounter import Encounter, EncounterCreate
from ..models.medical_record import MedicalRecord, MedicalRecordCreate
from ..models.orm import create_session_factory
from ..models.patient import Patient, PatientCreate
from ..models.user import User, UserCreate
from ..models.vital import Vital, VitalCreate
from .audit import AuditRecorder
from .consent import ConsentSessionManager
from .entity_store import (
    EntityCollection,
    InMemoryCollection,
    MonotonicClock,
    Payload,
    SqlCollection,
    coerce_payload,
)
from .query import latest, list_view, where

logger = logging.getLogger(__name__)

BACKEND_MEMORY = "memory"
BACKEND_SQL = "sql"


class Storage:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        session_factory: Optional[sessionmaker] = None,
        clock: Optional[MonotonicClock] = None,
    ):
        self.settings = settings or default_settings
        self.clock = clock or MonotonicClock()
        self._session_factory = session_factory

        self.users = self._collection("users", User, stamped=("created_at",), unique=("phone",))
        self.patients = self._collection("patients", Patient)
        self.doctors = self._collection("doctors", Doctor, unique=("registration_number",))
        self.medical_records = self._collection(
            "medical_records", MedicalRecord, stamped=("created_at",), default_now=("record_date",)
        )
        self.vitals = self._collection("vitals", Vital, stamped=("recorded_at",))
        self.consent_sessions = self._collection(
            "consent_sessions", ConsentSession, stamped=("created_at",), unique=("share_code",)
        )
        self.encounters = self._collection("encounters", Encounter, stamped=("encounter_date",))
        # Only reachable through the recorder, which never updates or deletes
        self._audit_logs = self._collection("audit_logs", AuditLog, stamped=("timestamp",), append_only=True)

        self.audit = AuditRecorder(self._audit_logs, settings=self.settings)
        self.consent = ConsentSessionManager(self.consent_sessions, settings=self.settings, audit=self.audit)

    def _collection(self, name: str, model, **options) -> EntityCollection:
        options.update(clock=self.clock, enforce_unique=self.settings.ENFORCE_UNIQUE_FIELDS)
        if self._session_factory is not None:
            return SqlCollection(name, model, self._session_factory, **options)
        return InMemoryCollection(name, model, **options)

    @property
    def backend(self) -> str:
        return BACKEND_SQL if self._session_factory is not None else BACKEND_MEMORY

    def close(self) -> None:
        if self._session_factory is not None:
            self._session_factory.kw["bind"].dispose()

    # ── Users ────────────────────────────────────────────────────────────────

    def get_user(self, user_id: str) -> Optional[User]:
        return self.users.get(user_id)

    def get_user_by_phone(self, phone: str) -> Optional[User]:
        return self.users.find_first(where(phone=phone))

    def create_user(self, user: Payload) -> User:
        # UserCreate has no is_verified field, so new accounts always start unverified
        return self.users.create(coerce_payload(UserCreate, user))

    def update_user(self, user_id: str, updates: Payload) -> Optional[User]:
        return self.users.update(user_id, updates)

    # ── Patients ─────────────────────────────────────────────────────────────

    def get_patient(self, patient_id: str) -> Optional[Patient]:
        return self.patients.get(patient_id)

    def get_patient_by_user_id(self, user_id: str) -> Optional[Patient]:
        return self.patients.find_first(where(user_id=user_id))

    def create_patient(self, patient: Payload) -> Patient:
        return self.patients.create(coerce_payload(PatientCreate, patient))

    def update_patient(self, patient_id: str, updates: Payload) -> Optional[Patient]:
        return self.patients.update(patient_id, updates)

    # ── Doctors ──────────────────────────────────────────────────────────────

    def get_doctor(self, doctor_id: str) -> Optional[Doctor]:
        return self.doctors.get(doctor_id)

    def get_doctor_by_user_id(self, user_id: str) -> Optional[Doctor]:
        return self.doctors.find_first(where(user_id=user_id))

    def get_doctor_by_registration_number(self, registration_number: str) -> Optional[Doctor]:
        return self.doctors.find_first(where(registration_number=registration_number))

    def create_doctor(self, doctor: Payload) -> Doctor:
        # Verification state is only ever set later through update_doctor
        return self.doctors.create(coerce_payload(DoctorCreate, doctor))

    def update_doctor(self, doctor_id: str, updates: Payload) -> Optional[Doctor]:
        return self.doctors.update(doctor_id, updates)

    # ── Medical records ──────────────────────────────────────────────────────

    def get_medical_record(self, record_id: str) -> Optional[MedicalRecord]:
        return self.medical_records.get(record_id)

    def get_medical_records_by_patient(self, patient_id: str) -> List[MedicalRecord]:
        return list_view(self.medical_records, where(patient_id=patient_id), "created_at")

    def create_medical_record(self, record: Payload) -> MedicalRecord:
        return self.medical_records.create(coerce_payload(MedicalRecordCreate, record))

    def delete_medical_record(self, record_id: str) -> bool:
        return self.medical_records.delete(record_id)

    # ── Vitals ───────────────────────────────────────────────────────────────

    def get_vitals_by_patient(self, patient_id: str, limit: Optional[int] = None) -> List[Vital]:
        if limit is None:
            limit = self.settings.VITALS_DEFAULT_LIMIT
        return list_view(self.vitals, where(patient_id=patient_id), "recorded_at", limit)

    def get_latest_vital_by_type(self, patient_id: str, vital_type: str) -> Optional[Vital]:
        return latest(self.vitals, where(patient_id=patient_id, type=vital_type), "recorded_at")

    def create_vital(self, vital: Payload) -> Vital:
        return self.vitals.create(coerce_payload(VitalCreate, vital))

    # ── Consent sessions ─────────────────────────────────────────────────────

    def get_consent_session(self, share_code: str) -> Optional[ConsentSession]:
        return self.consent.lookup_by_share_code(share_code)

    def get_active_consent_sessions(self, patient_id: str) -> List[ConsentSession]:
        return self.consent.list_active(patient_id)

    def create_consent_session(self, session: Payload, actor_id: Optional[str] = None) -> ConsentSession:
        payload = coerce_payload(ConsentSessionCreate, session)
        return self.consent.create(
            payload.patient_id,
            payload.share_code,
            payload.expires_at,
            doctor_id=payload.doctor_id,
            status=payload.status,
            scope=payload.scope,
            actor_id=actor_id,
        )

    def update_consent_session(
        self, session_id: str, updates: Payload, actor_id: Optional[str] = None
    ) -> Optional[ConsentSession]:
        return self.consent.update(session_id, updates, actor_id=actor_id)

    def expire_consent_session(self, session_id: str, actor_id: Optional[str] = None) -> bool:
        return self.consent.expire(session_id, actor_id=actor_id)

    def revoke_consent_session(self, session_id: str, actor_id: Optional[str] = None) -> bool:
        return self.consent.revoke(session_id, actor_id=actor_id)

    # ── Encounters ───────────────────────────────────────────────────────────

    def get_encounters_by_patient(self, patient_id: str) -> List[Encounter]:
        return list_view(self.encounters, where(patient_id=patient_id), "encounter_date")

    def create_encounter(self, encounter: Payload) -> Encounter:
        return self.encounters.create(coerce_payload(EncounterCreate, encounter))

    # ── Audit logs ───────────────────────────────────────────────────────────

    def create_audit_log(self, log: Payload) -> AuditLog:
        return self.audit.record(log)

    def get_audit_logs(self, patient_id: str, limit: Optional[int] = None) -> List[AuditLog]:
        return self.audit.query(patient_id, limit)


def create_storage(settings: Optional[Settings] = None, clock: Optional[MonotonicClock] = None) -> Storage:
    """Build a ``Storage`` for the backend named in ``settings.STORAGE_BACKEND``."""
    settings = settings or default_settings
    backend = settings.STORAGE_BACKEND.lower()
    if backend == BACKEND_MEMORY:
        storage = Storage(settings, clock=clock)
    elif backend == BACKEND_SQL:
        try:
            session_factory = create_session_factory(settings.DATABASE_URL)
        except SQLAlchemyError as exc:
            logger.error("Could not open database for %s: %s", settings.APP_NAME, exc)
            raise StorageError("Could not open database", operation="connect") from exc
        storage = Storage(settings, session_factory=session_factory, clock=clock)
    else:
        raise InvalidInputError(
            f"Unknown storage backend: {settings.STORAGE_BACKEND}",
            details={"supported": [BACKEND_MEMORY, BACKEND_SQL]},
        )
    logger.info("Storage ready (%s backend)", storage.backend)
    return storage
