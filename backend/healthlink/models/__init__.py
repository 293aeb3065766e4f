from .base import Entity, generate_uuid, utcnow
from .user import User, UserCreate, UserRole
from .patient import Patient, PatientCreate
from .doctor import Doctor, DoctorCreate
from .medical_record import MedicalRecord, MedicalRecordCreate, RecordType
from .vital import Vital, VitalCreate, VitalSource, VitalType
from .consent import ConsentSession, ConsentSessionCreate, ConsentStatus
from .encounter import Encounter, EncounterCreate
from .audit import AuditAction, AuditLog, AuditLogCreate
