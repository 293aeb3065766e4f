"""
HealthLink storage layer: patients, doctors, records, vitals, consent-based
sharing and an append-only audit trail.
"""
from .core.config import Settings
from .core.errors import AppendOnlyError, ConflictError, HealthLinkError, InvalidInputError, StorageError
from .main import bootstrap
from .services.storage import Storage, create_storage
