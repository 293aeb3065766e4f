"""
Append-only audit trail.

Entries are stamped by the store and never changed afterwards. The recorder
offers no update or delete path, and the collection behind it is built
``append_only`` so it refuses both.
"""
import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from ..core.config import Settings, settings as default_settings
from ..models.audit import AuditAction, AuditLog, AuditLogCreate
from .entity_store import EntityCollection, Payload, coerce_payload
from .query import list_view, where

logger = logging.getLogger(__name__)


class AuditRecorder:
    def __init__(self, logs: EntityCollection[AuditLog], settings: Optional[Settings] = None):
        self._logs = logs
        self.settings = settings or default_settings

    def record(self, entry: Payload) -> AuditLog:
        """Store a new entry and return it with ``id`` and ``timestamp`` set."""
        data = dict(entry) if isinstance(entry, Mapping) else entry.model_dump()
        # Persist plain strings, not enum reprs
        if isinstance(data.get("action"), AuditAction):
            data["action"] = data["action"].value
        log_entry = self._logs.create(coerce_payload(AuditLogCreate, data))
        logger.debug("Audit %s recorded for patient %s", log_entry.action, log_entry.patient_id)
        return log_entry

    def log(
        self,
        *,
        patient_id: str,
        action: Union[AuditAction, str],
        actor_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        return self.record(
            {
                "patient_id": patient_id,
                "action": action,
                "actor_id": actor_id,
                "details": details or {},
            }
        )

    def query(self, patient_id: str, limit: Optional[int] = None) -> List[AuditLog]:
        """Entries for ``patient_id``, newest first, at most ``limit`` of them."""
        if limit is None:
            limit = self.settings.AUDIT_LOG_DEFAULT_LIMIT
        return list_view(self._logs, where(patient_id=patient_id), "timestamp", limit)
