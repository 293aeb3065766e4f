"""
Consent session lifecycle.

A patient shares records with a doctor through a short share code that is
valid until ``expires_at``. Expiry is evaluated lazily on read: a session past
its expiry drops out of ``list_active`` immediately, but its stored ``status``
keeps reading ``active`` until ``expire`` is called. Use
``is_effectively_active`` rather than inspecting ``status`` directly.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from pydantic import TypeAdapter, ValidationError

from ..core.config import Settings, settings as default_settings
from ..core.errors import InvalidInputError
from ..models.audit import AuditAction
from ..models.base import as_utc
from ..models.consent import ConsentSession, ConsentSessionCreate, ConsentStatus
from .audit import AuditRecorder
from .entity_store import EntityCollection, Payload, coerce_payload
from .query import where

logger = logging.getLogger(__name__)

_expiry_adapter = TypeAdapter(datetime)


class ConsentSessionManager:
    def __init__(
        self,
        sessions: EntityCollection[ConsentSession],
        settings: Optional[Settings] = None,
        audit: Optional[AuditRecorder] = None,
    ):
        self._sessions = sessions
        self.settings = settings or default_settings
        self.audit = audit

    def _now(self) -> datetime:
        return self._sessions.clock()

    def create(
        self,
        patient_id: str,
        share_code: str,
        expires_at: datetime,
        *,
        doctor_id: Optional[str] = None,
        status: str = ConsentStatus.ACTIVE,
        scope: Optional[List[str]] = None,
        actor_id: Optional[str] = None,
    ) -> ConsentSession:
        """Open a new sharing session.

        A duplicate ``share_code`` raises ``ConflictError`` while unique fields
        are enforced. A past ``expires_at`` is accepted unless
        ``CONSENT_REQUIRE_FUTURE_EXPIRY`` is set.
        """
        payload = coerce_payload(
            ConsentSessionCreate,
            {
                "patient_id": patient_id,
                "doctor_id": doctor_id,
                "share_code": share_code,
                "status": status,
                "scope": scope or [],
                "expires_at": expires_at,
            },
        )
        self._check_expiry(payload.expires_at)
        session = self._sessions.create(payload)
        logger.info("Consent session %s opened for patient %s", session.id, session.patient_id)
        self._audit(session, AuditAction.CONSENT_CREATE, actor_id, {"expires_at": session.expires_at.isoformat()})
        return session

    def get(self, session_id: str) -> Optional[ConsentSession]:
        return self._sessions.get(session_id)

    def lookup_by_share_code(self, share_code: str) -> Optional[ConsentSession]:
        """First session carrying ``share_code``, whatever its effective status."""
        return self._sessions.find_first(where(share_code=share_code))

    def list_active(self, patient_id: str, now: Optional[datetime] = None) -> List[ConsentSession]:
        """Effectively active sessions for ``patient_id``, in creation order."""
        now = as_utc(now) if now is not None else self._now()
        return self._sessions.find_by(
            lambda session: session.patient_id == patient_id and session.is_effectively_active(now)
        )

    def is_effectively_active(self, session: ConsentSession, now: Optional[datetime] = None) -> bool:
        return session.is_effectively_active(now if now is not None else self._now())

    def update(
        self,
        session_id: str,
        changes: Payload,
        actor_id: Optional[str] = None,
    ) -> Optional[ConsentSession]:
        updates = dict(changes) if isinstance(changes, Mapping) else changes.model_dump(exclude_unset=True)
        if updates.get("expires_at") is not None:
            updates["expires_at"] = self._parse_expiry(updates["expires_at"])
            self._check_expiry(updates["expires_at"])
        session = self._sessions.update(session_id, updates)
        if session is not None:
            self._audit(session, AuditAction.CONSENT_UPDATE, actor_id, {"fields": sorted(updates)})
        return session

    def expire(self, session_id: str, actor_id: Optional[str] = None) -> bool:
        """Mark the session expired. True whenever the session exists, even if it already was."""
        return self._transition(session_id, ConsentStatus.EXPIRED, AuditAction.CONSENT_EXPIRE, actor_id)

    def revoke(self, session_id: str, actor_id: Optional[str] = None) -> bool:
        """Patient withdrew consent before expiry. Same return contract as ``expire``."""
        return self._transition(session_id, ConsentStatus.REVOKED, AuditAction.CONSENT_REVOKE, actor_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _transition(self, session_id: str, status: str, action: AuditAction, actor_id: Optional[str]) -> bool:
        session = self._sessions.update(session_id, {"status": status})
        if session is None:
            return False
        logger.info("Consent session %s is now %s", session_id, status)
        self._audit(session, action, actor_id)
        return True

    def _parse_expiry(self, value: Any) -> datetime:
        try:
            return as_utc(_expiry_adapter.validate_python(value))
        except ValidationError as exc:
            raise InvalidInputError(
                "Invalid consent session expiry",
                details={"errors": exc.errors(include_url=False)},
            ) from exc

    def _check_expiry(self, expires_at: datetime) -> None:
        if self.settings.CONSENT_REQUIRE_FUTURE_EXPIRY and expires_at <= self._now():
            raise InvalidInputError(
                "Consent session expiry must be in the future",
                details={"expires_at": expires_at.isoformat()},
            )

    def _audit(
        self,
        session: ConsentSession,
        action: AuditAction,
        actor_id: Optional[str],
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        if self.audit is None or not self.settings.AUDIT_CONSENT_EVENTS:
            return
        self.audit.log(
            patient_id=session.patient_id,
            action=action,
            actor_id=actor_id,
            details={"consent_session_id": session.id, **(details or {})},
        )
