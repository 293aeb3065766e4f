from datetime import datetime, timezone

import pytest

from healthlink.core.errors import ConflictError, InvalidInputError
from healthlink.models.consent import ConsentSession
from healthlink.models.medical_record import MedicalRecord
from healthlink.models.user import User
from healthlink.services.entity_store import InMemoryCollection, MonotonicClock


def _users(**options):
    return InMemoryCollection("users", User, stamped=("created_at",), unique=("phone",), **options)


def test_create_assigns_fresh_ids():
    """Every created record gets a non-empty id never issued before."""
    users = _users()
    ids = [users.create({"phone": f"+1555000{i:04d}"}).id for i in range(50)]
    assert all(ids)
    assert len(set(ids)) == len(ids)


def test_create_then_get_round_trip():
    users = _users()
    created = users.create({"phone": "+15550001111", "name": "Ada"})
    assert users.get(created.id) == created
    assert created.is_verified is False
    assert created.created_at.tzinfo is not None


def test_get_missing_returns_none():
    assert _users().get("does-not-exist") is None


def test_caller_timestamps_and_id_are_ignored():
    users = _users()
    forged = datetime(1999, 1, 1, tzinfo=timezone.utc)
    user = users.create({"phone": "+15550002222", "id": "forged-id", "created_at": forged})
    assert user.id != "forged-id"
    assert user.created_at != forged


def test_update_missing_leaves_store_unchanged():
    users = _users()
    users.create({"phone": "+15550003333"})
    assert users.update("nope", {"name": "Ghost"}) is None
    assert users.count() == 1


def test_update_is_shallow_merge():
    users = _users()
    user = users.create({"phone": "+15550004444", "name": "Old"})
    updated = users.update(user.id, {"is_verified": True})
    assert updated.is_verified is True
    assert updated.name == "Old"
    assert updated.phone == user.phone
    assert users.get(user.id) == updated


def test_update_cannot_touch_identity_or_stamps():
    users = _users()
    user = users.create({"phone": "+15550005555"})
    updated = users.update(
        user.id,
        {"id": "other", "created_at": datetime(2000, 1, 1, tzinfo=timezone.utc), "name": "New"},
    )
    assert updated.id == user.id
    assert updated.created_at == user.created_at
    assert updated.name == "New"


def test_delete_true_exactly_once():
    users = _users()
    user = users.create({"phone": "+15550006666"})
    assert users.delete(user.id) is True
    assert users.delete(user.id) is False
    assert users.get(user.id) is None


def test_invalid_payload_raises_invalid_input():
    with pytest.raises(InvalidInputError):
        _users().create({"name": "no phone"})


def test_default_now_honors_caller_value():
    records = InMemoryCollection(
        "medical_records", MedicalRecord, stamped=("created_at",), default_now=("record_date",)
    )
    supplied = datetime(2023, 6, 1, tzinfo=timezone.utc)
    kept = records.create({"patient_id": "p1", "title": "Lab", "record_date": supplied})
    defaulted = records.create({"patient_id": "p1", "title": "Scan"})
    assert kept.record_date == supplied
    assert defaulted.record_date == defaulted.created_at


class TestUniqueGuard:
    def setup_method(self):
        self.expiry = datetime(2030, 1, 1, tzinfo=timezone.utc)

    def _sessions(self, enforce):
        return InMemoryCollection(
            "consent_sessions",
            ConsentSession,
            stamped=("created_at",),
            unique=("share_code",),
            enforce_unique=enforce,
        )

    def test_duplicate_rejected_when_enforced(self):
        sessions = self._sessions(True)
        sessions.create({"patient_id": "p1", "share_code": "ABC123", "expires_at": self.expiry})
        with pytest.raises(ConflictError) as exc_info:
            sessions.create({"patient_id": "p2", "share_code": "ABC123", "expires_at": self.expiry})
        assert exc_info.value.field == "share_code"
        assert sessions.count() == 1

    def test_update_into_duplicate_rejected(self):
        sessions = self._sessions(True)
        sessions.create({"patient_id": "p1", "share_code": "AAA", "expires_at": self.expiry})
        second = sessions.create({"patient_id": "p1", "share_code": "BBB", "expires_at": self.expiry})
        with pytest.raises(ConflictError):
            sessions.update(second.id, {"share_code": "AAA"})
        assert sessions.get(second.id).share_code == "BBB"

    def test_updating_own_record_is_not_a_conflict(self):
        sessions = self._sessions(True)
        session = sessions.create({"patient_id": "p1", "share_code": "AAA", "expires_at": self.expiry})
        assert sessions.update(session.id, {"share_code": "AAA"}) is not None

    def test_duplicates_allowed_when_not_enforced(self):
        sessions = self._sessions(False)
        first = sessions.create({"patient_id": "p1", "share_code": "DUP", "expires_at": self.expiry})
        sessions.create({"patient_id": "p2", "share_code": "DUP", "expires_at": self.expiry})
        assert sessions.count() == 2
        assert sessions.find_first(lambda s: s.share_code == "DUP").id == first.id


def test_monotonic_clock_never_repeats():
    frozen = datetime(2024, 1, 1, tzinfo=timezone.utc)
    clock = MonotonicClock(lambda: frozen)
    readings = [clock() for _ in range(5)]
    assert all(a < b for a, b in zip(readings, readings[1:]))


def test_monotonic_clock_treats_naive_as_utc():
    clock = MonotonicClock(lambda: datetime(2024, 1, 1))
    assert clock().tzinfo is not None


def test_find_by_preserves_insertion_order():
    users = _users()
    made = [users.create({"phone": f"+1555111{i:04d}", "name": "x" if i % 2 else "y"}) for i in range(6)]
    found = users.find_by(lambda u: u.name == "x")
    assert [u.id for u in found] == [u.id for u in made if u.name == "x"]
