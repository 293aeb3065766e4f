from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from healthlink.core.errors import InvalidInputError
from healthlink.services.query import limit, sort_by_timestamp_desc, where


@dataclass
class Event:
    name: str
    at: Optional[datetime]
    owner: str = "p1"


BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_sort_newest_first():
    events = [Event("a", BASE), Event("c", BASE + timedelta(hours=2)), Event("b", BASE + timedelta(hours=1))]
    assert [e.name for e in sort_by_timestamp_desc(events, "at")] == ["c", "b", "a"]


def test_missing_timestamps_sort_last():
    events = [Event("none", None), Event("old", BASE), Event("new", BASE + timedelta(days=1))]
    assert [e.name for e in sort_by_timestamp_desc(events, "at")] == ["new", "old", "none"]


def test_sort_is_stable_for_equal_timestamps():
    events = [Event("first", BASE), Event("second", BASE), Event("third", BASE)]
    assert [e.name for e in sort_by_timestamp_desc(events, "at")] == ["first", "second", "third"]


def test_naive_and_aware_timestamps_compare():
    events = [Event("naive", datetime(2024, 1, 2)), Event("aware", BASE)]
    assert [e.name for e in sort_by_timestamp_desc(events, "at")] == ["naive", "aware"]


def test_limit_keeps_prefix():
    assert limit([3, 2, 1], 2) == [3, 2]
    assert limit([3, 2, 1], 10) == [3, 2, 1]
    assert limit([3, 2, 1], 0) == []
    assert limit([3, 2, 1], None) == [3, 2, 1]


def test_negative_limit_rejected():
    with pytest.raises(InvalidInputError):
        limit([1], -1)


def test_where_matches_all_criteria():
    predicate = where(owner="p1", name="a")
    assert predicate(Event("a", BASE, owner="p1"))
    assert not predicate(Event("a", BASE, owner="p2"))
    assert not predicate(Event("b", BASE, owner="p1"))
