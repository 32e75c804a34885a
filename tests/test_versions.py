from datetime import timezone

import pytest

from flowcanvas.models import Snapshot
from flowcanvas.versions import VersionStore, parse_timestamp


@pytest.fixture
def store():
    s = VersionStore()
    s.save("middle", Snapshot(), timestamp="2024-03-02T12:00:00Z")
    s.save("oldest", Snapshot(), timestamp="2024-03-01T12:00:00")
    s.save("newest", Snapshot(), timestamp="2024-03-03T12:00:00+00:00")
    return s


def test_newest_first(store):
    assert [v.name for v in store.newest_first()] == ["newest", "middle", "oldest"]
    assert store.latest().name == "newest"
    assert [v.name for v in store.all()] == ["middle", "oldest", "newest"]


def test_save_generates_utc_timestamp():
    version = VersionStore().save("now", Snapshot())
    assert version.timestamp.endswith("Z")
    assert parse_timestamp(version.timestamp).tzinfo is not None


def test_bad_timestamp_sorts_last():
    assert parse_timestamp("yesterday").year == 1
    assert parse_timestamp("2024-01-01T00:00:00").tzinfo == timezone.utc


def test_delete_and_get(store):
    middle = store.all()[0]
    assert store.get(middle.id) is middle
    assert store.delete(middle.id)
    assert store.get(middle.id) is None
    assert not store.delete(middle.id)
    assert len(store) == 2


def test_empty_store():
    assert VersionStore().latest() is None
