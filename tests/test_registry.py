"""Tests for the registry service."""

import threading
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

from geotracker.exceptions import InvalidInput, StorageUnavailable
from geotracker.position_store import InMemoryPositionStore
from geotracker.registry import RegistryService


@pytest.fixture
def store():
    """Create in-memory store."""
    return InMemoryPositionStore()


@pytest.fixture
def registry(store):
    """Create registry over the store."""
    return RegistryService(store)


def test_report_then_snapshot(registry):
    """Test that an accepted report is visible to the next snapshot."""
    registry.report_position("u2", 12.9, 77.6)

    snapshot = dict(registry.snapshot())
    assert "u2" in snapshot
    assert snapshot["u2"].latitude == 12.9
    assert snapshot["u2"].longitude == 77.6


def test_second_report_overwrites(registry):
    """Test last-write-wins for the same entity."""
    first = registry.report_position("u1", 1.0, 1.0)
    registry.report_position("u1", 2.0, 3.0)

    snapshot = registry.snapshot()
    assert len(snapshot) == 1
    entity_id, record = snapshot[0]
    assert entity_id == "u1"
    assert (record.latitude, record.longitude) == (2.0, 3.0)
    assert record.observed_at >= first.observed_at


def test_one_record_per_entity(registry):
    """Test key uniqueness across many reports."""
    for i in range(20):
        registry.report_position(f"u{i % 3}", float(i), float(i))

    entity_ids = [entity_id for entity_id, _ in registry.snapshot()]
    assert sorted(entity_ids) == ["u0", "u1", "u2"]


@pytest.mark.parametrize("entity_id,lat,lon", [
    ("u1", 91, 0),
    ("u1", -90.5, 0),
    ("u1", 45, 200),
    ("u1", 45, -180.01),
    ("", 0, 0),
    ("   ", 0, 0),
    (None, 0, 0),
    ("u1", float("nan"), 0),
    ("u1", 0, float("inf")),
    ("u1", True, 0),
    ("u1", "45", 0),
    ("u1", 10 ** 400, 0),
    ("u1", 0, -(10 ** 400)),
])
def test_invalid_reports_rejected(registry, store, entity_id, lat, lon):
    """Test validation boundary; rejected reports leave the store untouched."""
    with pytest.raises(InvalidInput):
        registry.report_position(entity_id, lat, lon)
    assert len(store) == 0


def test_boundaries_accepted(registry):
    """Test that range limits are inclusive."""
    registry.report_position("north", 90, 180)
    registry.report_position("south", -90, -180)
    assert len(registry.snapshot()) == 2


def test_invalid_input_names_field(registry):
    """Test that InvalidInput reports the offending field."""
    with pytest.raises(InvalidInput) as exc_info:
        registry.report_position("u1", 0, 500)
    assert exc_info.value.field == "longitude"


def test_observed_at_from_server_clock(store):
    """Test that observed_at comes from the injected clock."""
    fixed = datetime(2024, 1, 1, tzinfo=timezone.utc)
    registry = RegistryService(store, clock=lambda: fixed)

    record = registry.report_position("u1", 1.0, 2.0)
    assert record.observed_at == fixed
    assert store.get("u1").observed_at == fixed


def test_observed_at_never_goes_back(store):
    """Test that a wall clock stepping back does not lower observed_at."""
    start = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    times = iter([start, start - timedelta(minutes=5)])
    registry = RegistryService(store, clock=lambda: next(times))

    registry.report_position("u1", 1.0, 2.0)
    second = registry.report_position("u1", 3.0, 4.0)

    assert second.observed_at == start
    assert store.get("u1").latitude == 3.0


def test_default_clock_is_utc(registry):
    """Test that default stamps are timezone-aware."""
    record = registry.report_position("u1", 1.0, 2.0)
    assert record.observed_at.utcoffset() == timedelta(0)


def test_unknown_entity_absent(registry):
    """Test that entities without an accepted report never appear."""
    registry.report_position("u1", 1.0, 2.0)
    with pytest.raises(InvalidInput):
        registry.report_position("u9", 100, 0)

    entity_ids = {entity_id for entity_id, _ in registry.snapshot()}
    assert entity_ids == {"u1"}
    assert registry.lookup("u9") is None


def test_storage_errors_propagate():
    """Test that store failures are not swallowed."""
    store = Mock()
    store.put.side_effect = StorageUnavailable("down")
    store.get_all.side_effect = StorageUnavailable("down")
    registry = RegistryService(store)

    with pytest.raises(StorageUnavailable):
        registry.report_position("u1", 1.0, 2.0)
    with pytest.raises(StorageUnavailable):
        registry.snapshot()


def test_concurrent_same_entity_never_mixes(registry):
    """Test that racing reports for one entity store exactly one of them."""
    barrier = threading.Barrier(2)

    def report(value):
        barrier.wait()
        for _ in range(200):
            registry.report_position("u3", value, value)

    threads = [threading.Thread(target=report, args=(v,)) for v in (1.0, 2.0)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    record = registry.lookup("u3")
    assert (record.latitude, record.longitude) in {(1.0, 1.0), (2.0, 2.0)}
    assert len(registry.snapshot()) == 1


def test_snapshots_during_writes_are_whole(registry):
    """Test that readers never see a record mixing two writes."""
    stop = threading.Event()
    torn = []

    def writer():
        i = 0
        while not stop.is_set():
            value = float(i % 50)
            registry.report_position("u4", value, value)
            i += 1

    def reader():
        for _ in range(500):
            for _, record in registry.snapshot():
                if record.latitude != record.longitude:
                    torn.append(record)

    w = threading.Thread(target=writer)
    w.start()
    try:
        reader()
    finally:
        stop.set()
        w.join()

    assert torn == []
