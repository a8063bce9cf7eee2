from __future__ import annotations

from datetime import timedelta

from core.database import InMemoryStore, create_store
from models.reading_model import NewReading


def test_upsert_keeps_handle_and_refreshes_last_seen(store, clock) -> None:
    first = store.upsert_device("dev-1")
    clock.advance(minutes=2)
    second = store.upsert_device("dev-1")

    assert second.id == first.id
    assert second.created_at == first.created_at
    assert second.last_seen_at == first.last_seen_at + timedelta(minutes=2)
    assert store.upsert_device("dev-2").id != first.id


def test_receipt_time_never_decreases(store, clock) -> None:
    device = store.upsert_device("dev-1")
    first = store.insert_reading(NewReading(device_id_ref=device.id, co2=500.0))
    clock.advance(seconds=-30)
    second = store.insert_reading(NewReading(device_id_ref=device.id, co2=510.0))

    assert second.timestamp >= first.timestamp


def test_find_readings_is_newest_first_and_limited(store, clock) -> None:
    device = store.upsert_device("dev-1")
    for value in range(5):
        store.insert_reading(NewReading(device_id_ref=device.id, co2=float(value)))
        clock.advance(seconds=10)

    readings = store.find_readings("dev-1", 3)

    assert [r.co2 for r in readings] == [4.0, 3.0, 2.0]
    assert store.find_readings("unknown", 3) == []


def test_find_recent_readings_respects_since(store, clock) -> None:
    device = store.upsert_device("dev-1")
    store.insert_reading(NewReading(device_id_ref=device.id, humidity=30.0))
    clock.advance(minutes=10)
    store.insert_reading(NewReading(device_id_ref=device.id, humidity=35.0))

    recent = store.find_recent_readings("dev-1", clock() - timedelta(minutes=5))

    assert [r.humidity for r in recent] == [35.0]


def test_delete_device_cascades_to_readings(store) -> None:
    kept = store.upsert_device("dev-keep")
    gone = store.upsert_device("dev-gone")
    store.insert_reading(NewReading(device_id_ref=kept.id, tvoc=10.0))
    store.insert_reading(NewReading(device_id_ref=gone.id, tvoc=20.0))

    assert store.delete_device("dev-gone")
    assert not store.delete_device("dev-gone")
    assert store.get_device("dev-gone") is None
    assert [r.tvoc for r in store.readings] == [10.0]


def test_create_store_memory_backend() -> None:
    assert isinstance(create_store("memory"), InMemoryStore)
