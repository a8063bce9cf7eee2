from __future__ import annotations

import threading

import pytest

from core.errors import EmptyPayloadError, MissingFieldError, NotFoundError, OutOfRangeError, StoreError
from core.ingestion import ReadingService
from models.reading_model import ReadingResponse, ReadingSubmission, SimulatedDataResponse


def _submit(service: ReadingService, **body) -> ReadingResponse:
    return service.ingest(ReadingSubmission(**body))


def test_missing_device_id_rejected_before_counters(service, tracker, store) -> None:
    with pytest.raises(MissingFieldError):
        _submit(service, client_id="phone", temperature=21.0)
    with pytest.raises(MissingFieldError):
        _submit(service, device_id="   ", temperature=21.0)

    assert tracker.weight_of("phone") == 1
    assert store.list_devices() == []


def test_empty_payload_rejected(service, tracker) -> None:
    with pytest.raises(EmptyPayloadError):
        _submit(service, device_id="dev-1", client_id="phone")

    assert tracker.total_for("dev-1") == 0


def test_out_of_range_discards_whole_submission(service, store, tracker) -> None:
    with pytest.raises(OutOfRangeError):
        _submit(service, device_id="dev-1", temperature=21.0, co2=9000)

    assert store.readings == []
    assert tracker.total_for("dev-1") == 0


def test_legacy_alias_is_validated_and_stored_as_pm25(service) -> None:
    reading = _submit(service, device_id="dev-1", pm2_5=17.5)
    assert reading.pm25 == 17.5

    with pytest.raises(OutOfRangeError) as excinfo:
        _submit(service, device_id="dev-1", pm2_5=750)
    assert excinfo.value.field == "pm25"


def test_explicit_pm25_wins_over_alias(service) -> None:
    reading = _submit(service, device_id="dev-1", pm25=10.0, pm2_5=99.0)

    assert reading.pm25 == 10.0


def test_first_reading_stored_unmodified(service, tracker) -> None:
    reading = _submit(service, device_id="dev-1", client_id="phone", temperature=21.4, humidity=45.0)

    assert reading.device_id == "dev-1"
    assert reading.client_id == "phone"
    assert reading.temperature == 21.4
    assert reading.humidity == 45.0
    assert reading.co2 is None
    assert tracker.weight_of("phone") == 1
    assert tracker.total_for("dev-1") == 1


def test_second_reading_in_window_is_merged(service, clock) -> None:
    _submit(service, device_id="dev-1", temperature=20.0)
    clock.advance(seconds=30)

    # Anonymous client has weight 2 by now, the same bucket as the prior reading
    reading = _submit(service, device_id="dev-1", temperature=22.0, co2=600.0)

    assert reading.temperature == pytest.approx(21.0)
    assert reading.co2 == 600.0


def test_reading_after_window_is_not_merged(service, clock) -> None:
    _submit(service, device_id="dev-1", temperature=20.0)
    clock.advance(minutes=6)

    reading = _submit(service, device_id="dev-1", temperature=22.0)

    assert reading.temperature == 22.0


def test_concurrent_submissions_chain_their_merges(service, store) -> None:
    _submit(service, device_id="dev-1", client_id="a", co2=1000.0)

    barrier = threading.Barrier(2)

    def submit(client_id: str) -> None:
        barrier.wait()
        _submit(service, device_id="dev-1", client_id=client_id, co2=0.0)

    threads = [threading.Thread(target=submit, args=(c,)) for c in ("b", "c")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    # The second merge sees the first one's result instead of the original reading
    assert sorted(r.co2 for r in store.readings) == [250.0, 500.0, 1000.0]


def test_retrieval_simulates_below_threshold(service) -> None:
    for _ in range(4):
        _submit(service, device_id="dev-1", temperature=21.0)

    result = service.get_readings("dev-1")

    assert isinstance(result, SimulatedDataResponse)
    assert result.simulated is True
    assert result.device_id == "dev-1"


def test_retrieval_returns_readings_at_threshold(service, clock) -> None:
    for value in (10.0, 11.0, 12.0, 13.0, 14.0):
        _submit(service, device_id="dev-1", humidity=value)
        clock.advance(minutes=10)

    result = service.get_readings("dev-1", 3)

    assert [r.humidity for r in result] == [14.0, 13.0, 12.0]
    assert all(r.device_id == "dev-1" for r in result)


def test_retrieval_interpolates_gaps(service, clock) -> None:
    _submit(service, device_id="dev-1", temperature=30.0, humidity=50.0)
    clock.advance(minutes=10)
    _submit(service, device_id="dev-1", humidity=51.0)
    clock.advance(minutes=10)
    _submit(service, device_id="dev-1", temperature=10.0, humidity=52.0)
    for _ in range(2):
        service.tracker.record_device("dev-1")

    result = service.get_readings("dev-1")

    assert [r.temperature for r in result] == [10.0, 20.0, 30.0]


def test_retrieval_not_found_with_enough_history(service, tracker) -> None:
    for _ in range(5):
        tracker.record_device("ghost")

    with pytest.raises(NotFoundError):
        service.get_readings("ghost")


def test_store_failure_surfaces_as_store_error(service, store, tracker, monkeypatch) -> None:
    def broken(reading):
        raise RuntimeError("disk full")

    monkeypatch.setattr(store, "insert_reading", broken)

    with pytest.raises(StoreError):
        _submit(service, device_id="dev-1", temperature=20.0)
    assert store.readings == []


def test_delete_device_removes_readings(service, store) -> None:
    _submit(service, device_id="dev-1", temperature=20.0)

    assert service.delete_device("dev-1")
    assert store.readings == []
    assert not service.delete_device("dev-1")


def test_device_keys_are_not_normalized(service, store, tracker) -> None:
    _submit(service, device_id="dev-1", temperature=20.0)
    reading = _submit(service, device_id=" dev-1 ", temperature=30.0)

    assert reading.device_id == " dev-1 "
    assert reading.temperature == 30.0
    assert tracker.total_for("dev-1") == 1
    assert tracker.total_for(" dev-1 ") == 1
    assert {d.device_id for d in store.list_devices()} == {"dev-1", " dev-1 "}


def test_device_locks_are_released_after_use(service) -> None:
    _submit(service, device_id="dev-1", temperature=20.0)
    assert len(service.locks) == 0

    service.delete_device("dev-1")
    assert len(service.locks) == 0


def test_device_lock_entry_survives_while_contended(service) -> None:
    locks = service.locks
    entered = threading.Event()
    release = threading.Event()

    def holder() -> None:
        with locks.hold("dev-1"):
            entered.set()
            release.wait(timeout=5)

    thread = threading.Thread(target=holder)
    thread.start()
    entered.wait(timeout=5)
    assert len(locks) == 1

    release.set()
    thread.join()
    assert len(locks) == 0
