from __future__ import annotations

from datetime import datetime, timedelta, timezone

from core.interpolation import SeriesInterpolator
from models.reading_model import Reading

_BASE = datetime(2025, 4, 17, 8, 0, tzinfo=timezone.utc)


def _reading(reading_id: int, **values) -> Reading:
    return Reading(id=reading_id, device_id_ref=1, timestamp=_BASE - timedelta(minutes=reading_id), **values)


def test_interior_null_is_mean_of_neighbours() -> None:
    batch = [_reading(1, temperature=10.0), _reading(2), _reading(3, temperature=30.0)]

    result = SeriesInterpolator().interpolate(batch)

    assert result[1].temperature == 20.0
    assert result[1].id == 2


def test_first_and_last_elements_are_never_modified() -> None:
    batch = [_reading(1), _reading(2, humidity=40.0), _reading(3)]

    result = SeriesInterpolator().interpolate(batch)

    assert result[0] == batch[0]
    assert result[-1] == batch[-1]
    assert result[0].humidity is None
    assert result[-1].humidity is None


def test_short_batches_pass_through() -> None:
    interpolator = SeriesInterpolator()
    single = [_reading(1)]
    pair = [_reading(1, co2=400.0), _reading(2)]

    assert interpolator.interpolate(single) == single
    assert interpolator.interpolate(pair) == pair
    assert interpolator.interpolate([]) == []


def test_consecutive_nulls_use_original_neighbours() -> None:
    batch = [
        _reading(1, pm25=10.0),
        _reading(2),
        _reading(3),
        _reading(4, pm25=40.0),
    ]

    result = SeriesInterpolator().interpolate(batch)

    # Each interior null has one null neighbour, so neither is filled
    assert result[1].pm25 is None
    assert result[2].pm25 is None


def test_present_values_are_untouched() -> None:
    batch = [_reading(1, tvoc=100.0), _reading(2, tvoc=5.0, co2=None), _reading(3, tvoc=300.0, co2=800.0)]

    result = SeriesInterpolator().interpolate(batch)

    assert result[1].tvoc == 5.0
    assert result[1].co2 is None
    assert batch[1].co2 is None
