from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from starknit.sidereal import day_of_year, local_sidereal_hours, zenith_coordinates


def test_day_of_year():
    assert day_of_year(1, 1) == 1
    assert day_of_year(1, 3) == 60
    assert day_of_year(31, 12) == 365


def test_sidereal_time_at_greenwich_midnight():
    utc = datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc)
    assert np.isclose(local_sidereal_hours(utc, 0.0), 6.6657)


def test_zenith_from_naive_local_time_and_offset():
    coord = zenith_coordinates(datetime(2024, 1, 1, 2, 0), 51.5, 0.0, utc_offset_hours=2.0)
    assert np.isclose(coord.latitude, 51.5)
    assert np.isclose(coord.longitude, 99.9855)


def test_zenith_from_aware_time_wraps_longitude():
    local = datetime(2024, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=12)))
    coord = zenith_coordinates(local, -40.0, 180.0)
    # LST 18.6657 h -> 279.9855 degrees -> wrapped into (-180, 180].
    assert np.isclose(coord.longitude, -80.0145)
    assert np.isclose(coord.latitude, -40.0)


def test_naive_time_needs_an_offset():
    with pytest.raises(ValueError):
        zenith_coordinates(datetime(2024, 1, 1, 0, 0), 0.0, 0.0)


def test_latitude_out_of_range():
    with pytest.raises(ValueError):
        zenith_coordinates(datetime(2024, 1, 1, tzinfo=timezone.utc), 95.0, 0.0)


@pytest.mark.parametrize("latitude,longitude,offset", [(0.0, float("inf"), 0.0), (float("nan"), 0.0, 0.0), (0.0, 0.0, float("inf"))])
def test_non_finite_inputs_are_rejected(latitude, longitude, offset):
    with pytest.raises(ValueError):
        zenith_coordinates(datetime(2024, 1, 1, 0, 0), latitude, longitude, utc_offset_hours=offset)
