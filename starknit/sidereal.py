from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from .coords import SkyCoordinate, wrap_longitude

_DAYS_IN_MONTH = (31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)


def day_of_year(day: int, month: int) -> int:
    # Non-leap calendar; the sidereal approximation below is coarser than a day anyway.
    return sum(_DAYS_IN_MONTH[: month - 1]) + day


def to_utc(local: datetime, utc_offset_hours: Optional[float] = None) -> datetime:
    if local.tzinfo is not None:
        return local.astimezone(timezone.utc)
    if utc_offset_hours is None:
        raise ValueError("Naive local time needs a UTC offset or a time zone")
    if not -24.0 < utc_offset_hours < 24.0:
        raise ValueError(f"UTC offset must be within 24 hours, got {utc_offset_hours}")
    return (local - timedelta(hours=utc_offset_hours)).replace(tzinfo=timezone.utc)


def local_sidereal_hours(utc: datetime, longitude: float) -> float:
    n = day_of_year(utc.day, utc.month)
    gmst0 = 6.6 + 0.0657 * n
    ut = utc.hour + utc.minute / 60.0
    gmst = (gmst0 + 1.00273791 * ut) % 24.0
    return (gmst + longitude / 15.0) % 24.0


def zenith_radec(utc: datetime, latitude: float, longitude: float) -> Tuple[float, float]:
    # The star overhead has RA equal to local sidereal time and Dec equal to the observer's latitude.
    return local_sidereal_hours(utc, longitude), latitude


def zenith_coordinates(
    local: datetime,
    latitude: float,
    longitude: float,
    utc_offset_hours: Optional[float] = None,
) -> SkyCoordinate:
    if not -90.0 <= latitude <= 90.0:
        raise ValueError(f"Latitude must be in [-90, 90], got {latitude}")
    if not -180.0 <= longitude <= 180.0:
        raise ValueError(f"Longitude must be in [-180, 180], got {longitude}")
    ra_hours, dec = zenith_radec(to_utc(local, utc_offset_hours), latitude, longitude)
    return SkyCoordinate(dec, wrap_longitude(ra_hours * 15.0))
