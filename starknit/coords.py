import math
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class SkyCoordinate:
    latitude: float
    longitude: float


def wrap_longitude(longitude: float) -> float:
    # Keep longitudes in (-180, 180]; non-finite input comes back as nan.
    if -180.0 < longitude <= 180.0:
        return longitude
    return 180.0 - ((180.0 - longitude) % 360.0)


def coordinate_to_vector(coord: SkyCoordinate) -> Tuple[float, float, float]:
    lat = math.radians(coord.latitude)
    lon = math.radians(coord.longitude)
    x = math.cos(lat) * math.cos(lon)
    y = math.cos(lat) * math.sin(lon)
    z = math.sin(lat)
    return x, y, z


def vector_to_coordinate(vec: Tuple[float, float, float]) -> SkyCoordinate:
    x, y, z = vec
    r = math.sqrt(x * x + y * y + z * z)
    if r == 0:
        return SkyCoordinate(0.0, 0.0)
    # atan2 stays accurate near the poles where asin(z / r) does not.
    lat = math.degrees(math.atan2(z, math.hypot(x, y)))
    lon = math.degrees(math.atan2(y, x))
    return SkyCoordinate(lat, wrap_longitude(lon))
