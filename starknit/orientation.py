import math
from dataclasses import dataclass
from typing import Callable, Dict, Tuple

from .coords import SkyCoordinate, coordinate_to_vector, vector_to_coordinate, wrap_longitude

Rotation = Callable[[SkyCoordinate], SkyCoordinate]

# Vertical offset applied on top of the target latitude for each mesh destination.
DESTINATION_OFFSETS: Dict[str, float] = {
    "front": 0.0,
    "crown": -90.0,
    "rim": 90.0,
}


class ConfigurationError(ValueError):
    """Invalid projection configuration."""


@dataclass(frozen=True)
class OrientationSpec:
    coordinates: SkyCoordinate
    target_destination: str = "crown"


NORTH_POLE = SkyCoordinate(90.0, 0.0)
SOUTH_POLE = SkyCoordinate(-90.0, 0.0)
DEFAULT_ORIENTATION = OrientationSpec(coordinates=NORTH_POLE, target_destination="crown")


def destination_offset(destination: str) -> float:
    try:
        return DESTINATION_OFFSETS[destination]
    except KeyError:
        raise ConfigurationError(
            f"Unknown target destination {destination!r}; expected one of {sorted(DESTINATION_OFFSETS)}"
        ) from None


def rotate_about_axis(coord: SkyCoordinate, angle_deg: float) -> SkyCoordinate:
    return SkyCoordinate(coord.latitude, wrap_longitude(coord.longitude + angle_deg))


def rotate_vertically(coord: SkyCoordinate, angle_deg: float) -> SkyCoordinate:
    # Tilt about the axis through longitude +/-90 on the equator; (0, 0) moves to (angle, 0).
    x, y, z = coordinate_to_vector(coord)
    a = math.radians(angle_deg)
    cos_a = math.cos(a)
    sin_a = math.sin(a)
    x2 = x * cos_a - z * sin_a
    z2 = x * sin_a + z * cos_a
    return vector_to_coordinate((x2, y, z2))


def _rotation_angles(spec: OrientationSpec) -> Tuple[float, float]:
    target = spec.coordinates
    if not (math.isfinite(target.latitude) and math.isfinite(target.longitude)):
        raise ConfigurationError(
            f"Orientation target must be finite, got ({target.latitude}, {target.longitude})"
        )
    if not -90.0 <= target.latitude <= 90.0:
        raise ConfigurationError(f"Orientation latitude must be in [-90, 90], got {target.latitude}")
    return target.latitude + destination_offset(spec.target_destination), target.longitude


def rotate_to_destination(spec: OrientationSpec) -> Rotation:
    # Build the mesh -> sky rotation so the chosen destination faces the target point.
    vertical, spin = _rotation_angles(spec)

    def forward(coord: SkyCoordinate) -> SkyCoordinate:
        return rotate_about_axis(rotate_vertically(coord, vertical), spin)

    return forward


def rotate_from_destination(spec: OrientationSpec) -> Rotation:
    vertical, spin = _rotation_angles(spec)

    def inverse(coord: SkyCoordinate) -> SkyCoordinate:
        return rotate_vertically(rotate_about_axis(coord, -spin), -vertical)

    return inverse
