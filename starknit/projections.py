import math
from typing import List, Optional, Sequence, Tuple

from .coords import SkyCoordinate, wrap_longitude

MeshPosition = Tuple[float, float, float]

ANCHOR_NODE = 0


class DegenerateGeometryError(ValueError):
    """A mesh node sits on the projection centre and has no direction."""


def project_position(
    position: MeshPosition, max_y: float, show_whole_sky: bool = False
) -> SkyCoordinate:
    # The caller must not pass a node on the centre itself (x == z == 0, y == max_y / 2).
    x, y, z = position
    centre = max_y / 2.0
    shifted_y = y - centre
    r = math.sqrt(x * x + shifted_y * shifted_y + z * z)
    if r == 0:
        raise DegenerateGeometryError(f"Node at {position} coincides with the sphere centre")
    x_norm = x / r
    y_norm = shifted_y / r
    z_norm = z / r
    longitude = wrap_longitude(math.degrees(math.atan2(z_norm, -x_norm)))
    latitude = math.degrees(math.asin(max(-1.0, min(1.0, y_norm))))
    if not show_whole_sky or y >= centre:
        return SkyCoordinate(latitude, longitude)
    # Below the equator an open mesh (a hat brim) flattens into a cylinder.
    ratio = shifted_y / centre if centre != 0 else -1.0
    cylindrical = math.degrees(math.asin(max(-1.0, min(1.0, ratio))))
    return SkyCoordinate(cylindrical, longitude)


def mesh_max_y(positions: Sequence[MeshPosition]) -> float:
    if not positions:
        raise ValueError("Mesh has no nodes")
    return max(p[1] for p in positions)


def project_mesh(
    positions: Sequence[MeshPosition], show_whole_sky: bool = False
) -> Tuple[List[Optional[SkyCoordinate]], List[int]]:
    # Node 0 is the anchor and never lands on the sky; degenerate nodes are skipped, not fatal.
    max_y = mesh_max_y(positions)
    coordinates: List[Optional[SkyCoordinate]] = []
    skipped: List[int] = []
    for idx, position in enumerate(positions):
        if idx == ANCHOR_NODE:
            coordinates.append(None)
            continue
        try:
            coordinates.append(project_position(position, max_y, show_whole_sky))
        except DegenerateGeometryError:
            coordinates.append(None)
            skipped.append(idx)
    return coordinates, skipped


def horizon_latitude(positions: Sequence[MeshPosition], show_whole_sky: bool = False) -> float:
    # The anchor node marks the lowest edge of the visible patch.
    max_y = mesh_max_y(positions)
    return project_position(positions[ANCHOR_NODE], max_y, show_whole_sky).latitude
