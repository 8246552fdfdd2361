from dataclasses import dataclass
from typing import Callable, Dict, List, MutableSequence, Optional, Sequence, Tuple

import numpy as np

from .catalog import CatalogError, CoordinateIndex, checked_position, is_below_horizon, read_geojson
from .color import RGB, constellation_colour, make_rng
from .coords import SkyCoordinate, wrap_longitude

Segment = Tuple[SkyCoordinate, SkyCoordinate]
# Per node: (constellation id, signed neighbour indices). Negative entries are phantom ends.
NodeConnections = Tuple[Tuple[str, Tuple[int, ...]], ...]


@dataclass(frozen=True)
class Constellation:
    id: str
    points: Tuple[SkyCoordinate, ...]
    segments: Tuple[Segment, ...]


def load_constellations(path: str) -> List[Constellation]:
    # d3-celestial constellations.lines.json: one MultiLineString per constellation, [lon, lat] vertices.
    data = read_geojson(path)
    order: List[str] = []
    segments: Dict[str, List[Segment]] = {}
    for feature in data.get("features", []):
        geometry = feature.get("geometry") or {}
        if not feature.get("id") or geometry.get("type") != "MultiLineString":
            continue
        cid = str(feature["id"])
        if cid not in segments:
            order.append(cid)
            segments[cid] = []
        for line in geometry.get("coordinates") or []:
            try:
                vertices = [
                    checked_position(float(p[1]), float(p[0]), f"constellation {cid} in {path}") for p in line
                ]
            except (IndexError, TypeError, ValueError) as exc:
                raise CatalogError(f"Malformed line in constellation {cid} of {path}") from exc
            for a, b in zip(vertices[:-1], vertices[1:]):
                segments[cid].append((a, b))
    if not order:
        raise CatalogError(f"No constellation lines found in {path}")
    constellations = []
    for cid in order:
        points = dict.fromkeys(p for segment in segments[cid] for p in segment)
        constellations.append(Constellation(cid, tuple(points), tuple(segments[cid])))
    return constellations


def decode_connection(value: int) -> Tuple[int, bool]:
    # Returns (node index, is_phantom).
    return abs(value), value < 0


def reflect_across_horizon(coord: SkyCoordinate, horizon: float) -> SkyCoordinate:
    lat = 2.0 * horizon - coord.latitude
    lon = coord.longitude
    # Fold back over the pole rather than leave the sphere.
    if lat > 90.0:
        lat = 180.0 - lat
        lon = wrap_longitude(lon + 180.0)
    elif lat < -90.0:
        lat = -180.0 - lat
        lon = wrap_longitude(lon + 180.0)
    return SkyCoordinate(lat, lon)


class _ConnectionTable:
    def __init__(self, node_count: int) -> None:
        self._lists: List[Dict[str, List[int]]] = [{} for _ in range(node_count)]

    def add(self, node: int, constellation_id: str, neighbour: int) -> None:
        neighbours = self._lists[node].setdefault(constellation_id, [])
        if neighbour not in neighbours:
            neighbours.append(neighbour)

    def freeze(self) -> List[NodeConnections]:
        return [
            tuple((cid, tuple(neighbours)) for cid, neighbours in table.items())
            for table in self._lists
        ]


def build_constellation_graph(
    constellations: Sequence[Constellation],
    index: CoordinateIndex,
    rotate: Callable[[SkyCoordinate], SkyCoordinate],
    unrotate: Callable[[SkyCoordinate], SkyCoordinate],
    horizon: float,
    colours: Optional[MutableSequence[RGB]] = None,
    rng: Optional[np.random.Generator] = None,
) -> List[NodeConnections]:
    """Resolve every constellation line onto mesh nodes.

    ``rotate`` takes the unoriented mesh frame to the sky and ``unrotate`` is
    its inverse. Lines with one end below ``horizon`` end on a phantom node:
    the hidden end is mirrored above the horizon and matched, and its index is
    stored negated. When ``colours`` is given, matched nodes take the
    constellation's display colour.
    """
    rng = rng if rng is not None else make_rng()
    table = _ConnectionTable(len(index))
    resolved: Dict[SkyCoordinate, int] = {}
    for constellation in constellations:
        colour = constellation_colour(rng)
        for point in constellation.points:
            node = resolved.get(point)
            if node is None:
                if is_below_horizon(point, unrotate, horizon):
                    continue
                match = index.closest(point)
                if match is None:
                    continue
                node = resolved[point] = match.index
            if colours is not None:
                colours[node] = colour
        for p1, p2 in constellation.segments:
            star1 = resolved.get(p1)
            star2 = resolved.get(p2)
            if star1 is not None and star2 is not None:
                if star1 == star2:
                    continue
                table.add(star1, constellation.id, star2)
                table.add(star2, constellation.id, star1)
            elif star1 is not None or star2 is not None:
                real, hidden = (star1, p2) if star1 is not None else (star2, p1)
                phantom = _phantom_index(hidden, index, rotate, unrotate, horizon)
                if phantom is None or phantom == real:
                    continue
                table.add(real, constellation.id, -phantom)
    return table.freeze()


def _phantom_index(
    hidden: SkyCoordinate,
    index: CoordinateIndex,
    rotate: Callable[[SkyCoordinate], SkyCoordinate],
    unrotate: Callable[[SkyCoordinate], SkyCoordinate],
    horizon: float,
) -> Optional[int]:
    mirrored = rotate(reflect_across_horizon(unrotate(hidden), horizon))
    match = index.closest(mirrored)
    return match.index if match is not None else None
