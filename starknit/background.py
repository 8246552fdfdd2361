import re
from dataclasses import dataclass
from typing import Callable, Dict, List, MutableSequence, Optional, Sequence, Tuple

import numpy as np
from matplotlib.path import Path

from .catalog import CatalogError, CatalogStar, CoordinateIndex, is_below_horizon, read_geojson
from .color import BACKGROUND, MAX_MILKY_WAY_LEVEL, RGB, WHITE, milky_way_colour
from .coords import SkyCoordinate

# A polygon is its exterior ring followed by any holes, each ring as (lon, lat) vertices.
Polygon = Tuple[np.ndarray, ...]

_LEVEL_RE = re.compile(r"^ol(\d)$")


@dataclass(frozen=True)
class MilkyWayBand:
    level: int
    polygons: Tuple[Polygon, ...]


@dataclass(frozen=True)
class StarMatch:
    magnitude: float
    colour_index: float


def load_milky_way(path: str) -> Dict[int, MilkyWayBand]:
    # d3-celestial density outlines, feature ids ol0 (faint) .. ol5 (dense core).
    data = read_geojson(path)
    polygons: Dict[int, List[Polygon]] = {}
    for feature in data.get("features", []):
        fid = feature.get("id") or (feature.get("properties") or {}).get("id") or ""
        m = _LEVEL_RE.match(str(fid))
        if not m:
            continue
        level = int(m.group(1))
        geometry = feature.get("geometry") or {}
        gtype = geometry.get("type")
        coords = geometry.get("coordinates") or []
        if gtype == "Polygon":
            parts = [coords]
        elif gtype == "MultiPolygon":
            parts = coords
        else:
            raise CatalogError(f"Milky Way feature {fid} has unsupported geometry {gtype!r}")
        for rings in parts:
            try:
                polygon = tuple(_ring_array(ring) for ring in rings if len(ring) >= 3)
            except (IndexError, TypeError, ValueError) as exc:
                raise CatalogError(f"Malformed ring in Milky Way feature {fid} of {path}") from exc
            if not all(np.isfinite(ring).all() for ring in polygon):
                raise CatalogError(f"Non-finite vertex in Milky Way feature {fid} of {path}")
            if polygon:
                polygons.setdefault(level, []).append(polygon)
    if not polygons:
        raise CatalogError(f"No Milky Way bands (ol0..ol5) found in {path}")
    return {level: MilkyWayBand(level, tuple(polys)) for level, polys in polygons.items()}


def _ring_array(ring) -> np.ndarray:
    arr = np.asarray(ring, dtype=np.float64)
    if arr.ndim != 2 or arr.shape[1] < 2:
        raise ValueError(f"ring vertices must be [lon, lat] pairs, got shape {arr.shape}")
    return arr[:, :2]


def _points_in_polygon(points: np.ndarray, polygon: Polygon) -> np.ndarray:
    inside = Path(polygon[0]).contains_points(points)
    for hole in polygon[1:]:
        inside &= ~Path(hole).contains_points(points)
    return inside


def band_contains(band: MilkyWayBand, points: np.ndarray) -> np.ndarray:
    inside = np.zeros(len(points), dtype=bool)
    for polygon in band.polygons:
        inside |= _points_in_polygon(points, polygon)
    return inside


def milky_way_colours(
    coordinates: Sequence[Optional[SkyCoordinate]],
    bands: Dict[int, MilkyWayBand],
    max_level: int,
) -> List[RGB]:
    # Scan from the densest requested band down; the first band containing a node wins.
    colours: List[RGB] = [BACKGROUND] * len(coordinates)
    mapped = [i for i, c in enumerate(coordinates) if c is not None]
    if not mapped:
        return colours
    points = np.array(
        [(coordinates[i].longitude, coordinates[i].latitude) for i in mapped], dtype=np.float64
    )
    unresolved = np.ones(len(mapped), dtype=bool)
    top = max(0, min(MAX_MILKY_WAY_LEVEL, int(max_level)))
    for level in range(top, -1, -1):
        band = bands.get(level)
        if band is None or not unresolved.any():
            continue
        hits = unresolved & band_contains(band, points)
        colour = milky_way_colour(level)
        for k in np.nonzero(hits)[0]:
            colours[mapped[k]] = colour
        unresolved &= ~hits
    return colours


def assign_star_colours(
    stars: Sequence[CatalogStar],
    index: CoordinateIndex,
    unrotate: Callable[[SkyCoordinate], SkyCoordinate],
    horizon: float,
    colours: MutableSequence[RGB],
    magnitude_cutoff: float,
) -> List[Optional[StarMatch]]:
    # Each node keeps the brightest star matched to it; bright stars knit white.
    matches: List[Optional[StarMatch]] = [None] * len(index)
    for star in stars:
        if is_below_horizon(star.position, unrotate, horizon):
            continue
        match = index.closest(star.position)
        if match is None:
            continue
        current = matches[match.index]
        if current is None or star.magnitude < current.magnitude:
            matches[match.index] = StarMatch(star.magnitude, star.colour_index)
        if star.magnitude < magnitude_cutoff:
            colours[match.index] = WHITE
    return matches
