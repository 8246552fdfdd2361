import csv
import json
import math
import os
from dataclasses import dataclass
from typing import Callable, List, NamedTuple, Optional, Sequence, Union

import numpy as np

from .coords import SkyCoordinate, wrap_longitude
from .projections import ANCHOR_NODE


class CatalogError(ValueError):
    """A catalog file is missing or cannot be parsed."""


@dataclass(frozen=True)
class CatalogStar:
    position: SkyCoordinate
    magnitude: float
    colour_index: float


class Match(NamedTuple):
    index: int
    distance: float


def _safe_float(value, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def checked_position(lat: float, lon: float, where: str) -> SkyCoordinate:
    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise CatalogError(f"Non-finite coordinate ({lat}, {lon}) for {where}")
    return SkyCoordinate(lat, wrap_longitude(lon))


def read_geojson(path: str) -> dict:
    if not os.path.exists(path):
        raise CatalogError(f"Catalog not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise CatalogError(f"Catalog is not valid JSON: {path}") from exc
    if not isinstance(data, dict) or data.get("type") != "FeatureCollection":
        raise CatalogError(f"Expected a GeoJSON FeatureCollection in {path}")
    return data


def load_star_catalog(path: str) -> List[CatalogStar]:
    # d3-celestial star files are GeoJSON points; HYG exports are CSV with RA in hours.
    if path.lower().endswith(".csv"):
        return _load_hyg_stars(path)
    return _load_geojson_stars(path)


def _load_geojson_stars(path: str) -> List[CatalogStar]:
    data = read_geojson(path)
    stars: List[CatalogStar] = []
    for feature in data.get("features", []):
        geometry = feature.get("geometry") or {}
        if geometry.get("type") != "Point":
            continue
        coords = geometry.get("coordinates") or []
        if len(coords) < 2:
            raise CatalogError(f"Star {feature.get('id')} has no coordinates in {path}")
        props = feature.get("properties") or {}
        try:
            lon, lat = float(coords[0]), float(coords[1])
        except (TypeError, ValueError) as exc:
            raise CatalogError(f"Star {feature.get('id')} has malformed coordinates in {path}") from exc
        stars.append(
            CatalogStar(
                position=checked_position(lat, lon, f"star {feature.get('id')} in {path}"),
                magnitude=_safe_float(props.get("mag"), default=99.0),
                colour_index=_safe_float(props.get("bv")),
            )
        )
    if not stars:
        raise CatalogError(f"No stars found in {path}")
    return stars


def _load_hyg_stars(path: str) -> List[CatalogStar]:
    if not os.path.exists(path):
        raise CatalogError(f"Catalog not found: {path}")
    stars: List[CatalogStar] = []
    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        if not reader.fieldnames or not {"ra", "dec", "mag"} <= set(reader.fieldnames):
            raise CatalogError(f"HYG catalog {path} needs ra, dec and mag columns")
        for row_num, row in enumerate(reader):
            # The Sun sits at the origin of HYG and has no sky position.
            if (row.get("proper", "") or "").strip() == "Sol":
                continue
            ra_hours = _safe_float(row.get("ra"))
            dec = _safe_float(row.get("dec"))
            stars.append(
                CatalogStar(
                    position=checked_position(dec, ra_hours * 15.0, f"row {row_num} of {path}"),
                    magnitude=_safe_float(row.get("mag"), default=99.0),
                    colour_index=_safe_float(row.get("ci")),
                )
            )
    if not stars:
        raise CatalogError(f"No stars found in {path}")
    return stars


class CoordinateIndex:
    """Oriented mesh coordinates packed for repeated nearest-node queries.

    The anchor node and entries that are ``None`` (degenerate nodes) are kept
    for index alignment but are never returned as a match, so every match
    index is positive and can be stored negated.
    """

    def __init__(self, coordinates: Sequence[Optional[SkyCoordinate]]) -> None:
        count = len(coordinates)
        self.lat = np.full(count, np.nan, dtype=np.float64)
        self.lon = np.full(count, np.nan, dtype=np.float64)
        for i, coord in enumerate(coordinates):
            if coord is not None and i != ANCHOR_NODE:
                self.lat[i] = coord.latitude
                self.lon[i] = coord.longitude
        self.valid = np.isfinite(self.lat) & np.isfinite(self.lon)

    def __len__(self) -> int:
        return len(self.lat)

    def closest(self, target: SkyCoordinate) -> Optional[Match]:
        if not self.valid.any():
            return None
        if not (math.isfinite(target.latitude) and math.isfinite(target.longitude)):
            return None
        # Planar lat/lon distance; catalog points are pre-filtered to the visible patch.
        dist = np.hypot(self.lat - target.latitude, self.lon - target.longitude)
        dist[~self.valid] = np.inf
        # argmin keeps the first index on ties.
        idx = int(np.argmin(dist))
        return Match(idx, float(dist[idx]))


def find_closest_index(
    target: SkyCoordinate,
    coordinates: Union[CoordinateIndex, Sequence[Optional[SkyCoordinate]]],
) -> Optional[Match]:
    index = coordinates if isinstance(coordinates, CoordinateIndex) else CoordinateIndex(coordinates)
    return index.closest(target)


def is_below_horizon(
    point: SkyCoordinate,
    unrotate: Callable[[SkyCoordinate], SkyCoordinate],
    horizon: float,
) -> bool:
    return unrotate(point).latitude < horizon
