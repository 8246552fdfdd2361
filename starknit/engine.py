import json
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .background import MilkyWayBand, assign_star_colours, load_milky_way, milky_way_colours
from .catalog import CatalogStar, CoordinateIndex, load_star_catalog
from .color import MAX_MILKY_WAY_LEVEL, RGB, bv_to_rgb, make_rng
from .constellation_lines import (
    Constellation,
    NodeConnections,
    build_constellation_graph,
    load_constellations,
)
from .coords import SkyCoordinate
from .orientation import (
    ConfigurationError,
    OrientationSpec,
    rotate_from_destination,
    rotate_to_destination,
)
from .projections import MeshPosition, horizon_latitude, project_mesh


@dataclass(frozen=True)
class ProjectionSettings:
    colour_milky_way: int = 1
    show_stars_up_to_magnitude: float = 4.0
    colour_constellation: bool = False
    show_whole_sky: bool = False
    seed: Optional[int] = None


@dataclass(frozen=True)
class StarInfo:
    magnitude: Optional[float] = None
    colour_index: Optional[float] = None
    connected_stars: NodeConnections = ()

    def connections(self, constellation_id: str) -> Tuple[int, ...]:
        for cid, neighbours in self.connected_stars:
            if cid == constellation_id:
                return neighbours
        return ()


@dataclass(frozen=True)
class ProjectionResult:
    colours: Tuple[RGB, ...]
    star_information: Tuple[StarInfo, ...]
    coordinates: Tuple[Optional[SkyCoordinate], ...]
    horizon: float
    skipped_nodes: Tuple[int, ...] = ()


@dataclass(frozen=True)
class SkyCatalog:
    stars: Tuple[CatalogStar, ...]
    constellations: Tuple[Constellation, ...]
    milky_way: Dict[int, MilkyWayBand]


def load_sky_catalog(stars_path: str, constellations_path: str, milky_way_path: str) -> SkyCatalog:
    # Loaded once at start-up; any CatalogError here is fatal.
    return SkyCatalog(
        stars=tuple(load_star_catalog(stars_path)),
        constellations=tuple(load_constellations(constellations_path)),
        milky_way=load_milky_way(milky_way_path),
    )


_CATALOG_LOCK = threading.Lock()
_CATALOG: Optional[Dict[str, object]] = None


def cached_sky_catalog(stars_path: str, constellations_path: str, milky_way_path: str) -> SkyCatalog:
    global _CATALOG
    key = (stars_path, constellations_path, milky_way_path)
    with _CATALOG_LOCK:
        if _CATALOG is None or _CATALOG.get("key") != key:
            _CATALOG = {"key": key, "catalog": load_sky_catalog(*key)}
        return _CATALOG["catalog"]


def validate_settings(settings: ProjectionSettings) -> None:
    if not 0 <= settings.colour_milky_way <= MAX_MILKY_WAY_LEVEL:
        raise ConfigurationError(
            f"colour_milky_way must be between 0 and {MAX_MILKY_WAY_LEVEL}, got {settings.colour_milky_way}"
        )


def project_sky(
    positions: Sequence[MeshPosition],
    orientation: OrientationSpec,
    catalog: SkyCatalog,
    settings: ProjectionSettings = ProjectionSettings(),
    rng: Optional[np.random.Generator] = None,
) -> ProjectionResult:
    """Colour a settled mesh with the sky and resolve constellation lines onto it.

    Runs to completion on one position snapshot. Configuration problems raise
    before any work is done; degenerate nodes are left unmapped and listed in
    ``skipped_nodes``.
    """
    validate_settings(settings)
    rotate = rotate_to_destination(orientation)
    unrotate = rotate_from_destination(orientation)
    rng = rng if rng is not None else make_rng(settings.seed)

    raw, skipped = project_mesh(positions, settings.show_whole_sky)
    horizon = horizon_latitude(positions, settings.show_whole_sky)
    oriented = [rotate(c) if c is not None else None for c in raw]
    index = CoordinateIndex(oriented)

    colours: List[RGB] = milky_way_colours(oriented, catalog.milky_way, settings.colour_milky_way)
    connections = build_constellation_graph(
        catalog.constellations,
        index,
        rotate,
        unrotate,
        horizon,
        colours=colours if settings.colour_constellation else None,
        rng=rng,
    )
    matches = assign_star_colours(
        catalog.stars, index, unrotate, horizon, colours, settings.show_stars_up_to_magnitude
    )

    star_information = []
    for match, node_connections in zip(matches, connections):
        star_information.append(
            StarInfo(
                magnitude=match.magnitude if match else None,
                colour_index=match.colour_index if match else None,
                connected_stars=node_connections,
            )
        )
    return ProjectionResult(
        colours=tuple(colours),
        star_information=tuple(star_information),
        coordinates=tuple(oriented),
        horizon=horizon,
        skipped_nodes=tuple(skipped),
    )


class LatestResult:
    """Keeps only the newest projection when requests overlap.

    Call :meth:`begin` when a request starts and :meth:`publish` with the
    returned generation when it finishes; results from superseded requests
    are refused.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._generation = 0
        self._result: Optional[ProjectionResult] = None

    def begin(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def publish(self, generation: int, result: ProjectionResult) -> bool:
        with self._lock:
            if generation != self._generation:
                return False
            self._result = result
            return True

    @property
    def result(self) -> Optional[ProjectionResult]:
        with self._lock:
            return self._result


def result_to_dict(result: ProjectionResult) -> Dict[str, object]:
    nodes = []
    for i, (colour, info) in enumerate(zip(result.colours, result.star_information)):
        coord = result.coordinates[i]
        nodes.append(
            {
                "id": i,
                "colour": list(colour),
                "latitude": coord.latitude if coord else None,
                "longitude": coord.longitude if coord else None,
                "magnitude": info.magnitude,
                "colour_index": info.colour_index,
                "star_colour": list(bv_to_rgb(info.colour_index)) if info.magnitude is not None else None,
                "connected_stars": {cid: list(neighbours) for cid, neighbours in info.connected_stars},
            }
        )
    return {
        "horizon": result.horizon,
        "skipped_nodes": list(result.skipped_nodes),
        "nodes": nodes,
    }


def result_to_json(result: ProjectionResult, indent: Optional[int] = 2) -> str:
    return json.dumps(result_to_dict(result), indent=indent)
