import json

import numpy as np
import pytest

from starknit.background import (
    MilkyWayBand,
    assign_star_colours,
    band_contains,
    load_milky_way,
    milky_way_colours,
)
from starknit.catalog import CatalogError, CatalogStar, CoordinateIndex
from starknit.color import BACKGROUND, WHITE
from starknit.coords import SkyCoordinate


def _square(half):
    ring = np.array([(-half, -half), (half, -half), (half, half), (-half, half), (-half, -half)], dtype=float)
    return (ring,)


def _bands():
    return {
        0: MilkyWayBand(0, (_square(50.0),)),
        1: MilkyWayBand(1, (_square(20.0),)),
        2: MilkyWayBand(2, (_square(5.0),)),
    }


def test_point_only_in_faintest_band_keeps_level_zero_colour():
    colours = milky_way_colours([SkyCoordinate(30.0, 30.0)], _bands(), max_level=2)
    assert colours == [(50, 50, 250)]


def test_densest_enclosing_band_wins():
    coords = [None, SkyCoordinate(0.0, 0.0), SkyCoordinate(10.0, 10.0), SkyCoordinate(80.0, 100.0)]
    colours = milky_way_colours(coords, _bands(), max_level=2)
    assert colours == [BACKGROUND, (130, 130, 250), (90, 90, 250), BACKGROUND]


def test_max_level_caps_the_scan():
    colours = milky_way_colours([SkyCoordinate(0.0, 0.0)], _bands(), max_level=1)
    assert colours == [(90, 90, 250)]
    colours = milky_way_colours([SkyCoordinate(0.0, 0.0)], _bands(), max_level=0)
    assert colours == [(50, 50, 250)]


def test_load_milky_way_with_holes(tmp_path):
    outer = [[-40, -40], [40, -40], [40, 40], [-40, 40], [-40, -40]]
    hole = [[-10, -10], [10, -10], [10, 10], [-10, 10], [-10, -10]]
    far = [[100, 0], [120, 0], [120, 20], [100, 20], [100, 0]]
    data = {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "id": "ol1", "geometry": {"type": "Polygon", "coordinates": [outer, hole]}},
            {"type": "Feature", "properties": {"id": "ol2"}, "geometry": {"type": "MultiPolygon", "coordinates": [[far]]}},
            {"type": "Feature", "id": "mw-label", "geometry": {"type": "Point", "coordinates": [0, 0]}},
        ],
    }
    path = tmp_path / "mw.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    bands = load_milky_way(str(path))
    assert sorted(bands) == [1, 2]
    points = np.array([(0.0, 0.0), (30.0, 30.0), (110.0, 10.0)])
    assert band_contains(bands[1], points).tolist() == [False, True, False]
    assert band_contains(bands[2], points).tolist() == [False, False, True]


def test_load_milky_way_without_bands_is_an_error(tmp_path):
    path = tmp_path / "mw.json"
    path.write_text(json.dumps({"type": "FeatureCollection", "features": []}), encoding="utf-8")
    with pytest.raises(CatalogError):
        load_milky_way(str(path))


def test_bright_stars_turn_white_and_brightest_is_recorded():
    index = CoordinateIndex([None, SkyCoordinate(0.0, 0.0), SkyCoordinate(10.0, 10.0)])
    stars = [
        CatalogStar(SkyCoordinate(0.5, 0.0), 1.0, 0.2),
        CatalogStar(SkyCoordinate(0.2, 0.0), 5.0, 1.1),
        CatalogStar(SkyCoordinate(10.0, 10.0), 5.0, 0.6),
        CatalogStar(SkyCoordinate(-60.0, 0.0), -1.0, 0.0),
    ]
    colours = [BACKGROUND, (50, 50, 250), (50, 50, 250)]
    matches = assign_star_colours(stars, index, lambda c: c, -45.0, colours, magnitude_cutoff=4.0)
    assert matches[0] is None
    assert matches[1].magnitude == 1.0
    assert matches[1].colour_index == 0.2
    assert matches[2].magnitude == 5.0
    assert colours == [BACKGROUND, WHITE, (50, 50, 250)]


@pytest.mark.parametrize(
    "ring",
    [
        [[0, 0], [10], [10, 10], [0, 0]],
        [[0, 0], [10, 0], [10, "north"], [0, 0]],
        [[0, 0], [10, 0], [10, float("inf")], [0, 0]],
    ],
)
def test_malformed_milky_way_ring_is_an_error(tmp_path, ring):
    data = {
        "type": "FeatureCollection",
        "features": [{"type": "Feature", "id": "ol0", "geometry": {"type": "Polygon", "coordinates": [ring]}}],
    }
    path = tmp_path / "mw.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    with pytest.raises(CatalogError):
        load_milky_way(str(path))
