import argparse
import os
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .catalog import CatalogError
from .coords import SkyCoordinate
from .engine import ProjectionSettings, cached_sky_catalog, project_sky, result_to_json
from .mesh import load_positions
from .orientation import (
    DESTINATION_OFFSETS,
    NORTH_POLE,
    SOUTH_POLE,
    ConfigurationError,
    OrientationSpec,
)
from .render import save_preview
from .sidereal import zenith_coordinates

_PRESETS = {
    "north-pole": NORTH_POLE,
    "south-pole": SOUTH_POLE,
}


def _parse_local_time(args: argparse.Namespace) -> datetime:
    try:
        local = datetime.strptime(args.when, "%Y-%m-%d %H:%M")
    except ValueError:
        raise SystemExit(f"--when must look like 'YYYY-MM-DD HH:MM', got {args.when!r}")
    if args.timezone:
        try:
            return local.replace(tzinfo=ZoneInfo(args.timezone))
        except ZoneInfoNotFoundError:
            raise SystemExit(f"Unknown time zone: {args.timezone}")
    return local


def _derive_zenith(args: argparse.Namespace) -> SkyCoordinate:
    local = _parse_local_time(args)
    if local.tzinfo is None and args.utc_offset is None:
        raise SystemExit("Pass --timezone or --utc-offset with --when.")
    try:
        return zenith_coordinates(local, args.observer_lat, args.observer_lon, args.utc_offset)
    except ValueError as exc:
        raise SystemExit(str(exc))


def _resolve_orientation(args: argparse.Namespace) -> OrientationSpec:
    # Precedence: explicit sky point, then preset, then zenith at a time and place.
    if (args.latitude is None) != (args.longitude is None):
        raise SystemExit("Pass --latitude and --longitude together.")
    if args.latitude is not None:
        coordinates = SkyCoordinate(args.latitude, args.longitude)
    elif args.preset:
        coordinates = _PRESETS[args.preset]
    elif args.when:
        coordinates = _derive_zenith(args)
    else:
        coordinates = NORTH_POLE
    return OrientationSpec(coordinates=coordinates, target_destination=args.destination)


def run_project(args: argparse.Namespace) -> None:
    try:
        catalog = cached_sky_catalog(args.stars, args.constellations, args.milky_way)
    except CatalogError as exc:
        raise SystemExit(f"Catalog load failed: {exc}")
    try:
        positions = load_positions(args.positions)
    except (OSError, ValueError) as exc:
        raise SystemExit(f"Position load failed: {exc}")
    orientation = _resolve_orientation(args)
    settings = ProjectionSettings(
        colour_milky_way=args.colour_milky_way,
        show_stars_up_to_magnitude=args.mag_limit,
        colour_constellation=args.colour_constellation,
        show_whole_sky=args.whole_sky,
        seed=args.seed,
    )
    try:
        result = project_sky(positions, orientation, catalog, settings)
    except ConfigurationError as exc:
        raise SystemExit(f"Invalid configuration: {exc}")
    out_dir = os.path.dirname(args.out)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    with open(args.out, "w", encoding="utf-8") as f:
        f.write(result_to_json(result))
    print(f"Wrote {args.out}")
    if result.skipped_nodes:
        print(f"Skipped degenerate nodes: {', '.join(str(i) for i in result.skipped_nodes)}")
    if args.preview:
        save_preview(result, args.preview, width=args.preview_size)
        print(f"Wrote {args.preview}")


def run_zenith(args: argparse.Namespace) -> None:
    coord = _derive_zenith(args)
    ra_hours = (coord.longitude % 360.0) / 15.0
    print(f"Zenith: latitude {coord.latitude:.3f}, longitude {coord.longitude:.3f} (RA {ra_hours:.3f} h)")


def _add_time_args(parser: argparse.ArgumentParser, required: bool) -> None:
    parser.add_argument("--when", required=required, help="Local time, 'YYYY-MM-DD HH:MM'")
    parser.add_argument("--observer-lat", type=float, default=0.0)
    parser.add_argument("--observer-lon", type=float, default=0.0)
    parser.add_argument("--utc-offset", type=float, default=None)
    parser.add_argument("--timezone", default=None, help="IANA zone name, e.g. Europe/London")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Project a star map onto a settled knit mesh")
    subparsers = parser.add_subparsers(dest="command", required=True)

    project = subparsers.add_parser("project", help="Colour mesh nodes and build constellation links")
    project.add_argument("--positions", required=True, help="CSV of settled x,y,z node positions")
    project.add_argument("--stars", default="data/stars.6.json")
    project.add_argument("--constellations", default="data/constellations.lines.json")
    project.add_argument("--milky-way", default="data/mw.json")
    project.add_argument("--out", default="out/projection.json")
    project.add_argument("--preview", default=None, help="Optional PNG preview path")
    project.add_argument("--preview-size", type=int, default=1440)
    project.add_argument("--latitude", type=float, default=None)
    project.add_argument("--longitude", type=float, default=None)
    project.add_argument("--preset", choices=sorted(_PRESETS), default=None)
    project.add_argument("--destination", choices=sorted(DESTINATION_OFFSETS), default="crown")
    project.add_argument("--colour-milky-way", type=int, default=1, choices=range(0, 6))
    project.add_argument("--mag-limit", type=float, default=4.0)
    project.add_argument("--colour-constellation", action="store_true")
    project.add_argument("--whole-sky", action="store_true")
    project.add_argument("--seed", type=int, default=None)
    _add_time_args(project, required=False)
    project.set_defaults(func=run_project)

    zenith = subparsers.add_parser("zenith", help="Sky point overhead at a time and place")
    _add_time_args(zenith, required=True)
    zenith.set_defaults(func=run_zenith)

    return parser


def main(argv: Optional[list] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    args.func(args)
