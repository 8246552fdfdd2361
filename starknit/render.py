from typing import Optional, Tuple

from PIL import Image, ImageDraw

from .color import BACKGROUND, RGB
from .constellation_lines import decode_connection
from .coords import SkyCoordinate
from .engine import ProjectionResult


def render_preview(
    result: ProjectionResult,
    width: int = 1440,
    height: int = 720,
    node_radius: int = 4,
    line_color: RGB = (255, 255, 255),
    line_alpha: int = 200,
    phantom_alpha: int = 90,
    line_width: int = 1,
) -> Image.Image:
    # Equirectangular view of the oriented mesh: node colours plus constellation edges.
    out = Image.new("RGB", (width, height), BACKGROUND)
    draw = ImageDraw.Draw(out, "RGBA")
    real = line_color + (max(0, min(255, line_alpha)),)
    phantom = line_color + (max(0, min(255, phantom_alpha)),)
    for i, info in enumerate(result.star_information):
        start = result.coordinates[i]
        if start is None:
            continue
        for _, neighbours in info.connected_stars:
            for value in neighbours:
                target, is_phantom = decode_connection(value)
                end = result.coordinates[target]
                # Real edges appear in both nodes' lists; draw each once.
                if end is None or (not is_phantom and target < i):
                    continue
                _draw_wrapped_line(
                    draw, width, height, phantom if is_phantom else real, line_width, start, end
                )
    for coord, colour in zip(result.coordinates, result.colours):
        if coord is None:
            continue
        x, y = _to_pixel(coord, width, height)
        r = node_radius
        draw.ellipse([(x - r, y - r), (x + r, y + r)], fill=tuple(colour))
    return out


def save_preview(result: ProjectionResult, out_path: str, width: int = 1440, height: Optional[int] = None) -> None:
    img = render_preview(result, width=width, height=height or width // 2)
    img.save(out_path, format="PNG")


def _to_pixel(coord: SkyCoordinate, width: int, height: int) -> Tuple[float, float]:
    x = (coord.longitude + 180.0) / 360.0 * width
    y = (90.0 - coord.latitude) / 180.0 * height
    return x, y


def _draw_wrapped_line(
    draw: ImageDraw.ImageDraw,
    width: int,
    height: int,
    color: Tuple[int, int, int, int],
    line_width: int,
    a: SkyCoordinate,
    b: SkyCoordinate,
) -> None:
    # Split lines that cross the +/-180 seam instead of drawing them across the whole image.
    x1, y1 = _to_pixel(a, width, height)
    x2, y2 = _to_pixel(b, width, height)
    if abs(x1 - x2) <= width / 2:
        draw.line([(x1, y1), (x2, y2)], fill=color, width=line_width)
        return
    if x1 > x2:
        x1, y1, x2, y2 = x2, y2, x1, y1
    # x1 sits near the left edge; unwrap it past the right edge.
    x1_wrapped = x1 + width
    t = (width - x2) / (x1_wrapped - x2)
    y_seam = y2 + (y1 - y2) * t
    draw.line([(x2, y2), (width, y_seam)], fill=color, width=line_width)
    draw.line([(0, y_seam), (x1, y1)], fill=color, width=line_width)
