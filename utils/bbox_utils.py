"""
Rectangle utilities for blank areas.

Handles clipping, hit testing, (de)serialization and overlay rendering.
"""
from typing import Iterable, List, Optional, Sequence, Tuple

from PIL import Image, ImageDraw

from core.constants import TRANSPARENT
from core.models import BlankArea


def clip_rect(
    x: float,
    y: float,
    width: float,
    height: float,
    img_width: int,
    img_height: int
) -> Optional[BlankArea]:
    """
    Clip a rectangle to the raster bounds.

    Args:
        x, y, width, height: Rectangle, possibly outside the raster
        img_width: Raster width
        img_height: Raster height

    Returns:
        Integer BlankArea inside the raster, or None when nothing remains
    """
    x1 = max(0, int(x))
    y1 = max(0, int(y))
    x2 = min(img_width, int(x + width))
    y2 = min(img_height, int(y + height))

    if x2 <= x1 or y2 <= y1:
        return None

    return BlankArea(x=x1, y=y1, width=x2 - x1, height=y2 - y1)


def clip_area(area: BlankArea, img_width: int, img_height: int) -> Optional[BlankArea]:
    """Clip an existing area to the raster bounds."""
    return clip_rect(area.x, area.y, area.width, area.height, img_width, img_height)


def find_area_at(areas: Iterable[BlankArea], x: float, y: float) -> Optional[BlankArea]:
    """
    Find the first blank area under a point.

    Edges are inclusive so a click on a cell border still selects it.
    """
    for area in areas:
        if area.contains(x, y):
            return area
    return None


def areas_to_dicts(areas: Iterable[BlankArea]) -> List[dict]:
    """Serialize areas to the persisted JSON shape."""
    return [area.to_dict() for area in areas]


def areas_from_dicts(data: Optional[Sequence[dict]]) -> List[BlankArea]:
    """Parse persisted areas, skipping malformed entries."""
    areas = []
    for item in data or []:
        try:
            area = BlankArea.from_dict(item)
        except (KeyError, TypeError, ValueError):
            continue
        if area.width > 0 and area.height > 0:
            areas.append(area)
    return areas


def draw_area_overlay(
    size: Tuple[int, int],
    areas: Iterable[BlankArea],
    fill: Tuple[int, int, int, int]
) -> Image.Image:
    """
    Render areas as filled rectangles on a transparent layer.

    Args:
        size: (width, height) of the overlay
        areas: Rectangles to fill
        fill: RGBA fill colour

    Returns:
        RGBA overlay image
    """
    overlay = Image.new('RGBA', size, TRANSPARENT)
    draw = ImageDraw.Draw(overlay)

    for area in areas:
        clipped = clip_area(area, size[0], size[1])
        if clipped is None:
            continue
        # Pillow rectangles include the lower-right corner
        draw.rectangle(
            [clipped.x, clipped.y, clipped.right - 1, clipped.bottom - 1],
            fill=fill
        )

    return overlay
