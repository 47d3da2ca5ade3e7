"""
Blank Region Detector

Finds fillable cells in a form raster:
- Threshold: pixels at or above the brightness cutoff are candidates
- Flood fill: 4-connected candidate pixels are grouped into components
- Filter: components are kept by size, uniformity and aspect ratio
- Merge: overlapping rectangles are unioned until none overlap
"""
import asyncio
import dataclasses
import logging
from collections import deque
from typing import Iterator, List, Optional

import numpy as np

from core.models import BlankArea, Component, DetectionConfig
from utils.image_utils import ImageSource, decode_image
from .grayscale import RasterLike, to_luminance

logger = logging.getLogger(__name__)


def find_components(luminance: np.ndarray, threshold: float) -> Iterator[Component]:
    """
    Flood fill bright pixels into connected components.

    The visited bitmap and work queue hold flat pixel indices, so the
    traversal never builds per-pixel objects. Dark pixels start out
    visited and are never filled.

    Args:
        luminance: (H, W) luminance array
        threshold: Minimum luminance of a candidate pixel

    Yields:
        Component with pixel count and bounding box (std_dev not yet set)
    """
    height, width = luminance.shape
    if height == 0 or width == 0:
        return

    bright = (luminance >= threshold).ravel()
    visited = bytearray((~bright).astype(np.uint8).tobytes())
    last_col = width - 1
    last_row = height - 1
    queue = deque()

    for seed in np.flatnonzero(bright).tolist():
        if visited[seed]:
            continue

        visited[seed] = 1
        queue.append(seed)
        pixel_count = 0
        min_x, min_y = width, height
        max_x = max_y = -1

        while queue:
            idx = queue.popleft()
            y, x = divmod(idx, width)
            pixel_count += 1

            if x < min_x:
                min_x = x
            if x > max_x:
                max_x = x
            if y < min_y:
                min_y = y
            if y > max_y:
                max_y = y

            if x > 0 and not visited[idx - 1]:
                visited[idx - 1] = 1
                queue.append(idx - 1)
            if x < last_col and not visited[idx + 1]:
                visited[idx + 1] = 1
                queue.append(idx + 1)
            if y > 0 and not visited[idx - width]:
                visited[idx - width] = 1
                queue.append(idx - width)
            if y < last_row and not visited[idx + width]:
                visited[idx + width] = 1
                queue.append(idx + width)

        yield Component(
            pixel_count=pixel_count,
            min_x=min_x,
            min_y=min_y,
            max_x=max_x,
            max_y=max_y
        )


def bounding_box_std_dev(luminance: np.ndarray, component: Component) -> float:
    """Population standard deviation of luminance over the component's bounding box."""
    box = luminance[component.min_y:component.max_y + 1, component.min_x:component.max_x + 1]
    return float(np.std(box, dtype=np.float64))


def aspect_ratio_ok(width: int, height: int, min_ratio: float, max_ratio: float) -> bool:
    """Accept a box whose width/height or height/width lies in the bounds."""
    ratio = width / height
    if min_ratio <= ratio <= max_ratio:
        return True
    return min_ratio <= 1.0 / ratio <= max_ratio


def accept_component(component: Component, config: DetectionConfig) -> bool:
    """
    Decide whether a component is a fillable cell.

    Args:
        component: Component with std_dev already computed
        config: Detection thresholds

    Returns:
        True when size, uniformity and aspect ratio all pass
    """
    if component.pixel_count < config.min_pixel_count:
        return False
    if component.std_dev > config.effective_max_std_dev:
        return False
    return aspect_ratio_ok(
        component.width,
        component.height,
        config.min_aspect_ratio,
        config.max_aspect_ratio
    )


def expand_area(area: BlankArea, margin: int, img_width: int, img_height: int) -> BlankArea:
    """Grow an area by margin pixels on every side, clamped to the raster."""
    x1 = max(0, area.x - margin)
    y1 = max(0, area.y - margin)
    x2 = min(img_width, area.right + margin)
    y2 = min(img_height, area.bottom + margin)
    return BlankArea(x=x1, y=y1, width=x2 - x1, height=y2 - y1)


def merge_overlapping(areas: List[BlankArea]) -> List[BlankArea]:
    """
    Union overlapping rectangles until no two overlap.

    A union can create new overlaps with rectangles already checked, so
    the scan restarts after every merge.
    """
    merged = list(areas)
    changed = True

    while changed:
        changed = False
        for i in range(len(merged)):
            for j in range(i + 1, len(merged)):
                if merged[i].overlaps(merged[j]):
                    merged[i] = merged[i].union(merged[j])
                    del merged[j]
                    changed = True
                    break
            if changed:
                break

    return merged


def detect(raster: RasterLike, config: Optional[DetectionConfig] = None) -> List[BlankArea]:
    """
    Detect blank fillable areas in a form raster.

    Args:
        raster: PIL Image or pixel array
        config: Detection thresholds (defaults when None)

    Returns:
        List of BlankArea inside the raster bounds; order is not significant
    """
    config = config or DetectionConfig()
    luminance = to_luminance(raster)
    height, width = luminance.shape

    if height == 0 or width == 0:
        logger.debug("Empty raster, no blank areas")
        return []

    accepted: List[BlankArea] = []
    component_count = 0

    for component in find_components(luminance, config.effective_threshold):
        component_count += 1
        if component.pixel_count < config.min_pixel_count:
            continue
        component.std_dev = bounding_box_std_dev(luminance, component)
        if accept_component(component, config):
            accepted.append(component.to_area())

    margin = config.expansion_margin
    if margin:
        accepted = [expand_area(area, margin, width, height) for area in accepted]

    areas = merge_overlapping(accepted)

    logger.debug(
        "Detected %d blank areas (%d components, %d accepted) in %dx%d raster",
        len(areas), component_count, len(accepted), width, height
    )
    return areas


def _decode_and_detect(image: ImageSource, config: DetectionConfig) -> List[BlankArea]:
    return detect(decode_image(image), config)


async def detect_blank_areas(
    image: ImageSource,
    tolerance: bool = False,
    config: Optional[DetectionConfig] = None
) -> List[BlankArea]:
    """
    Decode an image and detect its blank areas off the event loop.

    Args:
        image: Bytes, base64, data URL, path or PIL Image
        tolerance: Widen thresholds for noisy scans
        config: Base thresholds; its tolerance flag is replaced by ``tolerance``

    Returns:
        List of BlankArea

    Raises:
        DecodeFailure: The image cannot be decoded
    """
    if config is None:
        config = DetectionConfig(tolerance=tolerance)
    else:
        config = dataclasses.replace(config, tolerance=tolerance)

    return await asyncio.to_thread(_decode_and_detect, image, config)
