"""
Grayscale sampling.

Converts RGB(A) rasters to per-pixel luminance on the 0-255 scale.
"""
from typing import Sequence, Union

import numpy as np
from PIL import Image

from core.constants import LUMA_WEIGHTS

RasterLike = Union[Image.Image, np.ndarray]


def to_luminance(raster: RasterLike, weights: Sequence[float] = LUMA_WEIGHTS) -> np.ndarray:
    """
    Compute per-pixel luminance.

    Alpha is ignored; only the colour channels contribute.

    Args:
        raster: PIL Image (any mode) or array of shape (H, W), (H, W, 3) or (H, W, 4)
        weights: R, G, B coefficients

    Returns:
        float32 array of shape (H, W)
    """
    if isinstance(raster, Image.Image):
        if raster.width == 0 or raster.height == 0:
            return np.zeros((raster.height, raster.width), dtype=np.float32)
        if raster.mode != 'RGB':
            raster = raster.convert('RGB')
        pixels = np.asarray(raster, dtype=np.float32)
    else:
        pixels = np.asarray(raster, dtype=np.float32)
        if pixels.ndim == 2:
            return pixels
        pixels = pixels[..., :3]

    if pixels.size == 0:
        return np.zeros(pixels.shape[:2], dtype=np.float32)

    return pixels @ np.asarray(weights, dtype=np.float32)
