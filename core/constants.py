"""
Constants and enumerations for the form filling engine.
"""
from enum import Enum


class FitMode(str, Enum):
    """Strategies for placing an image inside a blank area."""
    CROP_FILL = "crop-fill"
    LETTERBOX = "letterbox"


class Tool(str, Enum):
    """Annotation tools dispatched by the layer compositor."""
    DRAW = "draw"
    ERASER = "eraser"
    TEXT = "text"


class HistoryState(str, Enum):
    """Undo stack position."""
    AT_BOTTOM = "at_bottom"
    MID_STACK = "mid_stack"


class ErrorKind(str, Enum):
    """Failure kinds reported to callers."""
    DECODE_FAILURE = "decode_failure"
    EMPTY_RASTER = "empty_raster"
    OUT_OF_BOUNDS_CLIP = "out_of_bounds_clip"
    CONTEXT_UNAVAILABLE = "context_unavailable"
    FORM_NOT_FOUND = "form_not_found"


# ITU-R BT.601 luma coefficients (R, G, B)
LUMA_WEIGHTS = (0.299, 0.587, 0.114)

# Default detector parameters (8-bit luminance scale)
DEFAULT_DETECTION_PARAMS = {
    'brightness_threshold': 235,
    'min_pixel_count': 100,
    'max_std_dev': 15.0,
    'min_aspect_ratio': 0.2,
    'max_aspect_ratio': 5.0,
    'tolerant_brightness_threshold': 220,
    'tolerant_cell_size': 15,
    'tolerant_std_dev_factor': 1.5,
}

# Overlay fills: rgba(255, 0, 0, 0.3) for blank areas, rgba(0, 0, 255, 0.3) for hover
HIGHLIGHT_FILL = (255, 0, 0, 77)
HOVER_FILL = (0, 0, 255, 77)

TRANSPARENT = (0, 0, 0, 0)

# Default tool settings
DEFAULT_BRUSH = {
    'brush_color': "#FF0000",
    'brush_size': 5,
    'eraser_size': 20,
    'text_color': "#000000",
    'text_size': 24,
    'font_path': None,
}

DOWNLOAD_NAME_TEMPLATE = "form-{form_id}.png"

