"""Imaging package - Luminance sampling, blank area detection and image fitting."""

from .grayscale import (
    to_luminance,
)

from .detector import (
    find_components,
    bounding_box_std_dev,
    aspect_ratio_ok,
    accept_component,
    expand_area,
    merge_overlapping,
    detect,
    detect_blank_areas,
)

from .fit import (
    crop_fill_source,
    letterbox_dest,
    fit,
    render_placement,
)

__all__ = [
    # Grayscale
    'to_luminance',

    # Detection
    'find_components',
    'bounding_box_std_dev',
    'aspect_ratio_ok',
    'accept_component',
    'expand_area',
    'merge_overlapping',
    'detect',
    'detect_blank_areas',

    # Fitting
    'crop_fill_source',
    'letterbox_dest',
    'fit',
    'render_placement',
]
