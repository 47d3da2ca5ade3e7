"""Utilities package - Helper functions for image decoding and rectangle handling."""

from .image_utils import (
    decode_image,
    encode_png,
    image_to_base64,
    create_empty_layer,
    format_size,
)

from .bbox_utils import (
    clip_rect,
    clip_area,
    find_area_at,
    areas_to_dicts,
    areas_from_dicts,
    draw_area_overlay,
)

__all__ = [
    # Image utils
    'decode_image',
    'encode_png',
    'image_to_base64',
    'create_empty_layer',
    'format_size',

    # BBox utils
    'clip_rect',
    'clip_area',
    'find_area_at',
    'areas_to_dicts',
    'areas_from_dicts',
    'draw_area_overlay',
]
